import threading

import pytest

from models import db
from models.court import Court
from services.locking import court_write_lock, lock_for, ordered_locks


def test_lock_for_returns_same_lock_per_court():
    assert lock_for(41) is lock_for(41)
    assert lock_for(41) is not lock_for(42)


def test_locks_are_ordered_and_unique():
    locks = ordered_locks([9, 3, 9, 5])
    assert locks == [lock_for(3), lock_for(5), lock_for(9)]


def test_write_lock_held_inside_block(court):
    with court_write_lock([court.id]):
        assert lock_for(court.id).locked()
    assert not lock_for(court.id).locked()


def test_write_lock_rolls_back_and_releases_on_error(court):
    with pytest.raises(RuntimeError):
        with court_write_lock([court.id]):
            court.name = "renamed"
            raise RuntimeError("boom")

    assert not lock_for(court.id).locked()
    assert db.session.get(Court, court.id).name == "Court 1"


def test_second_writer_waits_for_first():
    events = []
    release = threading.Event()
    first_holds = threading.Event()

    def first():
        with lock_for(77):
            first_holds.set()
            release.wait(timeout=5)
            events.append("first done")

    def second():
        first_holds.wait(timeout=5)
        with lock_for(77):
            events.append("second in")

    t1 = threading.Thread(target=first)
    t2 = threading.Thread(target=second)
    t1.start()
    t2.start()
    first_holds.wait(timeout=5)
    assert not lock_for(77).acquire(blocking=False)
    release.set()
    t1.join(timeout=5)
    t2.join(timeout=5)

    assert events == ["first done", "second in"]
