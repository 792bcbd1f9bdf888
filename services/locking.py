"""Serializes booking writes per court.

A reservation is "check for conflicts, then insert". Two requests for the same
court must not interleave those steps, so both run while holding the court's
lock: an in-process lock per court id (threads of one worker) plus a row lock
on the court rows via SELECT ... FOR UPDATE (other workers, on databases that
support it). Locks are always taken in ascending court id order so a
full-venue request and a single-court request cannot deadlock.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, List

from models import db
from models.court import Court

logger = logging.getLogger(__name__)

_registry_guard = threading.Lock()
_court_locks: Dict[int, threading.Lock] = {}


def lock_for(court_id: int) -> threading.Lock:
    with _registry_guard:
        lock = _court_locks.get(court_id)
        if lock is None:
            lock = threading.Lock()
            _court_locks[court_id] = lock
        return lock


def ordered_locks(court_ids: Iterable[int]) -> List[threading.Lock]:
    return [lock_for(cid) for cid in sorted(set(court_ids))]


@contextmanager
def court_write_lock(court_ids: Iterable[int]):
    """Hold every listed court for the duration of the block.

    The block must commit or roll back its own session work; on an exception
    the session is rolled back before the locks are released.
    """
    ids = sorted(set(court_ids))
    acquired = []
    try:
        for lock in ordered_locks(ids):
            lock.acquire()
            acquired.append(lock)
        if ids:
            (
                Court.query
                .filter(Court.id.in_(ids))
                .order_by(Court.id.asc())
                .with_for_update()
                .populate_existing()
                .all()
            )
        yield
    except Exception:
        db.session.rollback()
        raise
    finally:
        for lock in reversed(acquired):
            lock.release()
        if ids:
            logger.debug("Released write locks for courts %s", ids)
