from datetime import date

import pytest

from models import db
from models.calendar_policy import CalendarPolicySetting
from services.calendar_policy import (
    HOLIDAY,
    WEEKDAY,
    WEEKEND,
    CalendarPolicy,
    CalendarPolicyStore,
    current_policy,
    get_calendar_store,
    weekday_index,
)
from services.errors import ConfigurationError
from tests.conftest import FRIDAY, SATURDAY, SUNDAY, TUESDAY


def test_weekday_index_starts_on_sunday():
    assert weekday_index(SUNDAY) == 0
    assert weekday_index(TUESDAY) == 2
    assert weekday_index(SATURDAY) == 6


def test_default_policy_treats_saturday_and_sunday_as_weekend(app):
    policy = current_policy()
    assert policy.is_weekend_rate(SATURDAY)
    assert policy.is_weekend_rate(SUNDAY)
    assert not policy.is_weekend_rate(TUESDAY)
    assert not policy.is_weekend_rate(FRIDAY, 20)


def test_friday_evening_cutover():
    policy = CalendarPolicy(include_friday_evening=True, friday_evening_hour=18)
    assert not policy.is_weekend_rate(FRIDAY, 17)
    assert policy.is_weekend_rate(FRIDAY, 18)
    assert policy.is_weekend_rate(FRIDAY, 22)
    # without an hour the Friday rule cannot apply
    assert not policy.is_weekend_rate(FRIDAY)


def test_classify_prefers_holiday():
    policy = CalendarPolicy(holidays=frozenset({SATURDAY.isoformat(), TUESDAY.isoformat()}))
    assert policy.classify(SATURDAY) == HOLIDAY
    assert policy.classify(TUESDAY) == HOLIDAY
    assert policy.classify(SUNDAY) == WEEKEND
    assert policy.classify(date(2026, 10, 21)) == WEEKDAY


def test_update_bumps_version_and_refreshes_cache(app):
    store = get_calendar_store()
    before = store.current()

    updated = store.update(weekend_days=[5, 6], include_friday_evening=False, user_id=1)

    assert updated.version > before.version
    assert updated.weekend_days == frozenset({5, 6})
    assert store.current().is_weekend_rate(FRIDAY)
    assert not store.current().is_weekend_rate(SUNDAY)


def test_cache_reloads_when_another_process_writes(app):
    store = get_calendar_store()
    store.update(weekend_days=[0, 6])
    assert not store.current().is_weekend_rate(FRIDAY)

    # a second store stands in for another worker process
    CalendarPolicyStore().update(weekend_days=[5])

    assert store.current().is_weekend_rate(FRIDAY)


def test_invalid_weekend_days_are_rejected_without_writing(app):
    store = get_calendar_store()
    with pytest.raises(ConfigurationError):
        store.update(weekend_days=[0, 7])
    with pytest.raises(ConfigurationError):
        store.update(friday_evening_hour=24)
    with pytest.raises(ConfigurationError):
        store.update(include_friday_evening="yes")
    assert CalendarPolicySetting.query.count() == 0


def test_holidays_add_and_remove(app):
    store = get_calendar_store()
    policy = store.add_holidays(["2026-10-20", "2026-12-25"], name="Public holiday")
    assert policy.is_holiday(TUESDAY)
    assert policy.is_weekend_rate(TUESDAY)

    # adding an existing date again is a no-op
    store.add_holidays(["2026-10-20"])
    assert len(store.list_holidays()) == 2

    policy = store.remove_holidays(["2026-10-20"])
    assert not policy.is_holiday(TUESDAY)
    assert [h.date for h in store.list_holidays()] == ["2026-12-25"]


def test_invalid_holiday_date_is_rejected(app):
    with pytest.raises(ConfigurationError):
        get_calendar_store().add_holidays(["2026-13-01"])
    with pytest.raises(ConfigurationError):
        get_calendar_store().add_holidays([])


def test_unreadable_stored_values_fall_back_to_defaults(app):
    db.session.add(CalendarPolicySetting(weekend_days=["x", 9], friday_evening_hour=99, version=3))
    db.session.commit()

    policy = get_calendar_store().current()

    assert policy.weekend_days == frozenset({0, 6})
    assert policy.friday_evening_hour == 18
    assert policy.version == 3
