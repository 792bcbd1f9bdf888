"""Weekend-rate calendar: which days (and Friday evenings) are billed at weekend prices.

The configuration lives in a single versioned row plus the holiday table.
`CalendarPolicyStore` keeps an immutable `CalendarPolicy` snapshot in memory
and reloads it whenever the stored version moves, so every worker process sees
an admin change on its next read.
"""
import logging
import threading
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import FrozenSet, Iterable, Optional

from flask import current_app

from models import db
from models.calendar_policy import CalendarPolicySetting, Holiday
from services.errors import ConfigurationError, ValidationError
from utils.timewindow import parse_day

logger = logging.getLogger(__name__)

DEFAULT_WEEKEND_DAYS = frozenset({0, 6})  # Sunday, Saturday
DEFAULT_FRIDAY_EVENING_HOUR = 18
FRIDAY = 5

WEEKDAY = "weekday"
WEEKEND = "weekend"
HOLIDAY = "holiday"


def weekday_index(day: date) -> int:
    """0 = Sunday .. 6 = Saturday."""
    return (day.weekday() + 1) % 7


@dataclass(frozen=True)
class CalendarPolicy:
    weekend_days: FrozenSet[int] = DEFAULT_WEEKEND_DAYS
    include_friday_evening: bool = False
    friday_evening_hour: int = DEFAULT_FRIDAY_EVENING_HOUR
    holidays: FrozenSet[str] = field(default_factory=frozenset)
    version: int = 0

    def is_holiday(self, day) -> bool:
        return parse_day(day).isoformat() in self.holidays

    def is_weekend_rate(self, day, hour: Optional[int] = None) -> bool:
        """`hour` is the hour pricing is being resolved for; only the Friday-evening rule reads it."""
        day = parse_day(day)
        if self.is_holiday(day):
            return True
        index = weekday_index(day)
        if index in self.weekend_days:
            return True
        if self.include_friday_evening and index == FRIDAY and hour is not None:
            return hour >= self.friday_evening_hour
        return False

    def classify(self, day, hour: Optional[int] = None) -> str:
        if self.is_holiday(day):
            return HOLIDAY
        if self.is_weekend_rate(day, hour):
            return WEEKEND
        return WEEKDAY

    def to_dict(self):
        return {
            "weekend_days": sorted(self.weekend_days),
            "include_friday_evening": self.include_friday_evening,
            "friday_evening_hour": self.friday_evening_hour,
            "holidays": sorted(self.holidays),
            "version": self.version,
        }


def default_policy() -> CalendarPolicy:
    weekend_days = current_app.config.get("DEFAULT_WEEKEND_DAYS", DEFAULT_WEEKEND_DAYS)
    hour = current_app.config.get("DEFAULT_FRIDAY_EVENING_HOUR", DEFAULT_FRIDAY_EVENING_HOUR)
    return CalendarPolicy(weekend_days=frozenset(weekend_days), friday_evening_hour=hour)


def clean_weekend_days(values) -> FrozenSet[int]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise ConfigurationError("weekend_days must be a list")
    days = set()
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
            raise ConfigurationError(f"Invalid weekend day index: {value!r} (expected 0-6, 0 = Sunday)")
        days.add(value)
    return frozenset(days)


def clean_friday_hour(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 23:
        raise ConfigurationError("friday_evening_hour must be an integer between 0 and 23")
    return value


def clean_holiday_dates(values) -> list:
    if isinstance(values, str):
        values = [values]
    if not isinstance(values, (list, tuple)) or not values:
        raise ConfigurationError("dates must be a non-empty list")
    cleaned = []
    for value in values:
        try:
            day = parse_day(value)
        except ValidationError:
            raise ConfigurationError(f"Invalid holiday date: {value!r}")
        iso = day.isoformat()
        if iso not in cleaned:
            cleaned.append(iso)
    return cleaned


def _sanitized(row: CalendarPolicySetting, holidays: Iterable[str]) -> CalendarPolicy:
    """Build a snapshot from stored values, falling back to defaults for anything unreadable."""
    fallback = default_policy()
    try:
        weekend_days = clean_weekend_days(row.weekend_days)
    except ConfigurationError:
        logger.warning("Stored weekend_days %r unreadable, using defaults", row.weekend_days)
        weekend_days = fallback.weekend_days
    try:
        hour = clean_friday_hour(row.friday_evening_hour)
    except ConfigurationError:
        hour = fallback.friday_evening_hour
    return CalendarPolicy(
        weekend_days=weekend_days,
        include_friday_evening=bool(row.include_friday_evening),
        friday_evening_hour=hour,
        holidays=frozenset(holidays),
        version=row.version or 0,
    )


class CalendarPolicyStore:
    """Read-through cache over the calendar policy tables."""

    def __init__(self):
        self._lock = threading.Lock()
        self._cached: Optional[CalendarPolicy] = None

    def current(self) -> CalendarPolicy:
        version = db.session.query(CalendarPolicySetting.version).order_by(CalendarPolicySetting.id).limit(1).scalar()
        if version is None:
            return default_policy()
        cached = self._cached
        if cached is not None and cached.version == version:
            return cached
        return self._reload()

    def invalidate(self):
        with self._lock:
            self._cached = None

    def _reload(self) -> CalendarPolicy:
        row = CalendarPolicySetting.query.order_by(CalendarPolicySetting.id).first()
        holidays = [h.date for h in Holiday.query.all()]
        policy = _sanitized(row, holidays)
        with self._lock:
            self._cached = policy
        logger.debug("Calendar policy reloaded at version %s", policy.version)
        return policy

    def _setting_row(self) -> CalendarPolicySetting:
        row = CalendarPolicySetting.query.order_by(CalendarPolicySetting.id).first()
        if row is None:
            fallback = default_policy()
            row = CalendarPolicySetting(
                weekend_days=sorted(fallback.weekend_days),
                include_friday_evening=fallback.include_friday_evening,
                friday_evening_hour=fallback.friday_evening_hour,
                version=0,
            )
            db.session.add(row)
        return row

    def _bump(self, row: CalendarPolicySetting, user_id=None):
        row.version = (row.version or 0) + 1
        row.updated_at = datetime.utcnow()
        row.updated_by = user_id

    def update(self, weekend_days=None, include_friday_evening=None, friday_evening_hour=None,
               user_id=None) -> CalendarPolicy:
        """Partial update; every supplied field is validated before anything is written."""
        days = clean_weekend_days(weekend_days) if weekend_days is not None else None
        hour = clean_friday_hour(friday_evening_hour) if friday_evening_hour is not None else None
        if include_friday_evening is not None and not isinstance(include_friday_evening, bool):
            raise ConfigurationError("include_friday_evening must be a boolean")

        row = self._setting_row()
        if days is not None:
            row.weekend_days = sorted(days)
        if include_friday_evening is not None:
            row.include_friday_evening = include_friday_evening
        if hour is not None:
            row.friday_evening_hour = hour
        self._bump(row, user_id)
        db.session.commit()
        self.invalidate()
        logger.info("Calendar policy updated to version %s", row.version)
        return self.current()

    def add_holidays(self, dates, name=None, description=None, user_id=None) -> CalendarPolicy:
        cleaned = clean_holiday_dates(dates)
        existing = {h.date for h in Holiday.query.filter(Holiday.date.in_(cleaned)).all()}
        for iso in cleaned:
            if iso in existing:
                continue
            db.session.add(Holiday(date=iso, name=name, description=description, created_by=user_id))
        self._bump(self._setting_row(), user_id)
        db.session.commit()
        self.invalidate()
        return self.current()

    def remove_holidays(self, dates, user_id=None) -> CalendarPolicy:
        cleaned = clean_holiday_dates(dates)
        Holiday.query.filter(Holiday.date.in_(cleaned)).delete(synchronize_session=False)
        self._bump(self._setting_row(), user_id)
        db.session.commit()
        self.invalidate()
        return self.current()

    def list_holidays(self):
        return Holiday.query.order_by(Holiday.date.asc()).all()


def get_calendar_store() -> CalendarPolicyStore:
    return current_app.extensions["calendar_policy_store"]


def current_policy() -> CalendarPolicy:
    return get_calendar_store().current()
