import re
from datetime import date, datetime, timedelta
from typing import NamedTuple, Optional
from zoneinfo import ZoneInfo

from flask import current_app, has_app_context

from services.errors import ValidationError

START_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
# end times may also use the "24:00" end-of-day sentinel
END_TIME_RE = re.compile(r"^(([0-1]?[0-9]|2[0-3]):[0-5][0-9]|24:00)$")

MINUTES_PER_DAY = 24 * 60


def to_minutes(hhmm: str) -> int:
    hour, minute = hhmm.split(":")
    return int(hour) * 60 + int(minute)


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_day(value) -> date:
    """Accepts a date, a datetime or an ISO string and returns the calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Invalid date. Use YYYY-MM-DD")
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValidationError("Invalid date. Use YYYY-MM-DD")


def check_start_time(value) -> str:
    if not isinstance(value, str) or not START_TIME_RE.match(value):
        raise ValidationError("Invalid start_time. Use HH:MM")
    return value


def check_end_time(value) -> str:
    if not isinstance(value, str) or not END_TIME_RE.match(value):
        raise ValidationError("Invalid end_time. Use HH:MM or 24:00")
    return value


def is_overnight(start_time: str, end_time: str) -> bool:
    return to_minutes(end_time) <= to_minutes(start_time)


def duration_minutes(start_time: str, end_time: str) -> int:
    start = to_minutes(start_time)
    end = to_minutes(end_time)
    if end <= start:
        end += MINUTES_PER_DAY
    return end - start


class TimeWindow(NamedTuple):
    day: date
    start_time: str
    end_time: str

    @property
    def end_day(self) -> date:
        if is_overnight(self.start_time, self.end_time):
            return self.day + timedelta(days=1)
        return self.day

    @property
    def start_at(self) -> datetime:
        return _at(self.day, to_minutes(self.start_time))

    @property
    def end_at(self) -> datetime:
        return _at(self.end_day, to_minutes(self.end_time))

    @property
    def minutes(self) -> int:
        return duration_minutes(self.start_time, self.end_time)

    def overlaps(self, start_at: datetime, end_at: datetime) -> bool:
        # half-open intervals: touching edges do not overlap
        return self.start_at < end_at and self.end_at > start_at


def _at(day: date, minutes: int) -> datetime:
    return datetime(day.year, day.month, day.day) + timedelta(minutes=minutes)


def window_for(day, start_time, end_time) -> TimeWindow:
    """Validate raw request values and build the window they describe."""
    day = parse_day(day)
    check_start_time(start_time)
    check_end_time(end_time)
    if to_minutes(start_time) == to_minutes(end_time):
        raise ValidationError("end_time must differ from start_time")
    return TimeWindow(day, start_time, end_time)


def stored_interval(booking_date: date, start_time: str, end_time: str,
                    end_date: Optional[date] = None):
    """Absolute [start, end) of a persisted booking, honouring its explicit end_date when present."""
    start_at = _at(booking_date, to_minutes(start_time))
    if end_date is None:
        end_date = booking_date + timedelta(days=1) if is_overnight(start_time, end_time) else booking_date
    return start_at, _at(end_date, to_minutes(end_time))


def venue_now() -> datetime:
    """Naive wall-clock time at the venue."""
    tz_name = "Asia/Hong_Kong"
    if has_app_context():
        tz_name = current_app.config.get("VENUE_TIMEZONE", tz_name)
    return datetime.now(ZoneInfo(tz_name)).replace(tzinfo=None)
