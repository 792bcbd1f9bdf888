"""Per-court schedule and price configuration, parsed from the court row into immutable values."""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Optional, Tuple

from flask import current_app

from services.errors import ValidationError
from utils.timewindow import END_TIME_RE, MINUTES_PER_DAY, START_TIME_RE, to_minutes

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

# bands carrying one of these names are the "busy" band weekends are promoted to
DEFAULT_PEAK_BAND_NAMES = ("繁忙時間", "peak")


@dataclass(frozen=True)
class TimeSlotBand:
    start_time: str
    end_time: str
    price: float
    name: str

    def contains(self, minutes: int) -> bool:
        start = to_minutes(self.start_time)
        end = to_minutes(self.end_time)
        if end <= start:
            # band wraps past midnight, e.g. 23:00-02:00
            return minutes >= start or minutes < end
        return start <= minutes < end


@dataclass(frozen=True)
class DayHours:
    is_open: bool = True
    start: str = "00:00"
    end: str = "24:00"

    def allows(self, start_minutes: int, end_minutes: int) -> bool:
        if not self.is_open:
            return False
        open_at = to_minutes(self.start)
        close_at = to_minutes(self.end)
        return open_at <= start_minutes and end_minutes <= close_at


ALWAYS_OPEN = DayHours()


@dataclass(frozen=True)
class CourtSchedule:
    bands: Tuple[TimeSlotBand, ...]
    peak_rate: Optional[float]
    off_peak_rate: Optional[float]
    member_discount: float
    hours: Dict[str, DayHours]
    peak_band_names: Tuple[str, ...] = DEFAULT_PEAK_BAND_NAMES

    @classmethod
    def from_court(cls, court) -> "CourtSchedule":
        bands = tuple(
            TimeSlotBand(b["start_time"], b["end_time"], float(b["price"]), b.get("name") or "")
            for b in (court.time_slots or [])
        )
        hours = {
            name: DayHours(bool(h.get("is_open", True)), h.get("start") or "00:00", h.get("end") or "24:00")
            for name, h in (court.operating_hours or {}).items()
        }
        names = tuple(current_app.config.get("PEAK_BAND_NAMES", DEFAULT_PEAK_BAND_NAMES))
        return cls(
            bands=bands,
            peak_rate=court.peak_rate,
            off_peak_rate=court.off_peak_rate,
            member_discount=float(court.member_discount or 0),
            hours=hours,
            peak_band_names=names,
        )

    @property
    def uses_bands(self) -> bool:
        return bool(self.bands)

    def is_peak_band(self, band: TimeSlotBand) -> bool:
        wanted = {n.casefold() for n in self.peak_band_names}
        return band.name.strip().casefold() in wanted

    def peak_band(self) -> Optional[TimeSlotBand]:
        for band in self.bands:
            if self.is_peak_band(band):
                return band
        return None

    def hours_for(self, day: date) -> DayHours:
        return self.hours.get(WEEKDAY_NAMES[day.weekday()], ALWAYS_OPEN)

    def is_open(self, day: date, start_time: str, end_time: str) -> bool:
        """The part before midnight is checked against `day`, the rest against the next day."""
        start = to_minutes(start_time)
        end = to_minutes(end_time)
        if end > start:
            return self.hours_for(day).allows(start, end)
        if not self.hours_for(day).allows(start, MINUTES_PER_DAY):
            return False
        if end == 0:
            return True
        return self.hours_for(day + timedelta(days=1)).allows(0, end)


# ---------- admin-write validation ----------

def validate_time_slots(bands):
    if bands is None:
        return []
    if not isinstance(bands, list):
        raise ValidationError("time_slots must be a list")
    cleaned = []
    for i, band in enumerate(bands):
        if not isinstance(band, dict):
            raise ValidationError(f"time_slots[{i}] must be an object")
        start = band.get("start_time")
        end = band.get("end_time")
        if not isinstance(start, str) or not START_TIME_RE.match(start):
            raise ValidationError(f"time_slots[{i}].start_time must be HH:MM")
        if not isinstance(end, str) or not END_TIME_RE.match(end):
            raise ValidationError(f"time_slots[{i}].end_time must be HH:MM or 24:00")
        price = band.get("price")
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            raise ValidationError(f"time_slots[{i}].price must be a non-negative number")
        name = (band.get("name") or "").strip()
        if not name:
            raise ValidationError(f"time_slots[{i}].name is required")
        cleaned.append({"start_time": start, "end_time": end, "price": price, "name": name})
    return cleaned


def validate_operating_hours(hours):
    if hours is None:
        return {}
    if not isinstance(hours, dict):
        raise ValidationError("operating_hours must be an object keyed by weekday")
    cleaned = {}
    for name, value in hours.items():
        if name not in WEEKDAY_NAMES:
            raise ValidationError(f"Unknown weekday in operating_hours: {name}")
        if not isinstance(value, dict):
            raise ValidationError(f"operating_hours.{name} must be an object")
        is_open = value.get("is_open", True)
        start = value.get("start") or "00:00"
        end = value.get("end") or "24:00"
        if not START_TIME_RE.match(start) or not END_TIME_RE.match(end):
            raise ValidationError(f"operating_hours.{name} times must be HH:MM")
        if is_open and to_minutes(end) <= to_minutes(start):
            raise ValidationError(f"operating_hours.{name} must close after it opens")
        cleaned[name] = {"is_open": bool(is_open), "start": start, "end": end}
    return cleaned
