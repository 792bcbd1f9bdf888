"""Hourly rate resolution for a court at a given start time and date.

Band courts resolve through an ordered rule list, first rule that answers wins:

1. weekend override: a weekend-rate day between 08:00 and midnight is billed
   at the court's peak band, whatever band the start time falls in;
2. declared bands, scanned in the order the admin saved them;
3. no band matched: rate 0, meaning "not bookable at this time".

Courts without bands fall back to the legacy flat peak/off-peak pair.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Sequence

from flask import current_app

from services.calendar_policy import CalendarPolicy
from services.schedule import CourtSchedule
from utils.timewindow import parse_day, to_minutes, duration_minutes

UNAVAILABLE_LABEL = "unavailable"
LEGACY_PEAK_LABEL = "peak"
LEGACY_OFF_PEAK_LABEL = "off_peak"


@dataclass(frozen=True)
class RateQuote:
    hourly_rate: float
    label: str
    is_peak_hour: bool
    rule: str


@dataclass(frozen=True)
class PriceBreakdown:
    hourly_rate: float
    label: str
    is_peak_hour: bool
    duration_minutes: int
    base_price: float
    member_discount: float
    total_price: float

    @property
    def bookable(self) -> bool:
        return self.hourly_rate > 0

    def to_dict(self):
        return {
            "hourly_rate": self.hourly_rate,
            "label": self.label,
            "base_price": self.base_price,
            "member_discount": self.member_discount,
            "total_price": self.total_price,
            "duration_minutes": self.duration_minutes,
            "is_peak_hour": self.is_peak_hour,
        }


@dataclass(frozen=True)
class RateContext:
    schedule: CourtSchedule
    day: date
    start_minutes: int
    policy: CalendarPolicy
    weekend_peak_start_hour: int
    legacy_peak_hours: Sequence[int]

    @property
    def hour(self) -> int:
        return self.start_minutes // 60

    @property
    def weekend_rate(self) -> bool:
        return self.policy.is_weekend_rate(self.day, self.hour)


Rule = Callable[[RateContext], Optional[RateQuote]]


def weekend_peak_override(ctx: RateContext) -> Optional[RateQuote]:
    if not ctx.weekend_rate or not ctx.weekend_peak_start_hour <= ctx.hour < 24:
        return None
    band = ctx.schedule.peak_band()
    if band is None:
        return None
    return RateQuote(band.price, band.name, True, "weekend_peak_override")


def first_matching_band(ctx: RateContext) -> Optional[RateQuote]:
    for band in ctx.schedule.bands:
        if band.contains(ctx.start_minutes):
            return RateQuote(band.price, band.name, ctx.schedule.is_peak_band(band), "declared_band")
    return None


def unbookable(ctx: RateContext) -> Optional[RateQuote]:
    return RateQuote(0, UNAVAILABLE_LABEL, False, "no_band")


def legacy_flat_rate(ctx: RateContext) -> Optional[RateQuote]:
    schedule = ctx.schedule
    if schedule.peak_rate is None or schedule.off_peak_rate is None:
        return RateQuote(0, UNAVAILABLE_LABEL, False, "no_rate")
    low, high = ctx.legacy_peak_hours
    is_peak = ctx.weekend_rate or low <= ctx.hour < high
    if is_peak:
        return RateQuote(schedule.peak_rate, LEGACY_PEAK_LABEL, True, "legacy_peak")
    return RateQuote(schedule.off_peak_rate, LEGACY_OFF_PEAK_LABEL, False, "legacy_off_peak")


BAND_RULES = (weekend_peak_override, first_matching_band, unbookable)
LEGACY_RULES = (legacy_flat_rate,)


class PricingEngine:
    """Pure function of court configuration, the calendar policy snapshot and the inputs."""

    def __init__(self, policy: CalendarPolicy, weekend_peak_start_hour=8, legacy_peak_hours=(18, 23)):
        self.policy = policy
        self.weekend_peak_start_hour = weekend_peak_start_hour
        self.legacy_peak_hours = tuple(legacy_peak_hours)

    @classmethod
    def for_app(cls, policy: CalendarPolicy) -> "PricingEngine":
        cfg = current_app.config
        return cls(
            policy,
            weekend_peak_start_hour=cfg.get("WEEKEND_PEAK_START_HOUR", 8),
            legacy_peak_hours=cfg.get("LEGACY_PEAK_HOURS", (18, 23)),
        )

    def _context(self, court, start_time: str, day) -> RateContext:
        schedule = court if isinstance(court, CourtSchedule) else CourtSchedule.from_court(court)
        return RateContext(
            schedule=schedule,
            day=parse_day(day),
            start_minutes=to_minutes(start_time),
            policy=self.policy,
            weekend_peak_start_hour=self.weekend_peak_start_hour,
            legacy_peak_hours=self.legacy_peak_hours,
        )

    def resolve(self, court, start_time: str, day) -> RateQuote:
        ctx = self._context(court, start_time, day)
        rules = BAND_RULES if ctx.schedule.uses_bands else LEGACY_RULES
        for rule in rules:
            quote = rule(ctx)
            if quote is not None:
                return quote
        return unbookable(ctx)

    def price_for(self, court, start_time: str, day) -> float:
        return self.resolve(court, start_time, day).hourly_rate

    def label_for(self, court, start_time: str, day) -> str:
        return self.resolve(court, start_time, day).label

    def quote(self, court, day, start_time: str, end_time: str, is_member: bool = False) -> PriceBreakdown:
        schedule = court if isinstance(court, CourtSchedule) else CourtSchedule.from_court(court)
        rate = self.resolve(schedule, start_time, day)
        minutes = duration_minutes(start_time, end_time)
        base = rate.hourly_rate * minutes / 60
        discount = schedule.member_discount if is_member else 0
        total = base * (1 - discount / 100)
        return PriceBreakdown(
            hourly_rate=rate.hourly_rate,
            label=rate.label,
            is_peak_hour=rate.is_peak_hour,
            duration_minutes=minutes,
            base_price=round(base, 2),
            member_discount=discount,
            total_price=round(total, 2),
        )
