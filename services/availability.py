import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from models.booking import ACTIVE_STATUSES, Booking
from services.calendar_policy import current_policy
from services.pricing import PriceBreakdown, PricingEngine
from services.schedule import CourtSchedule
from utils.timewindow import TimeWindow, stored_interval, window_for

logger = logging.getLogger(__name__)

REASON_BOOKED = "time slot already booked"
REASON_OUTSIDE_HOURS = "outside operating hours"
REASON_MAINTENANCE = "court under maintenance"
REASON_INACTIVE = "court inactive"
REASON_UNPRICED = "not bookable at this time"


@dataclass
class SlotResult:
    start_time: str
    end_time: str
    available: bool
    reason: Optional[str] = None
    pricing: Optional[PriceBreakdown] = None

    def to_dict(self):
        out = {"start_time": self.start_time, "end_time": self.end_time, "available": self.available}
        if self.reason:
            out["reason"] = self.reason
        if self.pricing is not None:
            out["pricing"] = self.pricing.to_dict()
        return out


def _court_id(court):
    return getattr(court, "id", court)


class AvailabilityChecker:
    def __init__(self, pricing: PricingEngine):
        self.pricing = pricing

    @classmethod
    def for_app(cls) -> "AvailabilityChecker":
        return cls(PricingEngine.for_app(current_policy()))

    # ---------- conflict detection ----------

    def candidate_bookings(self, court, first_day, last_day, exclude_booking_id=None) -> List[Booking]:
        """Active bookings that could overlap anything between first_day and last_day.

        The day before first_day is included because an overnight booking
        dated then spills into first_day.
        """
        q = Booking.query.filter(
            Booking.court_id == _court_id(court),
            Booking.status.in_(ACTIVE_STATUSES),
            Booking.date >= first_day - timedelta(days=1),
            Booking.date <= last_day,
        )
        if exclude_booking_id is not None:
            q = q.filter(Booking.id != exclude_booking_id)
        return q.all()

    @staticmethod
    def overlapping(window: TimeWindow, bookings, exclude_booking_id=None) -> List[Booking]:
        hits = []
        for b in bookings:
            if exclude_booking_id is not None and b.id == exclude_booking_id:
                continue
            if b.status not in ACTIVE_STATUSES:
                continue
            start_at, end_at = stored_interval(b.date, b.start_time, b.end_time, b.end_date)
            if window.overlaps(start_at, end_at):
                hits.append(b)
        return hits

    def find_conflicts(self, court, day, start_time, end_time, exclude_booking_id=None) -> List[Booking]:
        window = window_for(day, start_time, end_time)
        candidates = self.candidate_bookings(court, window.day, window.end_day, exclude_booking_id)
        return self.overlapping(window, candidates, exclude_booking_id)

    def has_conflict(self, court, day, start_time, end_time, exclude_booking_id=None) -> bool:
        return bool(self.find_conflicts(court, day, start_time, end_time, exclude_booking_id))

    # ---------- slot checks ----------

    def _gate(self, court, schedule: CourtSchedule, window: TimeWindow) -> Optional[str]:
        if not court.is_active:
            return REASON_INACTIVE
        if court.under_maintenance_during(window.start_at, window.end_at):
            return REASON_MAINTENANCE
        if not schedule.is_open(window.day, window.start_time, window.end_time):
            return REASON_OUTSIDE_HOURS
        return None

    def _priced(self, schedule, window: TimeWindow, is_member) -> SlotResult:
        breakdown = self.pricing.quote(schedule, window.day, window.start_time, window.end_time, is_member)
        if not breakdown.bookable:
            return SlotResult(window.start_time, window.end_time, False, REASON_UNPRICED)
        return SlotResult(window.start_time, window.end_time, True, pricing=breakdown)

    def check_slot(self, court, day, start_time, end_time, is_member=False,
                   exclude_booking_id=None, bypass_restrictions=False) -> SlotResult:
        """Full verdict for one window: availability with a reason, or a price.

        `bypass_restrictions` skips the court-state and operating-hours gates
        (admin path) but never the conflict check.
        """
        window = window_for(day, start_time, end_time)
        schedule = CourtSchedule.from_court(court)
        if not bypass_restrictions:
            reason = self._gate(court, schedule, window)
            if reason:
                return SlotResult(start_time, end_time, False, reason)
        if self.has_conflict(court, window.day, start_time, end_time, exclude_booking_id):
            return SlotResult(start_time, end_time, False, REASON_BOOKED)
        return self._priced(schedule, window, is_member)

    def check_slots(self, court, day, slots, is_member=False) -> List[SlotResult]:
        """Batch variant for rendering a day grid; candidate bookings are read once."""
        windows = [window_for(day, s.get("start_time"), s.get("end_time")) for s in slots]
        if not windows:
            return []
        schedule = CourtSchedule.from_court(court)

        results: List[Optional[SlotResult]] = [None] * len(windows)
        pending = []
        for i, window in enumerate(windows):
            reason = self._gate(court, schedule, window)
            if reason:
                results[i] = SlotResult(window.start_time, window.end_time, False, reason)
            else:
                pending.append(i)

        if pending:
            first_day = min(windows[i].day for i in pending)
            last_day = max(windows[i].end_day for i in pending)
            candidates = self.candidate_bookings(court, first_day, last_day)
            for i in pending:
                window = windows[i]
                if self.overlapping(window, candidates):
                    results[i] = SlotResult(window.start_time, window.end_time, False, REASON_BOOKED)
                else:
                    results[i] = self._priced(schedule, window, is_member)

        logger.debug("Checked %d slots for court %s on %s", len(windows), _court_id(court), windows[0].day)
        return results
