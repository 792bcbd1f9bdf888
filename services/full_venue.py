"""Full-venue bookings: one logical reservation spread over every bookable court.

All courts are locked (ascending id), checked, and written inside a single
transaction. Either every court gets its booking or none does.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from models import db
from models.booking import Booking
from models.court import FULL_VENUE_TYPE, Court
from services.availability import REASON_BOOKED, REASON_OUTSIDE_HOURS, REASON_UNPRICED, AvailabilityChecker
from services.booking_service import cancel_booking, clean_players, get_booking
from services.errors import NotFoundError, ValidationError, VenueUnavailableError
from services.locking import court_write_lock
from services.schedule import CourtSchedule
from utils.timewindow import TimeWindow, parse_day, window_for

logger = logging.getLogger(__name__)


@dataclass
class FullVenueResult:
    bookings: List[Booking]
    total_price: float
    message: str
    group: str = ""
    computed_price: float = 0
    is_custom_points: bool = False

    def to_dict(self):
        return {
            "bookings": [b.to_dict() for b in self.bookings],
            "total_price": self.total_price,
            "computed_price": self.computed_price,
            "is_custom_points": self.is_custom_points,
            "group": self.group,
            "message": self.message,
        }


@dataclass
class VenueCheck:
    available: bool
    courts: List[Court]
    conflicts: List[dict] = field(default_factory=list)
    total_price: float = 0

    def to_dict(self):
        return {
            "available": self.available,
            "courts": [{"id": c.id, "name": c.name, "type": c.type, "number": c.number} for c in self.courts],
            "conflicts": self.conflicts,
            "total_price": self.total_price,
        }


def _conflict(court: Court, reason: str, bookings=()):
    return {
        "court_id": court.id,
        "court_name": court.name,
        "court_type": court.type,
        "court_number": court.number,
        "reason": reason,
        "booking_ids": [b.id for b in bookings],
    }


class FullVenueCoordinator:
    def __init__(self, checker: AvailabilityChecker):
        self.checker = checker

    @classmethod
    def for_app(cls) -> "FullVenueCoordinator":
        return cls(AvailabilityChecker.for_app())

    def venue_courts(self, window: TimeWindow) -> List[Court]:
        """Active courts with no maintenance during the window, umbrella placeholder excluded."""
        courts = (
            Court.query
            .filter(Court.is_active.is_(True), Court.type != FULL_VENUE_TYPE)
            .order_by(Court.id.asc())
            .all()
        )
        return [c for c in courts if not c.under_maintenance_during(window.start_at, window.end_at)]

    def _conflicts(self, courts, window: TimeWindow, bypass_restrictions=False) -> List[dict]:
        conflicts = []
        for court in courts:
            if not bypass_restrictions:
                schedule = CourtSchedule.from_court(court)
                if not schedule.is_open(window.day, window.start_time, window.end_time):
                    conflicts.append(_conflict(court, REASON_OUTSIDE_HOURS))
                    continue
            clashing = self.checker.find_conflicts(court, window.day, window.start_time, window.end_time)
            if clashing:
                conflicts.append(_conflict(court, REASON_BOOKED, clashing))
                continue
            if not bypass_restrictions and not self._window_price(court, window).bookable:
                conflicts.append(_conflict(court, REASON_UNPRICED))
        return conflicts

    def _window_price(self, court, window: TimeWindow):
        return self.checker.pricing.quote(court, window.day, window.start_time, window.end_time)

    def check_availability(self, day, start_time, end_time, bypass_restrictions=False) -> VenueCheck:
        window = window_for(day, start_time, end_time)
        courts = self.venue_courts(window)
        if not courts:
            raise NotFoundError("No bookable courts for a full-venue booking")
        conflicts = self._conflicts(courts, window, bypass_restrictions)
        total = sum(self._window_price(c, window).total_price for c in courts)
        return VenueCheck(not conflicts, courts, conflicts, round(total, 2))

    def _new_booking(self, court, window: TimeWindow, user, players, total_players, notes,
                     group, created_by, bypass_restrictions, points_override):
        price = self._window_price(court, window)
        lines = [f"Full venue booking - {court.name}"]
        if notes:
            lines.append(notes.strip())
        booking = Booking(
            user_id=user.id,
            court_id=court.id,
            date=window.day,
            end_date=window.end_day,
            start_time=window.start_time,
            end_time=window.end_time,
            duration_minutes=window.minutes,
            players=players,
            total_players=total_players,
            notes="\n".join(lines),
            status="confirmed" if created_by == "admin" else "pending",
            base_price=price.base_price,
            member_discount=0,
            total_price=price.total_price,
            custom_points=points_override,
            is_custom_points=points_override is not None,
            is_full_venue=True,
            full_venue_group=group,
            created_by=created_by,
            bypass_restrictions=bypass_restrictions,
        )
        db.session.add(booking)
        return booking

    def book_entire_venue(self, day, start_time, end_time, players, notes=None, user=None,
                          total_players=None, duration=None, points_override=None,
                          bypass_restrictions=False, created_by="user") -> FullVenueResult:
        window = window_for(day, start_time, end_time)
        if duration is not None:
            try:
                duration = int(duration)
            except (TypeError, ValueError):
                raise ValidationError("duration must be a number of minutes")
            if duration != window.minutes:
                raise ValidationError("duration does not match start_time/end_time")
        if points_override is not None and (
                isinstance(points_override, bool) or not isinstance(points_override, int) or points_override < 0):
            raise ValidationError("points_deduction must be a non-negative integer")
        players = clean_players(players)
        total_players = total_players or max(len(players), 1)

        courts = self.venue_courts(window)
        if not courts:
            raise NotFoundError("No bookable courts for a full-venue booking")

        group = uuid.uuid4().hex
        with court_write_lock([c.id for c in courts]):
            conflicts = self._conflicts(courts, window, bypass_restrictions)
            if conflicts:
                logger.info("Full venue %s %s-%s rejected: %s", window.day, start_time, end_time,
                            [c["court_id"] for c in conflicts])
                raise VenueUnavailableError(conflicts)

            bookings = [
                self._new_booking(court, window, user, players, total_players, notes, group,
                                  created_by, bypass_restrictions, points_override)
                for court in courts
            ]
            db.session.flush()

            ids = [b.id for b in bookings]
            for b in bookings:
                b.full_venue_booking_ids = [i for i in ids if i != b.id]
            db.session.commit()

        computed = round(sum(b.total_price for b in bookings), 2)
        total = points_override if points_override is not None else computed
        logger.info("Full venue group %s booked on %d courts, total %s", group, len(bookings), total)
        return FullVenueResult(
            bookings=bookings,
            total_price=total,
            message=f"Full venue booked: {len(bookings)} courts, total {total}",
            group=group,
            computed_price=computed,
            is_custom_points=points_override is not None,
        )

    def group_bookings(self, booking: Booking) -> List[Booking]:
        if not booking.is_full_venue or not booking.full_venue_group:
            raise NotFoundError("Not a full venue booking")
        return (
            Booking.query
            .filter(Booking.full_venue_group == booking.full_venue_group)
            .order_by(Booking.court_id.asc())
            .all()
        )

    def cancel(self, booking_id, actor_id, is_admin=False, reason=None) -> List[Booking]:
        """Cancel every booking of the group that `booking_id` belongs to."""
        booking = get_booking(booking_id)
        if not booking.is_full_venue:
            raise NotFoundError("Not a full venue booking")
        return cancel_booking(booking, actor_id, is_admin=is_admin, reason=reason)

    def details(self, booking_id) -> dict:
        booking = get_booking(booking_id)
        rows = self.group_bookings(booking)
        total = sum(b.total_price for b in rows)
        custom = next((b.custom_points for b in rows if b.is_custom_points), None)
        return {
            "group": booking.full_venue_group,
            "bookings": [b.to_dict() for b in rows],
            "total_courts": len(rows),
            "total_price": custom if custom is not None else round(total, 2),
        }

    def list_groups(self, status: Optional[str] = None, day=None) -> List[dict]:
        q = Booking.query.filter(Booking.is_full_venue.is_(True))
        if status:
            q = q.filter(Booking.status == status)
        if day:
            q = q.filter(Booking.date == parse_day(day))
        rows = q.order_by(Booking.date.asc(), Booking.start_time.asc(), Booking.court_id.asc()).all()

        groups = {}
        for b in rows:
            entry = groups.setdefault(b.full_venue_group, {
                "group": b.full_venue_group,
                "date": b.date.isoformat(),
                "start_time": b.start_time,
                "end_time": b.end_time,
                "status": b.status,
                "booking_ids": [],
            })
            entry["booking_ids"].append(b.id)
        return list(groups.values())

