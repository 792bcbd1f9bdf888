import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from flask import current_app

from models import db
from models.booking import Booking
from models.court import Court
from services.availability import AvailabilityChecker, SlotResult
from services.errors import (
    CancellationNotAllowedError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from services.locking import court_write_lock
from utils.timewindow import venue_now, window_for

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"cancelled", "completed", "no_show"},
    "cancelled": set(),
    "completed": set(),
    "no_show": set(),
}

DEFAULT_ADVANCE_DAYS = {"PLAYER": 7, "COACH": 14, "ADMIN": 30}


@dataclass
class ReservationResult:
    booking: Optional[Booking]
    slot: SlotResult

    @property
    def available(self) -> bool:
        return self.booking is not None


def get_court(court_id) -> Court:
    court = db.session.get(Court, court_id) if court_id is not None else None
    if court is None:
        raise NotFoundError("Court not found")
    return court


def get_booking(booking_id) -> Booking:
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def clean_players(players):
    if players is None:
        return []
    if not isinstance(players, list):
        raise ValidationError("players must be a list")
    cleaned = []
    for p in players:
        if not isinstance(p, dict) or not (p.get("name") or "").strip():
            raise ValidationError("each player needs a name")
        cleaned.append({
            "name": p["name"].strip()[:50],
            "email": (p.get("email") or "").strip() or None,
            "phone": (p.get("phone") or "").strip() or None,
        })
    return cleaned


def max_advance_days(user) -> int:
    table = current_app.config.get("MAX_ADVANCE_DAYS_BY_ROLE", DEFAULT_ADVANCE_DAYS)
    allowed = [table[r] for r in user.role_names if r in table]
    return max(allowed) if allowed else table.get("PLAYER", 7)


def check_booking_rules(window, user, now: datetime):
    """Duration and advance-window rules that an admin bypass skips."""
    cfg = current_app.config
    minutes = window.minutes
    if minutes < cfg.get("MIN_BOOKING_MINUTES", 60):
        raise ValidationError(f"Booking must last at least {cfg.get('MIN_BOOKING_MINUTES', 60)} minutes")
    if minutes > cfg.get("MAX_BOOKING_MINUTES", 120):
        raise ValidationError(f"Booking may last at most {cfg.get('MAX_BOOKING_MINUTES', 120)} minutes")

    days_ahead = (window.day - now.date()).days
    if days_ahead < 0 or window.start_at <= now:
        raise ValidationError("Cannot book past/started slots")
    limit = max_advance_days(user)
    if days_ahead > limit:
        raise ValidationError(f"Bookings can be made at most {limit} days in advance")


def create_booking(court_id, day, start_time, end_time, user, players=None, total_players=None,
                   special_requests=None, created_by="user", bypass_restrictions=False,
                   confirm=False, now: Optional[datetime] = None) -> ReservationResult:
    window = window_for(day, start_time, end_time)
    players = clean_players(players)
    court = get_court(court_id)
    now = now or venue_now()

    if not bypass_restrictions:
        check_booking_rules(window, user, now)

    checker = AvailabilityChecker.for_app()
    with court_write_lock([court.id]):
        slot = checker.check_slot(
            court, window.day, start_time, end_time,
            is_member=user.is_member, bypass_restrictions=bypass_restrictions,
        )
        if not slot.available:
            logger.info("Court %s unavailable %s %s-%s: %s", court.id, window.day, start_time, end_time, slot.reason)
            db.session.rollback()
            return ReservationResult(None, slot)

        pricing = slot.pricing
        booking = Booking(
            user_id=user.id,
            court_id=court.id,
            date=window.day,
            end_date=window.end_day,
            start_time=start_time,
            end_time=end_time,
            duration_minutes=window.minutes,
            players=players,
            total_players=total_players or max(len(players), 1),
            special_requests=(special_requests or "").strip()[:500] or None,
            status="confirmed" if confirm else "pending",
            base_price=pricing.base_price,
            member_discount=pricing.member_discount,
            total_price=pricing.total_price,
            created_by=created_by,
            bypass_restrictions=bypass_restrictions,
        )
        db.session.add(booking)
        db.session.commit()

    logger.info("Booking %s created on court %s for %s %s-%s", booking.id, court.id, window.day, start_time, end_time)
    return ReservationResult(booking, slot)


def group_rows(booking: Booking):
    """The booking plus its still-active full-venue siblings."""
    if not booking.is_full_venue or not booking.full_venue_group:
        return [booking]
    siblings = Booking.query.filter(
        Booking.full_venue_group == booking.full_venue_group,
        Booking.status.in_(("pending", "confirmed")),
        Booking.id != booking.id,
    ).all()
    return [booking] + siblings


def can_be_cancelled(booking: Booking, now: datetime) -> bool:
    if booking.status not in ("pending", "confirmed"):
        return False
    cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 2)
    start_at = window_for(booking.date, booking.start_time, booking.end_time).start_at
    return (start_at - now).total_seconds() >= cutoff_hours * 3600


def cancel_booking(booking: Booking, actor_id, is_admin=False, reason=None,
                   now: Optional[datetime] = None):
    """Cancel a booking (and its full-venue siblings). Returns the cancelled rows."""
    now = now or venue_now()
    if booking.status not in ("pending", "confirmed"):
        raise CancellationNotAllowedError("Booking not cancellable")
    if not is_admin and not can_be_cancelled(booking, now):
        cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 2)
        raise CancellationNotAllowedError(f"Cancellation not allowed within {cutoff_hours} hours of start")

    rows = group_rows(booking)

    cancelled_by = "user" if booking.user_id == actor_id else "admin"
    stamp = datetime.utcnow()
    for row in rows:
        row.status = "cancelled"
        row.cancelled_at = stamp
        row.cancelled_by = cancelled_by
        row.cancel_reason = (reason or "").strip()[:200] or None
    db.session.commit()
    return rows


def update_status(booking: Booking, status: str) -> Booking:
    allowed = ALLOWED_TRANSITIONS.get(booking.status, set())
    if status not in ALLOWED_TRANSITIONS:
        raise ValidationError(f"Unknown status: {status}")
    if status not in allowed:
        raise InvalidTransitionError(f"Cannot change booking from {booking.status} to {status}")
    if status == "cancelled":
        # a full-venue group is only ever cancelled as a whole
        stamp = datetime.utcnow()
        for row in group_rows(booking):
            row.status = status
            row.cancelled_at = stamp
            row.cancelled_by = "admin"
    else:
        booking.status = status
    db.session.commit()
    return booking


def set_custom_points(booking: Booking, points) -> Booking:
    if points is None:
        booking.custom_points = None
        booking.is_custom_points = False
    else:
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationError("custom_points must be a non-negative integer")
        booking.custom_points = points
        booking.is_custom_points = True
    db.session.commit()
    return booking


def court_calendar(court_id, day):
    window_day = window_for(day, "00:00", "24:00").day
    court = get_court(court_id)
    return (
        Booking.query
        .filter(
            Booking.court_id == court.id,
            Booking.date == window_day,
            Booking.status.in_(("pending", "confirmed")),
        )
        .order_by(Booking.start_time.asc())
        .all()
    )
