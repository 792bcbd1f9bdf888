from datetime import datetime, timedelta
from unittest.mock import patch

import pytest

from models import db
from models.booking import Booking
from services.availability import REASON_BOOKED
from services.booking_service import (
    cancel_booking,
    court_calendar,
    create_booking,
    max_advance_days,
    set_custom_points,
    update_status,
)
from services.errors import (
    CancellationNotAllowedError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from services.full_venue import FullVenueCoordinator
from services.locking import lock_for
from tests.conftest import NOW, SATURDAY, TUESDAY


def test_create_booking_prices_and_stores(court, player):
    result = create_booking(court.id, TUESDAY, "10:00", "11:00", player,
                            players=[{"name": " Ann "}], now=NOW)

    assert result.available
    booking = result.booking
    assert booking.status == "pending"
    assert booking.total_price == 100
    assert booking.end_date == TUESDAY
    assert booking.players == [{"name": "Ann", "email": None, "phone": None}]
    assert booking.total_players == 1


def test_member_gets_discount(court, make_user):
    member = make_user("vip@example.com", membership_level="vip")
    booking = create_booking(court.id, TUESDAY, "18:00", "19:00", member, now=NOW).booking
    assert booking.base_price == 150
    assert booking.total_price == 135


def test_second_booking_for_same_slot_is_refused(court, player, make_user):
    other = make_user("other@example.com")
    create_booking(court.id, TUESDAY, "10:00", "12:00", player, now=NOW)

    result = create_booking(court.id, TUESDAY, "11:00", "12:00", other, now=NOW)

    assert not result.available
    assert result.booking is None
    assert result.slot.reason == REASON_BOOKED


def test_overnight_booking_gets_next_day_end_date(court, admin):
    booking = create_booking(court.id, TUESDAY, "23:00", "01:00", admin, now=NOW).booking
    assert booking.end_date == TUESDAY + timedelta(days=1)
    assert booking.duration_minutes == 120


def test_duration_limits(court, player):
    with pytest.raises(ValidationError):
        create_booking(court.id, TUESDAY, "10:00", "10:30", player, now=NOW)
    with pytest.raises(ValidationError):
        create_booking(court.id, TUESDAY, "10:00", "13:00", player, now=NOW)


def test_cannot_book_the_past_or_too_far_ahead(court, player):
    with pytest.raises(ValidationError):
        create_booking(court.id, NOW.date(), "08:00", "09:00", player, now=NOW)
    with pytest.raises(ValidationError):
        create_booking(court.id, NOW.date() + timedelta(days=8), "10:00", "11:00", player, now=NOW)


def test_advance_window_depends_on_role(app, player, make_user):
    coach = make_user("coach@example.com", roles=("COACH",))
    assert max_advance_days(player) == 7
    assert max_advance_days(coach) == 14


def test_admin_bypass_skips_rules_but_not_conflicts(make_court, admin, player):
    court = make_court(2, is_under_maintenance=True)
    result = create_booking(court.id, NOW.date(), "08:00", "11:00", admin,
                            bypass_restrictions=True, confirm=True, created_by="admin", now=NOW)
    assert result.available
    assert result.booking.status == "confirmed"
    assert result.booking.bypass_restrictions

    clash = create_booking(court.id, NOW.date(), "10:00", "11:00", player,
                           bypass_restrictions=True, now=NOW)
    assert not clash.available


def test_unknown_court(app, player):
    with pytest.raises(NotFoundError):
        create_booking(999, TUESDAY, "10:00", "11:00", player, now=NOW)


def test_cancel_respects_notice_period(court, player):
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).booking

    with pytest.raises(CancellationNotAllowedError):
        cancel_booking(booking, player.id, now=datetime(2026, 10, 20, 8, 30))

    rows = cancel_booking(booking, player.id, reason="rain", now=NOW)
    assert rows == [booking]
    assert booking.status == "cancelled"
    assert booking.cancelled_by == "user"
    assert booking.cancel_reason == "rain"


def test_admin_can_cancel_late(court, player, admin):
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).booking
    cancel_booking(booking, admin.id, is_admin=True, now=datetime(2026, 10, 20, 9, 45))
    assert booking.status == "cancelled"
    assert booking.cancelled_by == "admin"


def test_cancelled_booking_frees_the_slot(court, player):
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).booking
    cancel_booking(booking, player.id, now=NOW)
    assert create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).available


def test_cannot_cancel_twice(court, player):
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).booking
    cancel_booking(booking, player.id, now=NOW)
    with pytest.raises(CancellationNotAllowedError):
        cancel_booking(booking, player.id, now=NOW)


def test_status_transitions(court, player):
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).booking

    update_status(booking, "confirmed")
    update_status(booking, "completed")
    assert booking.status == "completed"

    with pytest.raises(InvalidTransitionError):
        update_status(booking, "confirmed")
    with pytest.raises(ValidationError):
        update_status(booking, "archived")


def test_pending_cannot_jump_to_no_show(court, player):
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).booking
    with pytest.raises(InvalidTransitionError):
        update_status(booking, "no_show")


def test_custom_points_override_and_clear(court, player):
    booking = create_booking(court.id, SATURDAY, "10:00", "11:00", player, now=NOW).booking
    assert booking.charged_total == 150

    set_custom_points(booking, 40)
    assert booking.is_custom_points
    assert booking.charged_total == 40

    set_custom_points(booking, None)
    assert not booking.is_custom_points
    assert booking.charged_total == 150

    with pytest.raises(ValidationError):
        set_custom_points(booking, -5)


def test_court_calendar_lists_active_bookings(court, player):
    first = create_booking(court.id, TUESDAY, "14:00", "15:00", player, now=NOW).booking
    second = create_booking(court.id, TUESDAY, "09:00", "10:00", player, now=NOW).booking
    cancelled = create_booking(court.id, TUESDAY, "16:00", "17:00", player, now=NOW).booking
    cancel_booking(cancelled, player.id, now=NOW)

    assert court_calendar(court.id, TUESDAY.isoformat()) == [second, first]


def test_player_can_book_across_midnight(court, player):
    result = create_booking(court.id, TUESDAY, "23:00", "01:00", player, now=NOW)

    assert result.available
    assert not result.booking.bypass_restrictions
    assert result.booking.end_date == TUESDAY + timedelta(days=1)
    assert result.booking.total_price == 300


def test_cancelling_via_status_cancels_the_full_venue_group(make_court, player):
    for number in (1, 2, 3):
        make_court(number)
    result = FullVenueCoordinator.for_app().book_entire_venue(TUESDAY, "10:00", "11:00", [{"name": "Ann"}],
                                                              user=player)

    update_status(result.bookings[0], "cancelled")

    assert all(b.status == "cancelled" for b in result.bookings)
    assert all(b.cancelled_by == "admin" for b in result.bookings)
    assert Booking.query.filter(Booking.status != "cancelled").count() == 0


def test_unavailable_slot_rolls_back_and_releases_lock(court, player, make_user):
    create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW)
    other = make_user("other@example.com")

    with patch.object(db.session, "rollback", wraps=db.session.rollback) as rollback:
        result = create_booking(court.id, TUESDAY, "10:00", "11:00", other, now=NOW)

    assert not result.available
    assert rollback.called
    assert not lock_for(court.id).locked()
