from flask import Blueprint, request, jsonify, g

from models import db
from models.user import User
from security.rbac import is_admin
from services.booking_service import get_booking
from services.errors import PermissionDeniedError, VenueUnavailableError
from services.full_venue import FullVenueCoordinator
from utils.auth_context import login_required
from utils.audit import log_event

full_venue_bp = Blueprint("full_venue", __name__, url_prefix="/full-venue")

REQUIRED_FIELDS = ("date", "start_time", "end_time", "duration", "players", "total_players")


@full_venue_bp.post("")
@login_required
def create_full_venue():
    data = request.get_json(silent=True) or {}
    missing = [k for k in REQUIRED_FIELDS if data.get(k) in (None, "", [])]
    if missing:
        return jsonify(error=f"Missing fields: {', '.join(missing)}"), 400

    admin = is_admin()
    points = data.get("points_deduction")
    if points is not None and not admin:
        raise PermissionDeniedError("Only admins may set a custom points amount")

    user = g.user
    if data.get("user_id") is not None and admin:
        user = db.session.get(User, data["user_id"])
        if user is None:
            return jsonify(error="User not found"), 404

    coordinator = FullVenueCoordinator.for_app()
    try:
        result = coordinator.book_entire_venue(
            data["date"],
            data["start_time"],
            data["end_time"],
            data["players"],
            notes=data.get("notes"),
            user=user,
            total_players=data.get("total_players"),
            duration=data.get("duration"),
            points_override=points,
            bypass_restrictions=admin and data.get("bypass_restrictions") is True,
            created_by="admin" if admin else "user",
        )
    except VenueUnavailableError as exc:
        log_event("FULL_VENUE_FAIL_CONFLICT", user_id=g.user.id, entity="full_venue",
                  metadata={"date": data.get("date"), "conflicts": [c["court_id"] for c in exc.conflicts]})
        raise

    log_event("FULL_VENUE_CREATE", user_id=g.user.id, entity="full_venue", entity_id=result.group,
              metadata={"booking_ids": [b.id for b in result.bookings], "total_price": result.total_price})
    return jsonify(result.to_dict()), 201


@full_venue_bp.post("/check-availability")
@login_required
def check_full_venue():
    data = request.get_json(silent=True) or {}
    check = FullVenueCoordinator.for_app().check_availability(
        data.get("date"),
        data.get("start_time"),
        data.get("end_time"),
        bypass_restrictions=is_admin() and data.get("bypass_restrictions") is True,
    )
    return jsonify(check.to_dict()), 200


@full_venue_bp.get("")
@login_required
def list_full_venue():
    groups = FullVenueCoordinator.for_app().list_groups(
        status=request.args.get("status"),
        day=request.args.get("date"),
    )
    return jsonify(groups), 200


@full_venue_bp.get("/<int:booking_id>")
@login_required
def full_venue_detail(booking_id: int):
    booking = get_booking(booking_id)
    if booking.user_id != g.user.id and not is_admin():
        return jsonify(error="Booking not found"), 404
    return jsonify(FullVenueCoordinator.for_app().details(booking_id)), 200


@full_venue_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_full_venue(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = get_booking(booking_id)
    admin = is_admin()
    if booking.user_id != g.user.id and not admin:
        return jsonify(error="Booking not found"), 404
    rows = FullVenueCoordinator.for_app().cancel(booking.id, g.user.id, is_admin=admin,
                                                 reason=data.get("reason"))

    log_event("FULL_VENUE_CANCEL", user_id=g.user.id, entity="full_venue", entity_id=booking.full_venue_group,
              metadata={"cancelled_ids": [b.id for b in rows]})
    return jsonify(message=f"Cancelled {len(rows)} bookings", cancelled=[b.id for b in rows]), 200
