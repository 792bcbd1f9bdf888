from flask import Blueprint, request, jsonify, g

from models import db
from models.booking import Booking
from models.user import User
from security.rbac import is_admin
from services.booking_service import cancel_booking, court_calendar, create_booking, get_booking
from utils.auth_context import login_required
from utils.audit import log_event

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def _booking_user(data):
    """Admins may book on behalf of another user; everyone else books for themselves."""
    target_id = data.get("user_id")
    if target_id is None or not is_admin():
        return g.user
    return db.session.get(User, target_id)


# ---------- PLAYERS: book a court (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("")
@login_required
def create():
    data = request.get_json(silent=True) or {}
    court_id = data.get("court_id")
    if not court_id:
        return jsonify(error="court_id required"), 400

    user = _booking_user(data)
    if user is None:
        return jsonify(error="User not found"), 404

    admin = is_admin()
    result = create_booking(
        court_id,
        data.get("date"),
        data.get("start_time"),
        data.get("end_time"),
        user,
        players=data.get("players"),
        total_players=data.get("total_players"),
        special_requests=data.get("special_requests"),
        created_by="admin" if admin else "user",
        bypass_restrictions=admin and data.get("bypass_restrictions") is True,
        confirm=admin and data.get("confirm") is True,
    )

    if not result.available:
        log_event("BOOKING_FAIL_UNAVAILABLE", user_id=g.user.id, entity="court", entity_id=court_id,
                  metadata={"date": data.get("date"), "start_time": data.get("start_time"),
                            "end_time": data.get("end_time"), "reason": result.slot.reason})
        return jsonify(error=result.slot.reason, **result.slot.to_dict()), 409

    booking = result.booking
    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"court_id": booking.court_id, "for_user": booking.user_id})
    return jsonify(booking.to_dict()), 201


# ---------- PLAYERS: view my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    status = request.args.get("status")
    q = Booking.query.filter_by(user_id=g.user.id)
    if status:
        q = q.filter_by(status=status)

    rows = q.order_by(Booking.date.desc(), Booking.start_time.desc()).limit(200).all()
    return jsonify([b.to_dict() for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_one(booking_id: int):
    booking = get_booking(booking_id)
    if booking.user_id != g.user.id and not is_admin():
        return jsonify(error="Booking not found"), 404
    return jsonify(booking.to_dict()), 200


# ---------- PLAYERS: cancel booking (policy window) ----------
@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None

    booking = get_booking(booking_id)
    admin = is_admin()
    if booking.user_id != g.user.id and not admin:
        return jsonify(error="Booking not found"), 404

    rows = cancel_booking(booking, g.user.id, is_admin=admin, reason=reason)

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"reason": reason, "cancelled_ids": [b.id for b in rows]})
    return jsonify(message="Cancelled", cancelled=[b.id for b in rows]), 200


# ---------- PUBLIC: court day calendar ----------
@booking_bp.get("/calendar/<int:court_id>")
def calendar(court_id: int):
    rows = court_calendar(court_id, request.args.get("date"))
    return jsonify([
        {
            "id": b.id,
            "start_time": b.start_time,
            "end_time": b.end_time,
            "end_date": b.end_date.isoformat() if b.end_date else None,
            "status": b.status,
            "is_full_venue": b.is_full_venue,
        }
        for b in rows
    ]), 200
