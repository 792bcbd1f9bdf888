from sqlalchemy import func

from flask import Blueprint, jsonify, g, request

from models import db
from models.booking import ACTIVE_STATUSES, BOOKING_STATUSES, Booking
from models.court import Court
from models.user import User
from security.rbac import require_roles
from services.booking_service import get_booking, set_custom_points, update_status
from utils.audit import log_event
from utils.timewindow import parse_day, venue_now

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/dashboard")
@require_roles("ADMIN")
def dashboard():
    today = venue_now().date()

    by_status = dict(
        db.session.query(Booking.status, func.count(Booking.id))
        .group_by(Booking.status)
        .all()
    )
    todays = Booking.query.filter(Booking.date == today, Booking.status.in_(ACTIVE_STATUSES)).count()
    upcoming = Booking.query.filter(Booking.date >= today, Booking.status.in_(ACTIVE_STATUSES)).count()
    revenue = (
        db.session.query(func.coalesce(func.sum(Booking.total_price), 0))
        .filter(Booking.status.in_(("confirmed", "completed")))
        .scalar()
    )

    log_event("ADMIN_DASHBOARD_VIEW", user_id=g.user.id)
    return jsonify(
        courts={
            "total": Court.query.count(),
            "active": Court.query.filter(Court.is_active.is_(True)).count(),
            "under_maintenance": Court.query.filter(Court.is_under_maintenance.is_(True)).count(),
        },
        bookings={
            "by_status": {s: by_status.get(s, 0) for s in BOOKING_STATUSES},
            "today": todays,
            "upcoming": upcoming,
        },
        users=User.query.count(),
        revenue=round(float(revenue or 0), 2),
    ), 200


@admin_bp.get("/bookings")
@require_roles("ADMIN")
def list_bookings():
    status = request.args.get("status")
    court_id = request.args.get("court_id", type=int)
    user_id = request.args.get("user_id", type=int)
    date_str = request.args.get("date")  # YYYY-MM-DD
    full_venue = request.args.get("full_venue")

    q = Booking.query
    if status:
        q = q.filter(Booking.status == status)
    if court_id:
        q = q.filter(Booking.court_id == court_id)
    if user_id:
        q = q.filter(Booking.user_id == user_id)
    if date_str:
        q = q.filter(Booking.date == parse_day(date_str))
    if full_venue in ("true", "false"):
        q = q.filter(Booking.is_full_venue.is_(full_venue == "true"))

    rows = q.order_by(Booking.date.desc(), Booking.start_time.desc()).limit(200).all()
    log_event("ADMIN_BOOKINGS_VIEW", user_id=g.user.id)
    return jsonify([b.to_dict() for b in rows]), 200


@admin_bp.put("/bookings/<int:booking_id>/status")
@require_roles("ADMIN")
def change_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    if not status:
        return jsonify(error="status required"), 400

    booking = get_booking(booking_id)
    previous = booking.status
    update_status(booking, status)

    log_event("BOOKING_STATUS_UPDATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"from": previous, "to": status})
    return jsonify(booking.to_dict()), 200


@admin_bp.put("/bookings/<int:booking_id>/custom-points")
@require_roles("ADMIN")
def change_custom_points(booking_id: int):
    data = request.get_json(silent=True) or {}
    if "custom_points" not in data:
        return jsonify(error="custom_points required (null clears it)"), 400

    booking = get_booking(booking_id)
    set_custom_points(booking, data.get("custom_points"))

    log_event("BOOKING_CUSTOM_POINTS", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"custom_points": booking.custom_points})
    return jsonify(booking.to_dict()), 200
