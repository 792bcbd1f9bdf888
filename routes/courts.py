from datetime import datetime
from sqlalchemy.exc import IntegrityError

from flask import Blueprint, request, jsonify, g

from models import db
from models.court import AMENITIES, COURT_TYPES, Court
from security.rbac import require_roles
from services.availability import AvailabilityChecker
from services.booking_service import get_court
from services.errors import ValidationError
from services.schedule import validate_operating_hours, validate_time_slots
from utils.audit import log_event
from utils.timewindow import venue_now

court_bp = Blueprint("court", __name__, url_prefix="/courts")


def _is_member():
    user = getattr(g, "user", None)
    return bool(user and user.is_member)


def _number(data, key, minimum=None, maximum=None, required=False):
    value = data.get(key)
    if value is None:
        if required:
            raise ValidationError(f"{key} is required")
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{key} must be a number")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{key} must be at most {maximum}")
    return value


def _court_fields(data, partial=False):
    """Validated column values from an admin create/update payload."""
    fields = {}
    if "name" in data or not partial:
        name = (data.get("name") or "").strip()
        if not name or len(name) > 50:
            raise ValidationError("name must be 1-50 characters")
        fields["name"] = name
    if "number" in data or not partial:
        number = _number(data, "number", minimum=1, required=True)
        fields["number"] = int(number)
    if "type" in data or not partial:
        court_type = data.get("type")
        if court_type not in COURT_TYPES:
            raise ValidationError(f"type must be one of {', '.join(COURT_TYPES)}")
        fields["type"] = court_type
    if "capacity" in data or not partial:
        fields["capacity"] = int(_number(data, "capacity", minimum=2, maximum=8, required=True))
    if "description" in data:
        fields["description"] = (data.get("description") or "").strip()[:500] or None
    if "amenities" in data:
        amenities = data.get("amenities") or []
        unknown = [a for a in amenities if a not in AMENITIES]
        if unknown:
            raise ValidationError(f"Unknown amenities: {', '.join(map(str, unknown))}")
        fields["amenities"] = list(amenities)

    pricing = data.get("pricing") or {}
    if "time_slots" in pricing:
        fields["time_slots"] = validate_time_slots(pricing.get("time_slots"))
    if "peak_rate" in pricing:
        fields["peak_rate"] = _number(pricing, "peak_rate", minimum=0)
    if "off_peak_rate" in pricing:
        fields["off_peak_rate"] = _number(pricing, "off_peak_rate", minimum=0)
    if "member_discount" in pricing:
        fields["member_discount"] = _number(pricing, "member_discount", minimum=0, maximum=100) or 0
    if "operating_hours" in data:
        fields["operating_hours"] = validate_operating_hours(data.get("operating_hours"))
    if "is_active" in data:
        fields["is_active"] = bool(data.get("is_active"))
    return fields


# ---------- PUBLIC: browse courts ----------
@court_bp.get("")
def list_courts():
    court_type = request.args.get("type")
    available_only = request.args.get("available") == "true"

    q = Court.query.filter(Court.is_active.is_(True))
    if court_type:
        q = q.filter(Court.type == court_type)
    courts = q.order_by(Court.number.asc()).all()

    if available_only:
        now = venue_now()
        courts = [c for c in courts if not c.under_maintenance_at(now)]
    return jsonify([c.to_dict() for c in courts]), 200


@court_bp.get("/<int:court_id>")
def get_court_detail(court_id: int):
    return jsonify(get_court(court_id).to_dict()), 200


# ---------- PUBLIC: availability + price ----------
@court_bp.get("/<int:court_id>/availability")
def court_availability(court_id: int):
    court = get_court(court_id)
    checker = AvailabilityChecker.for_app()
    result = checker.check_slot(
        court,
        request.args.get("date"),
        request.args.get("start_time"),
        request.args.get("end_time"),
        is_member=_is_member(),
    )
    return jsonify(result.to_dict()), 200


@court_bp.post("/<int:court_id>/availability/batch")
def court_availability_batch(court_id: int):
    data = request.get_json(silent=True) or {}
    day = data.get("date")
    slots = data.get("time_slots")
    if not day or not isinstance(slots, list):
        return jsonify(error="date and time_slots are required"), 400
    if not all(isinstance(s, dict) for s in slots):
        return jsonify(error="each time slot needs start_time and end_time"), 400

    court = get_court(court_id)
    results = AvailabilityChecker.for_app().check_slots(court, day, slots, is_member=_is_member())
    return jsonify(
        date=day,
        court_id=court.id,
        time_slots=[r.to_dict() for r in results],
    ), 200


# ---------- ADMIN: manage courts ----------
@court_bp.post("")
@require_roles("ADMIN")
def create_court():
    data = request.get_json(silent=True) or {}
    court = Court(**_court_fields(data))
    db.session.add(court)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Court number already exists"), 409

    log_event("COURT_CREATE", user_id=g.user.id, entity="court", entity_id=court.id)
    return jsonify(court.to_dict()), 201


@court_bp.put("/<int:court_id>")
@require_roles("ADMIN")
def update_court(court_id: int):
    data = request.get_json(silent=True) or {}
    court = get_court(court_id)
    fields = _court_fields(data, partial=True)
    for key, value in fields.items():
        setattr(court, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Court number already exists"), 409

    log_event("COURT_UPDATE", user_id=g.user.id, entity="court", entity_id=court.id,
              metadata={"fields": sorted(fields)})
    return jsonify(court.to_dict()), 200


@court_bp.delete("/<int:court_id>")
@require_roles("ADMIN")
def deactivate_court(court_id: int):
    # soft delete: existing bookings keep their court reference
    court = get_court(court_id)
    court.is_active = False
    db.session.commit()

    log_event("COURT_DEACTIVATE", user_id=g.user.id, entity="court", entity_id=court.id)
    return jsonify(message="Court deactivated"), 200


def _parse_moment(value, key):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {key}. Use ISO e.g. 2026-01-20T18:00:00")


@court_bp.put("/<int:court_id>/maintenance")
@require_roles("ADMIN")
def set_maintenance(court_id: int):
    data = request.get_json(silent=True) or {}
    flag = data.get("is_under_maintenance")
    if not isinstance(flag, bool):
        return jsonify(error="is_under_maintenance must be a boolean"), 400

    start = _parse_moment(data.get("maintenance_start"), "maintenance_start")
    end = _parse_moment(data.get("maintenance_end"), "maintenance_end")
    if start and end and end <= start:
        return jsonify(error="maintenance_end must be after maintenance_start"), 400

    court = get_court(court_id)
    court.is_under_maintenance = flag
    court.maintenance_start = start
    court.maintenance_end = end
    court.maintenance_reason = (data.get("maintenance_reason") or "").strip()[:200] or None
    db.session.commit()

    log_event("COURT_MAINTENANCE_UPDATE", user_id=g.user.id, entity="court", entity_id=court.id,
              metadata={"is_under_maintenance": flag})
    return jsonify(court.to_dict()), 200
