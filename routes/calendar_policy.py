from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services.calendar_policy import current_policy, get_calendar_store, weekday_index
from utils.audit import log_event
from utils.timewindow import parse_day

calendar_bp = Blueprint("calendar", __name__, url_prefix="/calendar")

DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")


# ---------- ADMIN: weekend-rate configuration ----------
@calendar_bp.get("/config")
@require_roles("ADMIN")
def get_config():
    return jsonify(current_policy().to_dict()), 200


@calendar_bp.put("/config")
@require_roles("ADMIN")
def update_config():
    data = request.get_json(silent=True) or {}
    policy = get_calendar_store().update(
        weekend_days=data.get("weekend_days"),
        include_friday_evening=data.get("include_friday_evening"),
        friday_evening_hour=data.get("friday_evening_hour"),
        user_id=g.user.id,
    )
    log_event("CALENDAR_POLICY_UPDATE", user_id=g.user.id, entity="calendar_policy",
              entity_id=policy.version, metadata={k: data.get(k) for k in
                                                  ("weekend_days", "include_friday_evening", "friday_evening_hour")})
    return jsonify(policy.to_dict()), 200


# ---------- ADMIN: holidays ----------
@calendar_bp.get("/holidays")
@require_roles("ADMIN")
def list_holidays():
    rows = get_calendar_store().list_holidays()
    return jsonify([
        {"id": h.id, "date": h.date, "name": h.name, "description": h.description}
        for h in rows
    ]), 200


@calendar_bp.post("/holidays")
@require_roles("ADMIN")
def add_holidays():
    data = request.get_json(silent=True) or {}
    dates = data.get("dates")
    if dates is None and data.get("date"):
        dates = [data["date"]]

    policy = get_calendar_store().add_holidays(
        dates,
        name=(data.get("name") or "").strip()[:100] or None,
        description=(data.get("description") or "").strip()[:255] or None,
        user_id=g.user.id,
    )
    log_event("HOLIDAY_ADD", user_id=g.user.id, entity="holiday", metadata={"dates": dates})
    return jsonify(policy.to_dict()), 201


@calendar_bp.delete("/holidays")
@require_roles("ADMIN")
def remove_holidays():
    data = request.get_json(silent=True) or {}
    dates = data.get("dates")
    if dates is None and data.get("date"):
        dates = [data["date"]]

    policy = get_calendar_store().remove_holidays(dates, user_id=g.user.id)
    log_event("HOLIDAY_REMOVE", user_id=g.user.id, entity="holiday", metadata={"dates": dates})
    return jsonify(policy.to_dict()), 200


# ---------- PUBLIC: classify a date ----------
@calendar_bp.post("/check")
def check_date():
    data = request.get_json(silent=True) or {}
    day = parse_day(data.get("date"))
    hour = data.get("hour")
    if hour is not None and (isinstance(hour, bool) or not isinstance(hour, int) or not 0 <= hour <= 23):
        return jsonify(error="hour must be an integer between 0 and 23"), 400

    policy = current_policy()
    index = weekday_index(day)
    return jsonify(
        date=day.isoformat(),
        is_weekend=policy.is_weekend_rate(day, hour),
        weekend_type=policy.classify(day, hour),
        is_holiday=policy.is_holiday(day),
        day_of_week=index,
        day_name=DAY_NAMES[index],
    ), 200
