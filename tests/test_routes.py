from unittest.mock import patch

import pytest

from models.audit_log import AuditLog
from models.booking import Booking
from tests.conftest import NOW, SATURDAY, TUESDAY


@pytest.fixture(autouse=True)
def fixed_clock():
    with patch("services.booking_service.venue_now", return_value=NOW):
        yield


def _actions():
    return [row.action for row in AuditLog.query.order_by(AuditLog.id).all()]


def test_health(app):
    resp = app.test_client().get("/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}
    assert resp.headers["X-Frame-Options"] == "DENY"


def test_public_court_listing_and_availability(app, court):
    client = app.test_client()

    listing = client.get("/courts").get_json()
    assert [c["number"] for c in listing] == [1]

    resp = client.get(f"/courts/{court.id}/availability",
                      query_string={"date": SATURDAY.isoformat(), "start_time": "10:00", "end_time": "11:00"})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["available"] is True
    assert body["pricing"]["hourly_rate"] == 150
    assert body["pricing"]["label"] == "peak"


def test_invalid_date_is_a_400(app, court):
    resp = app.test_client().get(f"/courts/{court.id}/availability",
                                 query_string={"date": "tomorrow", "start_time": "10:00", "end_time": "11:00"})
    assert resp.status_code == 400
    assert "Invalid date" in resp.get_json()["error"]


def test_batch_availability(app, court):
    resp = app.test_client().post(f"/courts/{court.id}/availability/batch", json={
        "date": TUESDAY.isoformat(),
        "time_slots": [{"start_time": "10:00", "end_time": "11:00"}, {"start_time": "18:00", "end_time": "19:00"}],
    })
    slots = resp.get_json()["time_slots"]
    assert [s["pricing"]["hourly_rate"] for s in slots] == [100, 150]


def test_booking_requires_login(app, court):
    resp = app.test_client().post("/bookings", json={"court_id": court.id})
    assert resp.status_code == 401


def test_booking_requires_csrf_header(app, court, player_client):
    player_client.environ_base.pop("HTTP_X_CSRF_TOKEN")
    resp = player_client.post("/bookings", json={
        "court_id": court.id, "date": TUESDAY.isoformat(), "start_time": "10:00", "end_time": "11:00",
    })
    assert resp.status_code == 403


def test_player_books_and_double_booking_is_refused(court, player_client):
    payload = {"court_id": court.id, "date": TUESDAY.isoformat(), "start_time": "10:00", "end_time": "11:00"}

    first = player_client.post("/bookings", json=payload)
    assert first.status_code == 201
    assert first.get_json()["pricing"]["total_price"] == 100

    second = player_client.post("/bookings", json=payload)
    assert second.status_code == 409
    assert second.get_json()["reason"] == "time slot already booked"

    assert "BOOKING_CREATE" in _actions()
    assert "BOOKING_FAIL_UNAVAILABLE" in _actions()


def test_player_cannot_bypass(make_court, player_client):
    court = make_court(2, is_under_maintenance=True)
    resp = player_client.post("/bookings", json={
        "court_id": court.id, "date": TUESDAY.isoformat(), "start_time": "10:00", "end_time": "11:00",
        "bypass_restrictions": True,
    })
    assert resp.status_code == 409
    assert resp.get_json()["reason"] == "court under maintenance"


def test_my_bookings_and_cancel(court, player_client):
    created = player_client.post("/bookings", json={
        "court_id": court.id, "date": TUESDAY.isoformat(), "start_time": "10:00", "end_time": "11:00",
    }).get_json()

    mine = player_client.get("/bookings/me").get_json()
    assert [b["id"] for b in mine] == [created["id"]]

    resp = player_client.post(f"/bookings/{created['id']}/cancel", json={"reason": "injury"})
    assert resp.status_code == 200
    assert resp.get_json()["cancelled"] == [created["id"]]
    assert "BOOKING_CANCEL" in _actions()


def test_other_players_booking_is_hidden(app, court, player_client, make_user):
    from services.booking_service import create_booking
    other = make_user("other@example.com")
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", other, now=NOW).booking

    assert player_client.get(f"/bookings/{booking.id}").status_code == 404
    assert player_client.post(f"/bookings/{booking.id}/cancel").status_code == 404


def test_admin_books_for_user_with_bypass(make_court, admin_client, player):
    court = make_court(2, is_under_maintenance=True)
    resp = admin_client.post("/bookings", json={
        "court_id": court.id, "date": TUESDAY.isoformat(), "start_time": "10:00", "end_time": "13:00",
        "user_id": player.id, "bypass_restrictions": True, "confirm": True,
    })
    body = resp.get_json()
    assert resp.status_code == 201
    assert body["user_id"] == player.id
    assert body["status"] == "confirmed"
    assert body["created_by"] == "admin"


def test_admin_routes_are_forbidden_for_players(player_client):
    assert player_client.get("/admin/dashboard").status_code == 403
    assert player_client.get("/calendar/config").status_code == 403
    assert player_client.post("/courts", json={}).status_code == 403


def test_admin_court_management(admin_client):
    resp = admin_client.post("/courts", json={
        "name": "Court D", "number": 4, "type": "dink", "capacity": 4,
        "pricing": {"time_slots": [{"start_time": "08:00", "end_time": "22:00", "price": 90, "name": "day"}]},
    })
    assert resp.status_code == 201
    court_id = resp.get_json()["id"]

    dup = admin_client.post("/courts", json={"name": "Again", "number": 4, "type": "dink", "capacity": 4})
    assert dup.status_code == 409

    bad = admin_client.put(f"/courts/{court_id}", json={"pricing": {"time_slots": [{"start_time": "8am"}]}})
    assert bad.status_code == 400

    maint = admin_client.put(f"/courts/{court_id}/maintenance", json={
        "is_under_maintenance": True, "maintenance_reason": "resurfacing",
    })
    assert maint.get_json()["maintenance"]["reason"] == "resurfacing"

    assert admin_client.delete(f"/courts/{court_id}").status_code == 200
    assert "COURT_MAINTENANCE_UPDATE" in _actions()


def test_calendar_config_and_check(app, admin_client):
    resp = admin_client.put("/calendar/config", json={"weekend_days": [2], "include_friday_evening": True})
    assert resp.status_code == 200
    assert resp.get_json()["weekend_days"] == [2]

    bad = admin_client.put("/calendar/config", json={"weekend_days": [8]})
    assert bad.status_code == 400

    check = app.test_client().post("/calendar/check", json={"date": TUESDAY.isoformat()}).get_json()
    assert check["is_weekend"] is True
    assert check["weekend_type"] == "weekend"
    assert check["day_of_week"] == 2

    friday = app.test_client().post("/calendar/check", json={"date": "2026-10-23", "hour": 19}).get_json()
    assert friday["is_weekend"] is True


def test_holiday_endpoints(app, admin_client):
    resp = admin_client.post("/calendar/holidays", json={"dates": [TUESDAY.isoformat()], "name": "Festival"})
    assert resp.status_code == 201
    assert admin_client.get("/calendar/holidays").get_json()[0]["name"] == "Festival"

    check = app.test_client().post("/calendar/check", json={"date": TUESDAY.isoformat()}).get_json()
    assert check["weekend_type"] == "holiday"

    admin_client.delete("/calendar/holidays", json={"dates": [TUESDAY.isoformat()]})
    check = app.test_client().post("/calendar/check", json={"date": TUESDAY.isoformat()}).get_json()
    assert check["is_holiday"] is False
    assert {"HOLIDAY_ADD", "HOLIDAY_REMOVE"} <= set(_actions())


def test_full_venue_flow(make_court, player_client, admin_client):
    courts = [make_court(n) for n in (1, 2, 3)]
    payload = {
        "date": TUESDAY.isoformat(), "start_time": "10:00", "end_time": "12:00", "duration": 120,
        "players": [{"name": "Ann"}], "total_players": 1,
    }

    denied = player_client.post("/full-venue", json=dict(payload, points_deduction=10))
    assert denied.status_code == 403

    created = player_client.post("/full-venue", json=payload)
    assert created.status_code == 201
    body = created.get_json()
    assert len(body["bookings"]) == 3
    assert body["total_price"] == 600

    clash = admin_client.post("/full-venue", json=payload)
    assert clash.status_code == 409
    assert {c["court_id"] for c in clash.get_json()["conflicts"]} == {c.id for c in courts}
    assert "FULL_VENUE_FAIL_CONFLICT" in _actions()

    first_id = body["bookings"][0]["id"]
    detail = player_client.get(f"/full-venue/{first_id}").get_json()
    assert detail["total_courts"] == 3

    cancelled = player_client.post(f"/full-venue/{first_id}/cancel", json={})
    assert cancelled.status_code == 200
    assert len(cancelled.get_json()["cancelled"]) == 3
    assert Booking.query.filter_by(status="cancelled").count() == 3


def test_full_venue_missing_fields(player_client):
    resp = player_client.post("/full-venue", json={"date": TUESDAY.isoformat()})
    assert resp.status_code == 400
    assert "start_time" in resp.get_json()["error"]


def test_admin_status_and_points(court, player, admin_client):
    from services.booking_service import create_booking
    booking = create_booking(court.id, TUESDAY, "10:00", "11:00", player, now=NOW).booking

    ok = admin_client.put(f"/admin/bookings/{booking.id}/status", json={"status": "confirmed"})
    assert ok.get_json()["status"] == "confirmed"

    bad = admin_client.put(f"/admin/bookings/{booking.id}/status", json={"status": "pending"})
    assert bad.status_code == 400

    points = admin_client.put(f"/admin/bookings/{booking.id}/custom-points", json={"custom_points": 30})
    assert points.get_json()["pricing"]["charged_total"] == 30

    listing = admin_client.get("/admin/bookings", query_string={"status": "confirmed"}).get_json()
    assert [b["id"] for b in listing] == [booking.id]

    dashboard = admin_client.get("/admin/dashboard").get_json()
    assert dashboard["bookings"]["by_status"]["confirmed"] == 1
    assert dashboard["courts"]["total"] == 1
