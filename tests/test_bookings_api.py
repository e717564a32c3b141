from datetime import timedelta

import pytest

from models import db
from models.booking import Booking
from utils.timeutil import utc_now


def _slot(days_ahead, hour, hours=1):
    start = (utc_now() + timedelta(days=days_ahead)).replace(hour=hour, minute=0, second=0, microsecond=0)
    end = start + timedelta(hours=hours)
    return start.isoformat() + "Z", end.isoformat() + "Z"


@pytest.fixture
def venue(make_user, make_facility):
    owner = make_user("owner@example.com", roles=("FACILITY_OWNER",))
    return make_facility(owner)


@pytest.fixture
def player_client(make_user, login):
    make_user("player@example.com")
    return login("player@example.com")


def _book(client, facility_id, start, end, amount=500, courts=("Court 1",)):
    return client.post("/bookings", json={
        "facility": facility_id,
        "startTime": start,
        "endTime": end,
        "amount": amount,
        "selectedCourts": list(courts),
        "sport": "Badminton",
    })


def test_create_booking_requires_login(app, venue):
    start, end = _slot(2, 10)
    resp = _book(app.test_client(), venue, start, end)
    assert resp.status_code == 401
    assert resp.get_json()["success"] is False


def test_create_and_list_bookings(player_client, venue):
    start, end = _slot(2, 10, hours=2)
    resp = _book(player_client, venue, start, end, amount=1000)
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["success"] is True
    assert body["booking"]["status"] == "confirmed"
    assert body["booking"]["amount"] == 1000.0
    assert body["booking"]["selectedCourts"] == ["Court 1"]

    mine = player_client.get("/bookings/mine").get_json()
    assert mine["success"] is True
    assert [b["id"] for b in mine["bookings"]] == [body["booking"]["id"]]
    assert mine["bookings"][0]["facility"]["name"] == "Smash Arena"


def test_overlapping_booking_rejected_adjacent_accepted(player_client, venue):
    start, end = _slot(2, 10, hours=2)
    assert _book(player_client, venue, start, end).status_code == 201

    start2, end2 = _slot(2, 11, hours=2)
    clash = _book(player_client, venue, start2, end2)
    assert clash.status_code == 400
    assert clash.get_json() == {
        "success": False,
        "message": "selected time slot is no longer available",
        "code": "slot_conflict",
    }

    start3, end3 = _slot(2, 12)
    assert _book(player_client, venue, start3, end3).status_code == 201


def test_missing_fields_and_past_time(player_client, venue):
    start, end = _slot(2, 10)
    resp = player_client.post("/bookings", json={"facility": venue, "startTime": start})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "missing required fields"

    past_start, past_end = _slot(-1, 10)
    resp = _book(player_client, venue, past_start, past_end)
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "booking time must be in the future"


def test_csrf_header_required_for_writes(app, make_user, venue):
    make_user("player@example.com")
    client = app.test_client()
    client.post("/auth/login", json={"email": "player@example.com", "password": "secret123"})
    start, end = _slot(2, 10)
    resp = _book(client, venue, start, end)
    assert resp.status_code == 403
    assert resp.get_json()["message"] == "CSRF validation failed"


def test_cancel_own_booking_only(player_client, venue, make_user, login):
    start, end = _slot(3, 10)
    booking_id = _book(player_client, venue, start, end).get_json()["booking"]["id"]

    make_user("other@example.com")
    other = login("other@example.com")
    resp = other.patch(f"/bookings/{booking_id}/cancel")
    assert resp.status_code == 403

    resp = player_client.patch(f"/bookings/{booking_id}/cancel")
    assert resp.status_code == 200
    assert resp.get_json()["booking"]["status"] == "cancelled"

    resp = player_client.patch(f"/bookings/{booking_id}/cancel")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "already cancelled"

    assert player_client.patch("/bookings/999999/cancel").status_code == 404


def test_cancel_inside_cutoff_rejected(app, player_client, venue):
    with app.app_context():
        from models.user import User
        user = User.query.filter_by(email="player@example.com").one()
        soon = utc_now() + timedelta(minutes=30)
        booking = Booking(user_id=user.id, facility_id=venue, start_time=soon,
                          end_time=soon + timedelta(hours=1), amount=500, status="confirmed")
        db.session.add(booking)
        db.session.commit()
        booking_id = booking.id

    resp = player_client.patch(f"/bookings/{booking_id}/cancel")
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "must cancel at least 1 hour before start"


def _past_booking(app, email, facility_id, days_ago=1, hour=10):
    with app.app_context():
        from models.user import User
        user = User.query.filter_by(email=email).one()
        start = (utc_now() - timedelta(days=days_ago)).replace(hour=hour, minute=0, second=0, microsecond=0)
        booking = Booking(user_id=user.id, facility_id=facility_id, start_time=start,
                          end_time=start + timedelta(hours=1), amount=500, status="confirmed")
        db.session.add(booking)
        db.session.commit()
        return booking.id


def test_review_flow_and_facility_reviews(app, player_client, venue):
    booking_id = _past_booking(app, "player@example.com", venue)

    resp = player_client.patch(f"/bookings/{booking_id}/review", json={"rating": 4, "review": "Nice lights"})
    assert resp.status_code == 200
    assert resp.get_json()["booking"]["rating"] == 4
    assert resp.get_json()["booking"]["reviewedAt"] is not None

    again = player_client.patch(f"/bookings/{booking_id}/review", json={"rating": 5})
    assert again.status_code == 400
    assert again.get_json()["message"] == "already reviewed"

    reviews = app.test_client().get(f"/bookings/facility/{venue}/reviews").get_json()
    assert reviews["success"] is True
    assert reviews["averageRating"] == 4.0
    assert reviews["totalReviews"] == 1
    assert reviews["reviews"][0]["review"] == "Nice lights"
    assert reviews["reviews"][0]["user"]["fullName"] == "Test Player"

    facility = app.test_client().get(f"/facilities/{venue}").get_json()["facility"]
    assert (facility["rating"], facility["ratingCount"]) == (4.0, 1)


def test_review_of_future_booking_rejected(player_client, venue):
    start, end = _slot(1, 10)
    booking_id = _book(player_client, venue, start, end).get_json()["booking"]["id"]
    resp = player_client.patch(f"/bookings/{booking_id}/review", json={"rating": 4})
    assert resp.status_code == 400
    assert resp.get_json()["message"] == "can only review after booking date"


def test_review_rating_out_of_range(app, player_client, venue):
    booking_id = _past_booking(app, "player@example.com", venue)
    resp = player_client.patch(f"/bookings/{booking_id}/review", json={"rating": 7})
    assert resp.status_code == 400


def test_availability_endpoint(app, player_client, venue):
    start, end = _slot(2, 10, hours=2)
    _book(player_client, venue, start, end)
    public = app.test_client()

    busy = public.get("/bookings/availability", query_string={
        "facilityId": venue, "startTime": _slot(2, 11)[0], "endTime": _slot(2, 11)[1],
    }).get_json()
    assert busy["available"] is False
    assert busy["availableCourts"] == []
    assert len(busy["existingBookings"]) == 1

    day = start[:10]
    free = public.get("/bookings/availability", query_string={
        "facilityId": venue, "date": day, "startTime": "12:00", "endTime": "13:00",
    }).get_json()
    assert free["success"] is True
    assert free["available"] is True
    assert free["availableCourts"] == ["Court 1", "Court 2"]
    assert free["existingBookings"] == []


def test_availability_requires_parameters(app, venue):
    resp = app.test_client().get("/bookings/availability", query_string={"facilityId": venue})
    assert resp.status_code == 400
    resp = app.test_client().get("/bookings/availability", query_string={
        "facilityId": venue, "date": "15-03-2030", "startTime": "10:00", "endTime": "11:00",
    })
    assert resp.status_code == 400


def test_owner_sees_bookings_on_own_facilities(app, player_client, venue, login, make_user, make_facility):
    start, end = _slot(2, 10)
    _book(player_client, venue, start, end)

    rival = make_user("rival@example.com", roles=("FACILITY_OWNER",))
    make_facility(rival, name="Rival Courts")

    owner = login("owner@example.com")
    rows = owner.get("/bookings/owner").get_json()["bookings"]
    assert len(rows) == 1
    assert rows[0]["user"]["email"] == "player@example.com"

    assert login("rival@example.com").get("/bookings/owner").get_json()["bookings"] == []
    assert player_client.get("/bookings/owner").status_code == 403


def test_unexpected_errors_return_generic_500(app, player_client, venue, monkeypatch):
    from services.bookings import BookingManager

    def boom(*args, **kwargs):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(BookingManager, "list_user_bookings", boom)
    resp = player_client.get("/bookings/mine")
    assert resp.status_code == 500
    assert resp.get_json()["success"] is False
    assert "exploded" not in resp.get_json()["message"]


@pytest.mark.parametrize("field,value", [("sport", 7), ("sport", ["Badminton"]), ("notes", 42)])
def test_non_text_sport_or_notes_rejected(player_client, venue, field, value):
    start, end = _slot(2, 10)
    payload = {"facility": venue, "startTime": start, "endTime": end, "amount": 500, field: value}
    resp = player_client.post("/bookings", json=payload)
    assert resp.status_code == 400
    assert resp.get_json()["code"] == f"invalid_{field}"
