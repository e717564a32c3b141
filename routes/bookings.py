from datetime import date, timedelta

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from security.rbac import require_roles, has_role
from services.bookings import BookingManager
from services.errors import ConflictError, ValidationError
from services.facilities import FacilityDirectory
from utils.audit import log_event
from utils.auth_context import login_required
from utils.locks import facility_locks
from utils.serializers import booking_json, review_json
from utils.timeutil import iso

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def _manager() -> BookingManager:
    return BookingManager(
        db.session,
        FacilityDirectory(db.session),
        locks=facility_locks,
        cancel_cutoff=timedelta(minutes=current_app.config.get("CANCEL_CUTOFF_MINUTES", 60)),
        review_max_length=current_app.config.get("REVIEW_MAX_LENGTH", 500),
    )


def _on_date(day, value):
    # "18:00" + date -> "2026-01-20T18:00:00"; full timestamps pass through
    if not day or not value or "T" in value or len(value) > 5:
        return value
    return f"{day.isoformat()}T{value}:00"


# ---------- USERS: book a slot (auto-confirmed) ----------
@booking_bp.post("")
@login_required
def create_booking():
    data = request.get_json(silent=True) or {}
    facility_id = data.get("facility", data.get("facilityId"))

    try:
        booking = _manager().create_booking(
            g.user.id,
            facility_id,
            data.get("startTime"),
            data.get("endTime"),
            data.get("amount"),
            selected_courts=data.get("selectedCourts"),
            sport=data.get("sport"),
            notes=data.get("notes"),
        )
    except ConflictError:
        log_event("BOOKING_FAIL_CONFLICT", user_id=g.user.id, entity="facility", entity_id=facility_id,
                  metadata={"startTime": data.get("startTime"), "endTime": data.get("endTime")})
        raise

    log_event("BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"facility_id": booking.facility_id, "amount": booking.amount})
    return jsonify(success=True, booking=booking_json(booking)), 201


# ---------- USERS: view my bookings ----------
@booking_bp.get("/mine")
@login_required
def my_bookings():
    status = request.args.get("status")  # confirmed/cancelled/...
    rows = _manager().list_user_bookings(g.user.id, status=status)
    return jsonify(success=True, bookings=[booking_json(b, include_facility=True) for b in rows]), 200


# ---------- OWNERS: bookings on my facilities ----------
@booking_bp.get("/owner")
@require_roles("FACILITY_OWNER")
def owner_bookings():
    status = request.args.get("status")
    rows = _manager().list_owner_bookings(g.user.id, status=status, include_all=has_role("ADMIN"))
    return jsonify(success=True, bookings=[
        booking_json(b, include_facility=True, include_user=True) for b in rows
    ]), 200


# ---------- USERS: cancel booking (policy window) ----------
@booking_bp.patch("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    booking = _manager().cancel_booking(g.user.id, booking_id)
    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id)
    return jsonify(success=True, booking=booking_json(booking)), 200


# ---------- USERS: rate and review a past booking ----------
@booking_bp.patch("/<int:booking_id>/review")
@login_required
def review_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = _manager().submit_review(g.user.id, booking_id, data.get("rating"), data.get("review"))
    log_event("BOOKING_REVIEW", user_id=g.user.id, entity="booking", entity_id=booking.id,
              metadata={"rating": booking.rating, "facility_id": booking.facility_id})
    return jsonify(success=True, booking=booking_json(booking)), 200


# ---------- PUBLIC: availability check ----------
@booking_bp.get("/availability")
def availability():
    date_str = request.args.get("date")
    day = None
    if date_str:
        try:
            day = date.fromisoformat(date_str)
        except ValueError:
            raise ValidationError("Invalid date. Use YYYY-MM-DD", code="invalid_date")

    result = _manager().check_availability(
        request.args.get("facilityId"),
        _on_date(day, request.args.get("startTime")),
        _on_date(day, request.args.get("endTime")),
    )
    return jsonify(
        success=True,
        available=result.available,
        availableCourts=result.available_courts,
        conflictingCount=result.conflicting_count,
        existingBookings=[
            {
                "id": b.id,
                "startTime": iso(b.start_time),
                "endTime": iso(b.end_time),
                "selectedCourts": list(b.selected_courts or []),
                "status": b.status,
            }
            for b in result.conflicting
        ],
    ), 200


# ---------- PUBLIC: facility reviews ----------
@booking_bp.get("/facility/<int:facility_id>/reviews")
def facility_reviews(facility_id: int):
    rows, average, total = _manager().facility_reviews(facility_id)
    return jsonify(
        success=True,
        reviews=[review_json(b) for b in rows],
        averageRating=average,
        totalReviews=total,
    ), 200
