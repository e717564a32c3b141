"""Booking lifecycle: slot-conflict creation, cancellation, reviews and the
facility rating aggregate derived from them.

All check-then-write sequences for a facility run under that facility's
serialization point (in-process keyed lock plus a row lock on the facility),
held until the transaction commits.
"""
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from models.booking import Booking
from models.facility import Facility
from services.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from utils.locks import facility_locks
from utils.timeutil import parse_iso, utc_now

logger = logging.getLogger(__name__)

CANCELLED = "cancelled"
CONFIRMED = "confirmed"
COMPLETED = "completed"


def overlaps(start_a, end_a, start_b, end_b) -> bool:
    """Half-open intervals [start_a, end_a) and [start_b, end_b) intersect."""
    return start_a < end_b and start_b < end_a


def round_rating(total, count) -> float:
    if not count:
        return 0.0
    average = Decimal(total) / Decimal(count)
    return float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


@dataclass
class Availability:
    facility: Facility
    available: bool
    conflicting: List[Booking] = field(default_factory=list)

    @property
    def conflicting_count(self) -> int:
        return len(self.conflicting)

    @property
    def available_courts(self) -> list:
        if not self.available:
            return []
        return list(self.facility.courts or [])


class BookingManager:

    def __init__(
        self,
        session,
        directory,
        locks=None,
        clock=None,
        cancel_cutoff: timedelta = timedelta(hours=1),
        review_max_length: int = 500,
    ):
        self.session = session
        self.directory = directory
        self.locks = locks or facility_locks
        self.clock = clock or utc_now
        self.cancel_cutoff = cancel_cutoff
        self.review_max_length = review_max_length

    # ---------- parsing helpers ----------

    @staticmethod
    def _missing(value) -> bool:
        return value is None or (isinstance(value, str) and not value.strip())

    @staticmethod
    def _parse_id(value, what: str) -> int:
        if isinstance(value, bool):
            raise ValidationError(f"invalid {what} id", code="invalid_id")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationError(f"invalid {what} id", code="invalid_id")

    @staticmethod
    def _parse_window(start_time, end_time):
        try:
            start = parse_iso(start_time)
            end = parse_iso(end_time)
        except (TypeError, ValueError):
            raise ValidationError(
                "invalid datetime format, use ISO e.g. 2026-01-20T18:00:00Z",
                code="invalid_datetime",
            )
        if end <= start:
            raise ValidationError("endTime must be after startTime", code="invalid_interval")
        return start, end

    @staticmethod
    def _parse_amount(amount) -> Decimal:
        if isinstance(amount, bool):
            raise ValidationError("amount must be a number", code="invalid_amount")
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValidationError("amount must be a number", code="invalid_amount")
        if not value.is_finite():
            raise ValidationError("amount must be a number", code="invalid_amount")
        if value < 0:
            raise ValidationError("amount must not be negative", code="invalid_amount")
        return value

    @staticmethod
    def _parse_courts(selected_courts) -> list:
        if selected_courts is None:
            return []
        if not isinstance(selected_courts, list) or not all(isinstance(c, str) for c in selected_courts):
            raise ValidationError("selectedCourts must be a list of court names", code="invalid_courts")
        return [c.strip() for c in selected_courts if c.strip()]

    @staticmethod
    def _parse_text(value, field, code):
        if value is not None and not isinstance(value, str):
            raise ValidationError(f"{field} must be text", code=code)
        return (value or "").strip()

    @staticmethod
    def _parse_rating(rating) -> int:
        if isinstance(rating, bool):
            raise ValidationError("rating must be between 1 and 5", code="invalid_rating")
        if isinstance(rating, str) and rating.strip().isdigit():
            rating = int(rating.strip())
        if isinstance(rating, float) and rating.is_integer():
            rating = int(rating)
        if not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("rating must be between 1 and 5", code="invalid_rating")
        return rating

    @staticmethod
    def _price_for(facility: Facility, start, end) -> Decimal:
        hours = Decimal((end - start).total_seconds()) / Decimal(3600)
        price = Decimal(str(facility.price_per_hour or 0))
        return (price * hours).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    def _cutoff_label(self) -> str:
        minutes = int(self.cancel_cutoff.total_seconds() // 60)
        if minutes % 60 == 0:
            hours = minutes // 60
            return "1 hour" if hours == 1 else f"{hours} hours"
        return f"{minutes} minutes"

    # ---------- queries ----------

    def _active_overlapping(self, facility_id, start, end):
        return (
            self.session.query(Booking)
            .filter(
                Booking.facility_id == facility_id,
                Booking.status != CANCELLED,
                Booking.start_time < end,
                Booking.end_time > start,
            )
            .order_by(Booking.start_time.asc())
        )

    def _get_booking(self, booking_id) -> Booking:
        booking = self.session.get(Booking, self._parse_id(booking_id, "booking"))
        if booking is None:
            raise NotFoundError("booking not found", code="booking_not_found")
        return booking

    def _rating_aggregate(self, facility_id):
        # Full scan of every rated booking on the facility
        ratings = [
            r for (r,) in self.session.query(Booking.rating)
            .filter(Booking.facility_id == facility_id, Booking.rating.isnot(None))
            .all()
        ]
        return round_rating(sum(ratings), len(ratings)), len(ratings)

    # ---------- operations ----------

    def create_booking(
        self,
        user_id,
        facility_id,
        start_time,
        end_time,
        amount,
        selected_courts=None,
        sport=None,
        notes=None,
    ) -> Booking:
        if any(self._missing(v) for v in (facility_id, start_time, end_time, amount)):
            raise ValidationError("missing required fields", code="missing_fields")

        facility_id = self._parse_id(facility_id, "facility")
        start, end = self._parse_window(start_time, end_time)
        self._parse_amount(amount)
        courts = self._parse_courts(selected_courts)
        sport = self._parse_text(sport, "sport", "invalid_sport")
        notes = self._parse_text(notes, "notes", "invalid_notes")

        if start <= self.clock():
            raise ValidationError("booking time must be in the future", code="start_in_past")

        facility = self.directory.get_bookable(facility_id)
        unknown = [c for c in courts if facility.courts and c not in facility.courts]
        if unknown:
            raise ValidationError(f"unknown court(s): {', '.join(unknown)}", code="invalid_courts")

        with self.locks.hold(facility.id):
            try:
                facility = self.directory.lock(facility.id)
                clash = self._active_overlapping(facility.id, start, end).first()
                if clash is not None:
                    logger.warning(
                        "Slot conflict on facility %s for %s-%s (existing booking %s)",
                        facility.id, start.isoformat(), end.isoformat(), clash.id,
                    )
                    raise ConflictError("selected time slot is no longer available")

                booking = Booking(
                    user_id=user_id,
                    facility_id=facility.id,
                    start_time=start,
                    end_time=end,
                    amount=self._price_for(facility, start, end),
                    status=CONFIRMED,
                    selected_courts=courts,
                    sport=sport or facility.category,
                    notes=notes[:500] or None,
                )
                self.session.add(booking)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info("Booking %s created on facility %s by user %s", booking.id, facility_id, user_id)
        return booking

    def cancel_booking(self, requester_id, booking_id) -> Booking:
        booking = self._get_booking(booking_id)
        if booking.user_id != requester_id:
            raise AuthorizationError("not authorized to modify this booking")
        if booking.status == CANCELLED:
            raise ValidationError("already cancelled", code="already_cancelled")
        if booking.status == COMPLETED:
            raise ValidationError("cannot cancel a completed booking", code="already_completed")

        now = self.clock()
        if now >= booking.start_time:
            raise ValidationError("cannot cancel past bookings", code="booking_started")
        if now >= booking.start_time - self.cancel_cutoff:
            raise ValidationError(
                f"must cancel at least {self._cutoff_label()} before start",
                code="cancel_window_closed",
            )

        booking.status = CANCELLED
        booking.cancelled_at = now
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        logger.info("Booking %s cancelled by user %s", booking.id, requester_id)
        return booking

    def submit_review(self, requester_id, booking_id, rating, review_text=None) -> Booking:
        """Attach a 1-5 rating and optional text to a booking, then refresh the facility rating.

        Besides the ownership, single-review and start-time checks, this also
        refuses cancelled bookings so that only sessions that took place feed
        the facility rating. That last rule is a local policy addition.
        """
        rating = self._parse_rating(rating)
        booking = self._get_booking(booking_id)
        if booking.user_id != requester_id:
            raise AuthorizationError("not authorized to review this booking")

        with self.locks.hold(booking.facility_id):
            try:
                self.directory.lock(booking.facility_id)
                self.session.refresh(booking)

                if booking.rating is not None:
                    raise ValidationError("already reviewed", code="already_reviewed")
                now = self.clock()
                if now < booking.start_time:
                    raise ValidationError("can only review after booking date", code="review_too_early")
                if booking.status == CANCELLED:
                    raise ValidationError("cannot review a cancelled booking", code="booking_cancelled")

                if review_text is not None and not isinstance(review_text, str):
                    raise ValidationError("review must be text", code="invalid_review")
                text = (review_text or "").strip()
                if len(text) > self.review_max_length:
                    raise ValidationError(
                        f"review must be at most {self.review_max_length} characters",
                        code="review_too_long",
                    )

                booking.rating = rating
                booking.review = text or None
                booking.reviewed_at = now
                self.session.flush()

                self._apply_facility_rating(booking.facility_id)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise

        logger.info("Booking %s reviewed (%s/5) by user %s", booking.id, rating, requester_id)
        return booking

    def _apply_facility_rating(self, facility_id):
        facility = self.directory.get(facility_id)
        average, count = self._rating_aggregate(facility_id)
        self.directory.apply_rating(facility, average, count)
        return facility

    def recompute_facility_rating(self, facility_id) -> Facility:
        facility_id = self._parse_id(facility_id, "facility")
        with self.locks.hold(facility_id):
            try:
                self.directory.lock(facility_id)
                facility = self._apply_facility_rating(facility_id)
                self.session.commit()
            except Exception:
                self.session.rollback()
                raise
        return facility

    def check_availability(self, facility_id, start_time, end_time) -> Availability:
        if any(self._missing(v) for v in (facility_id, start_time, end_time)):
            raise ValidationError("facilityId, startTime and endTime are required", code="missing_fields")
        facility = self.directory.get_bookable(self._parse_id(facility_id, "facility"))
        start, end = self._parse_window(start_time, end_time)
        conflicting = self._active_overlapping(facility.id, start, end).all()
        return Availability(facility=facility, available=not conflicting, conflicting=conflicting)

    # ---------- listings ----------

    def list_user_bookings(self, user_id, status: Optional[str] = None) -> List[Booking]:
        q = self.session.query(Booking).filter(Booking.user_id == user_id)
        if status:
            q = q.filter(Booking.status == status)
        return q.order_by(Booking.start_time.desc(), Booking.id.desc()).all()

    def list_owner_bookings(self, owner_id, status: Optional[str] = None, include_all=False) -> List[Booking]:
        q = self.session.query(Booking).join(Facility, Booking.facility_id == Facility.id)
        if not include_all:
            q = q.filter(Facility.owner_id == owner_id)
        if status:
            q = q.filter(Booking.status == status)
        return q.order_by(Booking.start_time.desc(), Booking.id.desc()).limit(500).all()

    def facility_reviews(self, facility_id):
        facility = self.directory.get(self._parse_id(facility_id, "facility"))
        if facility is None:
            raise NotFoundError("facility not found", code="facility_not_found")
        rows = (
            self.session.query(Booking)
            .filter(Booking.facility_id == facility.id, Booking.rating.isnot(None))
            .order_by(Booking.reviewed_at.desc(), Booking.id.desc())
            .all()
        )
        average = round_rating(sum(b.rating for b in rows), len(rows))
        return rows, average, len(rows)
