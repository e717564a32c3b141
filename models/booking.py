from models.db import db
from utils.timeutil import utc_now

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    facility_id = db.Column(db.Integer, db.ForeignKey("facilities.id"), nullable=False, index=True)

    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(20), nullable=False, default="confirmed")
    # status values: pending (unused), confirmed, cancelled, completed (set externally)

    selected_courts = db.Column(db.JSON, nullable=False, default=list)
    sport = db.Column(db.String(60), nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    rating = db.Column(db.Integer, nullable=True)
    review = db.Column(db.String(500), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", foreign_keys=[user_id])
    facility = db.relationship("Facility", foreign_keys=[facility_id])

    __table_args__ = (
        db.CheckConstraint("end_time > start_time", name="ck_booking_interval"),
        db.CheckConstraint("amount >= 0", name="ck_booking_amount"),
        db.CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="ck_booking_rating"),
        db.Index("ix_bookings_facility_window", "facility_id", "start_time", "end_time"),
    )
