from models.db import db
from utils.timeutil import utc_now

class Facility(db.Model):
    __tablename__ = "facilities"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sports = db.Column(db.JSON, nullable=False, default=list)
    category = db.Column(db.String(60), nullable=True)
    price_per_hour = db.Column(db.Numeric(10, 2), nullable=False, default=0)

    phone = db.Column(db.String(30), nullable=True)
    email = db.Column(db.String(255), nullable=True)

    address_line1 = db.Column(db.String(160), nullable=False)
    address_line2 = db.Column(db.String(160), nullable=True)
    city = db.Column(db.String(80), nullable=False, index=True)
    state = db.Column(db.String(80), nullable=False)
    pincode = db.Column(db.String(12), nullable=False)
    lat = db.Column(db.Float, nullable=True)
    lng = db.Column(db.Float, nullable=True)

    courts = db.Column(db.JSON, nullable=False, default=list)  # court labels, e.g. ["Court 1", "Court 2"]
    open_time = db.Column(db.String(5), nullable=False, default="06:00")   # HH:MM
    close_time = db.Column(db.String(5), nullable=False, default="23:00")  # HH:MM
    amenities = db.Column(db.JSON, nullable=False, default=list)
    images = db.Column(db.JSON, nullable=False, default=list)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    is_approved = db.Column(db.Boolean, default=True, nullable=False)

    # Derived from rated bookings; only the booking lifecycle writes these
    rating = db.Column(db.Float, nullable=False, default=0)
    rating_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    owner = db.relationship("User", foreign_keys=[owner_id])
