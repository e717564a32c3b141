from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, g

from models import db
from models.facility import Facility
from security.rbac import require_roles, has_role
from services.errors import AuthorizationError, NotFoundError, ValidationError
from services.facilities import FacilityDirectory
from utils.audit import log_event
from utils.serializers import facility_json
from utils.timeutil import parse_clock

facility_bp = Blueprint("facility", __name__, url_prefix="/facilities")

_TEXT_FIELDS = {
    "name": ("name", 120),
    "description": ("description", 5000),
    "category": ("category", 60),
    "phone": ("phone", 30),
    "email": ("email", 255),
}
_ADDRESS_FIELDS = {
    "line1": ("address_line1", 160),
    "line2": ("address_line2", 160),
    "city": ("city", 80),
    "state": ("state", 80),
    "pincode": ("pincode", 12),
}
_LIST_FIELDS = {
    "sports": "sports",
    "courts": "courts",
    "amenities": "amenities",
    "images": "images",
}
_REQUIRED = ("name", "price_per_hour", "address_line1", "city", "state", "pincode")


def _text(value, label, max_len):
    if value is None:
        return None
    if not isinstance(value, str) or len(value.strip()) > max_len:
        raise ValidationError(f"Invalid {label}")
    return value.strip() or None


def _string_list(value, label):
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValidationError(f"{label} must be a list of strings")
    return [v.strip() for v in value if v.strip()]


def _facility_fields(data: dict) -> dict:
    """Map a camelCase facility payload to column values (only keys present)."""
    out = {}
    for key, (column, max_len) in _TEXT_FIELDS.items():
        if key in data:
            out[column] = _text(data[key], key, max_len)

    if "pricePerHour" in data:
        raw = data["pricePerHour"]
        try:
            if isinstance(raw, bool):
                raise InvalidOperation
            price = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            raise ValidationError("pricePerHour must be a number")
        if not price.is_finite() or price < 0:
            raise ValidationError("pricePerHour must not be negative")
        out["price_per_hour"] = price

    address = data.get("address")
    if address is not None:
        if not isinstance(address, dict):
            raise ValidationError("address must be an object")
        for key, (column, max_len) in _ADDRESS_FIELDS.items():
            if key in address:
                out[column] = _text(address[key], f"address.{key}", max_len)
        geo = address.get("geo") or {}
        for key in ("lat", "lng"):
            if key in geo:
                value = geo[key]
                if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                    raise ValidationError(f"Invalid address.geo.{key}")
                out[key] = value

    for key, column in _LIST_FIELDS.items():
        if key in data:
            out[column] = _string_list(data[key], key)

    hours = data.get("openHours")
    if hours is not None:
        if not isinstance(hours, dict):
            raise ValidationError("openHours must be an object")
        for key, column in (("open", "open_time"), ("close", "close_time")):
            if key in hours:
                try:
                    out[column] = parse_clock(hours[key]).strftime("%H:%M")
                except (AttributeError, TypeError, ValueError):
                    raise ValidationError("openHours must use HH:MM")
        if out.get("open_time") and out.get("close_time") and out["close_time"] <= out["open_time"]:
            raise ValidationError("openHours.close must be after openHours.open")

    if "isActive" in data:
        out["is_active"] = bool(data["isActive"])
    return out


# ---------- PUBLIC: search ----------
@facility_bp.get("")
def list_facilities():
    rows = FacilityDirectory(db.session).search(
        city=request.args.get("city"),
        sport=request.args.get("sport"),
        q=request.args.get("q"),
    )
    return jsonify(success=True, facilities=[facility_json(f) for f in rows]), 200


# ---------- OWNERS: create ----------
@facility_bp.post("")
@require_roles("FACILITY_OWNER")
def create_facility():
    data = request.get_json(silent=True) or {}
    fields = _facility_fields(data)
    missing = [c for c in _REQUIRED if fields.get(c) is None]
    if missing:
        raise ValidationError("name, pricePerHour and address (line1, city, state, pincode) are required")

    facility = Facility(owner_id=g.user.id, **fields)
    db.session.add(facility)
    db.session.commit()

    log_event("FACILITY_CREATE", user_id=g.user.id, entity="facility", entity_id=facility.id)
    return jsonify(success=True, facility=facility_json(facility)), 201


# ---------- OWNERS: update (rating fields are not writable) ----------
@facility_bp.put("/<int:facility_id>")
@require_roles("FACILITY_OWNER")
def update_facility(facility_id: int):
    facility = FacilityDirectory(db.session).get(facility_id)
    if not facility:
        raise NotFoundError("Facility not found")
    if facility.owner_id != g.user.id and not has_role("ADMIN"):
        raise AuthorizationError("Not authorized to update this facility")

    data = request.get_json(silent=True) or {}
    fields = _facility_fields(data)
    for column in _REQUIRED:
        if column in fields and fields[column] is None:
            raise ValidationError(f"{column} cannot be empty")
    if fields.get("close_time", facility.close_time) <= fields.get("open_time", facility.open_time):
        raise ValidationError("openHours.close must be after openHours.open")

    for column, value in fields.items():
        setattr(facility, column, value)
    db.session.commit()

    log_event("FACILITY_UPDATE", user_id=g.user.id, entity="facility", entity_id=facility.id,
              metadata={"fields": sorted(fields)})
    return jsonify(success=True, facility=facility_json(facility)), 200


# ---------- OWNERS: my facilities ----------
@facility_bp.get("/mine")
@require_roles("FACILITY_OWNER")
def my_facilities():
    rows = FacilityDirectory(db.session).list_for_owner(g.user.id)
    return jsonify(success=True, facilities=[facility_json(f) for f in rows]), 200


# ---------- PUBLIC: single facility ----------
@facility_bp.get("/<int:facility_id>")
def get_facility(facility_id: int):
    facility = FacilityDirectory(db.session).get_bookable(facility_id)
    return jsonify(success=True, facility=facility_json(facility)), 200
