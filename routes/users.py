from flask import Blueprint, request, jsonify, g

from models import db
from services.errors import NotFoundError, ValidationError
from services.facilities import FacilityDirectory
from utils.audit import log_event
from utils.auth_context import login_required
from utils.serializers import facility_json, user_json

users_bp = Blueprint("users", __name__, url_prefix="/users")


@users_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(success=True, user=user_json(g.user, include_roles=True)), 200


@users_bp.put("/profile")
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    full_name = data.get("fullName")
    phone_number = data.get("phoneNumber")

    if full_name is not None:
        if not isinstance(full_name, str) or not full_name.strip() or len(full_name.strip()) > 50:
            raise ValidationError("Invalid fullName")
        g.user.full_name = full_name.strip()

    if phone_number is not None:
        if not isinstance(phone_number, str) or len(phone_number.strip()) > 30:
            raise ValidationError("Invalid phoneNumber")
        g.user.phone_number = phone_number.strip() or None

    db.session.commit()
    log_event("PROFILE_UPDATE", user_id=g.user.id)
    return jsonify(success=True, user=user_json(g.user, include_roles=True)), 200


# ---------- favourites ----------
@users_bp.get("/favorites")
@login_required
def list_favorites():
    return jsonify(success=True, facilities=[facility_json(f) for f in g.user.favorites]), 200


@users_bp.post("/favorites/<int:facility_id>")
@login_required
def add_favorite(facility_id: int):
    facility = FacilityDirectory(db.session).get_bookable(facility_id)
    if facility not in g.user.favorites:
        g.user.favorites.append(facility)
        db.session.commit()
        log_event("FAVORITE_ADD", user_id=g.user.id, entity="facility", entity_id=facility.id)
    return jsonify(success=True, favorites=[f.id for f in g.user.favorites]), 200


@users_bp.delete("/favorites/<int:facility_id>")
@login_required
def remove_favorite(facility_id: int):
    facility = next((f for f in g.user.favorites if f.id == facility_id), None)
    if facility is None:
        raise NotFoundError("Facility is not in favorites")
    g.user.favorites.remove(facility)
    db.session.commit()
    log_event("FAVORITE_REMOVE", user_id=g.user.id, entity="facility", entity_id=facility_id)
    return jsonify(success=True, favorites=[f.id for f in g.user.favorites]), 200
