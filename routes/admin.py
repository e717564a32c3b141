from flask import Blueprint, jsonify, g, request

from models import db
from models.facility import Facility
from models.user import User, Role
from security.rbac import require_roles
from security.session import revoke_all_sessions
from services.errors import AuthorizationError, NotFoundError, ValidationError
from utils.audit import log_event
from utils.serializers import facility_json, user_json

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

USER_STATUSES = ("active", "banned")


@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    role_filter = (request.args.get("role") or "").strip().upper()
    status = (request.args.get("status") or "").strip().lower()

    q = User.query
    if role_filter:
        q = q.join(User.roles).filter(Role.name == role_filter)
    if status:
        q = q.filter(User.status == status)

    users = q.order_by(User.created_at.desc(), User.id.desc()).limit(200).all()
    return jsonify(success=True, users=[user_json(u, include_roles=True) for u in users]), 200


@admin_bp.patch("/users/<int:user_id>/status")
@require_roles("ADMIN")
def update_user_status(user_id: int):
    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().lower()
    if status not in USER_STATUSES:
        raise ValidationError("status must be active or banned")

    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    if user.id == g.user.id:
        raise AuthorizationError("Cannot change your own status")
    if user.has_role("ADMIN"):
        raise AuthorizationError("Cannot ban admin users")

    user.status = status
    db.session.commit()

    revoked = revoke_all_sessions(user.id) if status == "banned" else 0
    log_event("ADMIN_USER_STATUS", user_id=g.user.id, entity="user", entity_id=user.id,
              metadata={"status": status, "revoked_sessions": revoked})
    return jsonify(success=True, user=user_json(user, include_roles=True)), 200


@admin_bp.get("/facilities")
@require_roles("ADMIN")
def list_facilities():
    approved = request.args.get("approved")
    q = Facility.query
    if approved in ("true", "false"):
        q = q.filter(Facility.is_approved.is_(approved == "true"))

    rows = q.order_by(Facility.created_at.desc(), Facility.id.desc()).limit(200).all()
    return jsonify(success=True, facilities=[facility_json(f) for f in rows]), 200


@admin_bp.patch("/facilities/<int:facility_id>/approval")
@require_roles("ADMIN")
def set_facility_approval(facility_id: int):
    data = request.get_json(silent=True) or {}
    approved = data.get("isApproved")
    if not isinstance(approved, bool):
        raise ValidationError("isApproved must be true or false")

    facility = db.session.get(Facility, facility_id)
    if not facility:
        raise NotFoundError("Facility not found")

    facility.is_approved = approved
    db.session.commit()

    log_event("ADMIN_FACILITY_APPROVAL", user_id=g.user.id, entity="facility", entity_id=facility.id,
              metadata={"is_approved": approved})
    return jsonify(success=True, facility=facility_json(facility)), 200
