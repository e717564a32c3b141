from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, Role
from security.password import hash_password, verify_password, validate_password
from security.session import create_session, revoke_session, revoke_all_sessions
from security.csrf import issue_csrf_token
from utils.audit import log_event
from utils.auth_context import login_required
from utils.serializers import user_json


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

SELF_SERVICE_ROLES = {"user": "USER", "facility_owner": "FACILITY_OWNER"}


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    full_name = (data.get("fullName") or "").strip()
    role_key = (data.get("role") or "user").strip().lower()

    if not _is_valid_email(email):
        return jsonify(success=False, message="Invalid email"), 400
    if not full_name or len(full_name) > 50:
        return jsonify(success=False, message="Full name is required (max 50 characters)"), 400
    if role_key not in SELF_SERVICE_ROLES:
        return jsonify(success=False, message="role must be user or facility_owner"), 400

    errors = validate_password(password, current_app.config.get("PASSWORD_MIN_LENGTH", 6))
    if errors:
        return jsonify(success=False, message="Password does not meet policy", details=errors), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(success=False, message="Email already registered"), 409

    pw_hash = hash_password(password, current_app.config.get("BCRYPT_ROUNDS", 12))
    user = User(email=email, password_hash=pw_hash, full_name=full_name)
    db.session.add(user)
    db.session.flush()

    role = Role.query.filter_by(name=SELF_SERVICE_ROLES[role_key]).first()
    if role:
        user.roles.append(role)

    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id, metadata={"role": role_key})

    return jsonify(success=True, message="Registered successfully", user=user_json(user, include_roles=True)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(success=False, message="Invalid credentials"), 401

    if user.status != "active":
        log_event("LOGIN_BLOCKED", user_id=user.id, metadata={"status": user.status})
        return jsonify(success=False, message="Account is not active"), 403

    # Rotate: revoke any existing sessions for this user
    revoked_count = revoke_all_sessions(user.id)
    raw_token = create_session(user.id)

    resp = jsonify(success=True, message="Login OK", user=user_json(user, include_roles=True))
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "quickcourt_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    resp = issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id, metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(success=True, user=user_json(g.user, include_roles=True)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", "quickcourt_session")
    revoke_session(request.cookies.get(cookie_name))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(success=True, message="Logged out")
    resp.delete_cookie(cookie_name, path="/")
    return resp, 200
