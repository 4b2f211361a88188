from datetime import datetime

from flask import Blueprint, request, jsonify, g, current_app

from models import db
from models.user import User
from security.csrf import issue_csrf_token
from security.password import hash_password, needs_rehash, verify_password
from security.password_policy import validate_password
from security.session import cookie_name, start_session, end_session, end_all_sessions
from utils.audit import log_event
from utils.auth_context import login_required
from utils.seed import grant_role

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

PROFILE_FIELDS = ("first_name", "last_name", "phone")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _profile(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "role": user.role,
        "created_at": user.created_at.isoformat(),
    }


def _clean_profile_fields(data: dict) -> dict:
    out = {}
    for field in PROFILE_FIELDS:
        if field in data:
            value = data.get(field)
            out[field] = (value.strip() or None) if isinstance(value, str) else None
    return out


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    valid, errors = validate_password(password)
    if not valid:
        return jsonify(error="Password does not meet policy", details=errors), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(email=email, password_hash=hash_password(password), **_clean_profile_fields(data))
    db.session.add(user)
    db.session.flush()
    grant_role(user, "guest")

    log_event("REGISTER_SUCCESS", user_id=user.id)
    return jsonify(_profile(user)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    if needs_rehash(user.password_hash):
        # cost changed since the hash was stored
        user.password_hash = hash_password(password)
        db.session.commit()

    # Rotate: one live session per login
    revoked_count = end_all_sessions(user.id)
    raw_token = start_session(user.id)

    resp = jsonify(message="Login OK", user=_profile(user))
    resp.set_cookie(
        cookie_name(),
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


@auth_bp.post("/logout")
@login_required
def logout():
    end_session(request.cookies.get(cookie_name()))
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(cookie_name(), path="/")
    return resp, 200


@auth_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(_profile(g.user)), 200


@auth_bp.put("/profile")
@login_required
def update_profile():
    fields = _clean_profile_fields(request.get_json(silent=True) or {})
    if not fields:
        return jsonify(error="Nothing to update"), 400

    for name, value in fields.items():
        setattr(g.user, name, value)
    db.session.commit()

    log_event("PROFILE_UPDATE", user_id=g.user.id, metadata={"fields": sorted(fields)})
    return jsonify(_profile(g.user)), 200


@auth_bp.put("/change-password")
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""

    if not verify_password(current_password, g.user.password_hash):
        return jsonify(error="Invalid current password"), 401

    valid, errors = validate_password(new_password)
    if not valid:
        return jsonify(error="Password does not meet policy", details=errors), 400
    if verify_password(new_password, g.user.password_hash):
        return jsonify(error="New password must differ from the current one"), 400

    g.user.password_hash = hash_password(new_password)
    g.user.password_changed_at = datetime.utcnow()
    db.session.commit()

    # other devices have to log in again
    end_all_sessions(g.user.id)
    log_event("PASSWORD_CHANGE", user_id=g.user.id)

    resp = jsonify(message="Password changed")
    resp.delete_cookie(cookie_name(), path="/")
    return resp, 200
