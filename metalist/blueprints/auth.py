"""Auth blueprint — /api/auth/*, /api/validate-invite, /api/invite-required

Email + password accounts behind an optional invite code.
While INVITE_CODE is set, registration requires it.
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from werkzeug.security import check_password_hash, generate_password_hash

from metalist.config import get_feature_flags
from metalist.extensions import db, limiter
from metalist.models.profile import Profile
from metalist.models.user import User
from metalist.schemas import (
    InvalidBody,
    LoginRequest,
    RegisterRequest,
    ValidateInviteRequest,
    parse_body,
)

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _invite_code_ok(code):
    flags = get_feature_flags()
    if not flags.invite_required:
        return True
    return (code or "").strip() == flags.invite_code


def serialize_me(user):
    profile = user.profile
    return {
        "id": user.id,
        "email": user.email,
        "username": profile.username if profile else None,
        "firstName": profile.first_name if profile else None,
        "lastName": profile.last_name if profile else None,
    }


# ──────────────────────────────────────────────
# GET /api/invite-required
# ──────────────────────────────────────────────

@auth_bp.route("/invite-required")
def invite_required():
    return jsonify({"required": get_feature_flags().invite_required})


# ──────────────────────────────────────────────
# POST /api/validate-invite
# ──────────────────────────────────────────────

@auth_bp.route("/validate-invite", methods=["POST"])
@limiter.limit("20 per minute")
def validate_invite():
    """Check an invite code. Any code is valid while the gate is off."""
    try:
        body = parse_body(ValidateInviteRequest)
    except InvalidBody:
        return jsonify({"valid": False})
    return jsonify({"valid": _invite_code_ok(body.code)})


# ──────────────────────────────────────────────
# POST /api/auth/register
# ──────────────────────────────────────────────

@auth_bp.route("/auth/register", methods=["POST"])
@limiter.limit("10 per minute")
def register():
    """Create User + Profile and log in."""
    try:
        body = parse_body(RegisterRequest)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    if not _invite_code_ok(body.invite_code):
        return jsonify({"error": "A valid invite code is required to register."}), 403

    if User.query.filter_by(email=body.email).first():
        return jsonify({"error": "An account with this email already exists."}), 409
    if Profile.query.filter(
        db.func.lower(Profile.username) == body.username.lower()
    ).first():
        return jsonify({"error": "That username is taken."}), 409

    user = User(
        email=body.email,
        password_hash=generate_password_hash(body.password),
    )
    db.session.add(user)
    db.session.flush()  # get user.id

    profile = Profile(
        id=user.id,
        username=body.username,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    db.session.add(profile)
    db.session.commit()

    login_user(user)
    logger.info(f"User registered: {user.email}")
    return jsonify(serialize_me(user)), 201


# ──────────────────────────────────────────────
# POST /api/auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/auth/login", methods=["POST"])
@limiter.limit("15 per minute")
def login():
    try:
        body = parse_body(LoginRequest, error_message="Email and password are required.")
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    user = User.query.filter_by(email=body.email).first()
    if user is None or not check_password_hash(user.password_hash, body.password):
        return jsonify({"error": "Invalid email or password."}), 401

    if not user.is_active:
        return jsonify({"error": "Your account has been deactivated."}), 403

    login_user(user)
    return jsonify(serialize_me(user))


# ──────────────────────────────────────────────
# POST /api/auth/logout, GET /api/auth/me
# ──────────────────────────────────────────────

@auth_bp.route("/auth/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/auth/me")
@login_required
def me():
    return jsonify(serialize_me(current_user))
