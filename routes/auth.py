from flask import Blueprint, request, jsonify, g

from security.session import (
    clear_session_cookie,
    create_session,
    current_token,
    revoke_session,
    set_session_cookie,
)
from services.serializers import user_to_dict
from services.users import authenticate, normalize_email, register_user, update_profile
from utils.audit import log_event
from utils.auth_context import login_required


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    user = register_user(data.get("name"), data.get("email"), data.get("password") or "")
    log_event("REGISTER_SUCCESS", user_id=user.id)
    return jsonify(message="Registered successfully", user=user_to_dict(user)), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    user = authenticate(email, data.get("password") or "")
    if user is None:
        log_event("LOGIN_FAIL", metadata={"email": email})
        return jsonify(error="Invalid email or password", code="INVALID_CREDENTIALS"), 401

    resp = jsonify(message="Login OK", user=user_to_dict(user))
    set_session_cookie(resp, create_session(user.id))

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(user_to_dict(g.user)), 200


@auth_bp.get("/profile")
@login_required
def get_profile():
    return jsonify(user_to_dict(g.user)), 200


@auth_bp.patch("/profile")
@login_required
def patch_profile():
    data = request.get_json(silent=True) or {}
    user = update_profile(
        g.user.id,
        name=data.get("name"),
        email=data.get("email"),
        current_password=data.get("current_password"),
        new_password=data.get("new_password"),
    )

    log_event("PROFILE_UPDATE", user_id=user.id)
    return jsonify(message="Profile updated successfully", user=user_to_dict(user)), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(current_token())
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    clear_session_cookie(resp)
    return resp, 200
