from flask import Blueprint, request, jsonify, current_app, g

from models import db
from security.csrf import clear_csrf_token, issue_csrf_token
from security.invites import find_valid_invite
from security.password import hash_password, verify_password, is_acceptable_password
from security.session import create_session, revoke_session, revoke_all_sessions
from services import get_services
from services.booking_engine import normalize_email
from utils.audit import log_event
from utils.auth_context import member_required


auth_bp = Blueprint("auth", __name__, url_prefix="/api")


def _cookie_name():
    return current_app.config.get("AUTH_COOKIE_NAME", "coachslot_session")


@auth_bp.post("/auth/login")
def login():
    data = request.get_json(silent=True) or {}
    email = normalize_email(data.get("email"))
    password = data.get("password")
    if not email or not isinstance(password, str) or not password:
        return jsonify(error="MISSING_FIELDS"), 400

    member = get_services().store.get_member_by_email(email)
    if not member or not verify_password(password, member.password_hash):
        log_event("LOGIN_FAIL", actor=email[:80], metadata={"known": member is not None})
        return jsonify(error="INVALID_LOGIN"), 401

    # Rotate: revoke any existing sessions for this member
    revoked_count = revoke_all_sessions(member.id)
    raw_token = create_session(member.id)

    resp = jsonify(message="Login OK")
    resp.set_cookie(
        _cookie_name(),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS"),
        path="/",
    )

    resp = issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", actor=f"member:{member.id}", metadata={"revoked_sessions": revoked_count})
    return resp, 200


@auth_bp.post("/auth/logout")
def logout():
    raw_token = request.cookies.get(_cookie_name())
    if revoke_session(raw_token) and getattr(g, "member", None) is not None:
        log_event("LOGOUT", actor=f"member:{g.member.id}")

    resp = jsonify(message="Logged out")
    resp.delete_cookie(_cookie_name(), path="/")
    clear_csrf_token(resp)
    return resp, 200


@auth_bp.get("/me")
@member_required
def me():
    return jsonify(member=g.member.to_dict()), 200


@auth_bp.get("/auth/check-invite")
def check_invite():
    token = request.args.get("token")
    if not token:
        return jsonify(error="MISSING_TOKEN"), 400

    invite = find_valid_invite(token)
    if not invite:
        return jsonify(error="INVALID_OR_EXPIRED"), 400
    return jsonify(name=invite.member.name, email=invite.member.email), 200


@auth_bp.post("/auth/set-password")
def set_password():
    data = request.get_json(silent=True) or {}
    token = data.get("token")
    password = data.get("password")
    if not isinstance(token, str) or not token or not password:
        return jsonify(error="MISSING_FIELDS"), 400
    if not is_acceptable_password(password):
        return jsonify(error="WEAK_PASSWORD"), 400

    invite = find_valid_invite(token)
    if not invite:
        return jsonify(error="INVALID_OR_EXPIRED"), 400

    invite.member.password_hash = hash_password(password, current_app.config.get("BCRYPT_ROUNDS", 12))
    invite.used = True
    db.session.commit()

    log_event("PASSWORD_SET", actor=f"member:{invite.member_id}")
    return jsonify(message="Password set"), 200
