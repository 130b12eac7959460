import hmac
import secrets

from flask import current_app, jsonify, request

CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"

STATE_CHANGING = ("POST", "PUT", "PATCH", "DELETE")
# reachable before a session exists, or harmless without one
CSRF_EXEMPT_PATHS = {
    "/api/auth/login",
    "/api/auth/set-password",
    "/health",
}


def issue_csrf_token(resp):
    """Double-submit token: readable by the client, echoed back in CSRF_HEADER."""
    resp.set_cookie(
        CSRF_COOKIE,
        secrets.token_urlsafe(32),
        httponly=False,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS"),
        path="/",
    )
    return resp


def clear_csrf_token(resp):
    resp.delete_cookie(CSRF_COOKIE, path="/")
    return resp


def require_csrf():
    cookie_token = request.cookies.get(CSRF_COOKIE)
    header_token = request.headers.get(CSRF_HEADER)
    if not cookie_token or not header_token or not hmac.compare_digest(cookie_token, header_token):
        return jsonify(error="CSRF_FAILED"), 403
    return None


def csrf_protect(member):
    """Checked only for cookie-authenticated, state-changing requests."""
    if request.method not in STATE_CHANGING or request.path in CSRF_EXEMPT_PATHS:
        return None
    if member is None:
        return None
    return require_csrf()
