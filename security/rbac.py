import hmac
from functools import wraps
from flask import current_app, jsonify, request

ADMIN_HEADER = "X-ADMIN-KEY"

def is_admin_request() -> bool:
    expected = current_app.config.get("ADMIN_KEY") or ""
    supplied = request.headers.get(ADMIN_HEADER) or ""
    if not expected or not supplied:
        return False
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))

def require_admin(fn):
    """
    Usage: @require_admin
    The coach authenticates every admin call with the shared admin key header.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if not is_admin_request():
            return jsonify(error="ADMIN_ONLY"), 401
        return fn(*args, **kwargs)
    return wrapper
