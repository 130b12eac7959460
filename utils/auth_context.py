from functools import wraps
from flask import g, jsonify
from security.session import get_session_from_request
from models import db
from models.member import Member


def load_current_member():
    """Resolve the cookie session into g.member (None when anonymous)."""
    g.session = get_session_from_request()
    g.member = db.session.get(Member, g.session.member_id) if g.session else None
    if g.member is None:
        # session outlived its member
        g.session = None


def member_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if g.get("member") is None:
            return jsonify(error="UNAUTHORIZED"), 401
        return fn(*args, **kwargs)
    return wrapper
