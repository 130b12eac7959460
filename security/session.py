import hashlib
import secrets
from datetime import datetime, timedelta
from flask import request, current_app

from models import db
from models.session import Session

DEFAULT_COOKIE = "coachslot_session"


def hash_token(token: str) -> str:
    """Digest stored in place of a random session or invite token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def client_origin():
    """(ip, user agent) of the current request, trimmed to column sizes."""
    ip = request.headers.get("X-Forwarded-For", request.remote_addr)
    return (ip or "")[:64] or None, (request.headers.get("User-Agent") or "")[:255] or None


def create_session(member_id: int) -> str:
    """Open a session for the member and return the raw cookie token."""
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 14 * 24 * 60 * 60)
    ip, user_agent = client_origin()

    db.session.add(Session(
        member_id=member_id,
        token_hash=hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(seconds=lifetime),
        ip=ip,
        user_agent=user_agent,
    ))
    db.session.commit()
    return raw_token


def _find(raw_token):
    if not raw_token:
        return None
    return Session.query.filter_by(token_hash=hash_token(raw_token)).first()


def get_session_from_request():
    """The live session named by the request cookie, touched; None otherwise."""
    cookie_name = current_app.config.get("AUTH_COOKIE_NAME", DEFAULT_COOKIE)
    sess = _find(request.cookies.get(cookie_name))
    if sess is None:
        return None

    now = datetime.utcnow()
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 7 * 24 * 60 * 60)
    if not sess.is_live(now, idle_seconds):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess


def revoke_session(raw_token: str) -> bool:
    sess = _find(raw_token)
    if sess is None:
        return False
    sess.revoked = True
    db.session.commit()
    return True


def revoke_all_sessions(member_id: int) -> int:
    """Revoke every open session of a member; login rotates sessions this way."""
    count = (
        Session.query
        .filter_by(member_id=member_id, revoked=False)
        .update({"revoked": True}, synchronize_session=False)
    )
    db.session.commit()
    return count
