import secrets
from datetime import datetime, timedelta

from models import db
from models.invite import Invite
from security.session import hash_token

def issue_invite(member_id: int, ttl_days: int = 7) -> str:
    """Create an activation invite and return the RAW token (emailed, never stored)."""
    raw_token = secrets.token_urlsafe(32)
    db.session.add(Invite(
        member_id=member_id,
        token_hash=hash_token(raw_token),
        expires_at=datetime.utcnow() + timedelta(days=ttl_days),
    ))
    db.session.commit()
    return raw_token

def find_valid_invite(raw_token: str):
    if not raw_token:
        return None
    invite = Invite.query.filter_by(token_hash=hash_token(raw_token), used=False).first()
    if not invite or invite.expires_at <= datetime.utcnow():
        return None
    return invite
