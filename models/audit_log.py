import json
from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    actor = db.Column(db.String(80), nullable=True)    # member:12, admin, cli, system, or the email tried
    action = db.Column(db.String(80), nullable=False)  # BOOKING_CREATE, SLOTS_MAINTAIN, ...
    entity = db.Column(db.String(80), nullable=True)   # booking, slot, member, holiday
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @classmethod
    def entry(cls, action, actor=None, entity=None, entity_id=None, metadata=None, ip=None, user_agent=None):
        return cls(
            action=action,
            actor=actor[:80] if actor else None,
            entity=entity,
            entity_id=str(entity_id)[:80] if entity_id is not None else None,
            ip=ip,
            user_agent=user_agent,
            metadata_json=json.dumps(metadata, default=str) if metadata else None,
        )
