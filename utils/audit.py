import logging

from flask import has_request_context
from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.audit_log import AuditLog
from security.session import client_origin

logger = logging.getLogger(__name__)


def log_event(action: str, actor=None, entity=None, entity_id=None, metadata=None):
    """
    Append an audit row and commit it.

    Call after the business transaction has committed. Outside a request
    (Celery tasks, CLI) the row simply has no ip/user agent.
    """
    ip, user_agent = client_origin() if has_request_context() else (None, None)
    db.session.add(AuditLog.entry(
        action,
        actor=actor,
        entity=entity,
        entity_id=entity_id,
        metadata=metadata,
        ip=ip,
        user_agent=user_agent,
    ))
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Could not write audit event %s", action)
