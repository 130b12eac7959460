"""
Celery tasks.

Email delivery is never retried: a duplicate confirmation is worse than a
missing one. Maintenance is idempotent, so the nightly beat entry may overlap
with a manual run.
"""

import logging

from celery import shared_task

from services import get_services
from utils.audit import log_event
from utils.emailer import send_email

logger = logging.getLogger(__name__)


@shared_task(name="coachslot.send_email", ignore_result=True, max_retries=0)
def send_email_task(to_email, subject, body):
    ok, error = send_email(to_email, subject, body)
    if not ok:
        logger.warning("Email %r to %s not sent: %s", subject, to_email, error)
    return ok


@shared_task(name="coachslot.maintain_slots", ignore_result=True)
def maintain_slots_task(days=None):
    result = get_services().slots.maintain(days)
    log_event(
        "SLOTS_MAINTAIN",
        actor="system",
        metadata={"purged": result.purged, "created": result.created, "days": result.days},
    )
    return {"purged": result.purged, "created": result.created, "days": result.days}


def enqueue_email(to_email, subject, body):
    send_email_task.delay(to_email, subject, body)
