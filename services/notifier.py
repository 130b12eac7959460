"""
notifier.py
-----------
Fire-and-forget notifications raised by the booking engines.

Engines call these only after their transaction has committed. A Notifier
must never influence the outcome of the operation that triggered it:
EmailNotifier logs and drops any error raised while handing a message off.
"""

import logging

logger = logging.getLogger(__name__)


def _when(calendar, start, end=None) -> str:
    s = calendar.to_local(start)
    text = s.strftime("%a %d %b %Y, %H:%M")
    if end is not None:
        text += " - " + calendar.to_local(end).strftime("%H:%M")
    return text


class Notifier:
    """No-op base; subclasses override the events they deliver."""

    def notify_admin_new_booking(self, member, slot):
        pass

    def notify_member_confirmation(self, member, slot, credits):
        pass

    def notify_zero_credits(self, member):
        pass

    def notify_reschedule(self, member, old_start, slot):
        pass

    def notify_cancellation(self, member, slot, refunded):
        pass

    def notify_invite(self, member, token):
        pass


class EmailNotifier(Notifier):
    def __init__(self, send, calendar, admin_email=None, app_base_url="", brand="CSCoaching"):
        # send(to_email, subject, body) hands the message to the delivery queue
        self._send = send
        self.calendar = calendar
        self.admin_email = admin_email
        self.app_base_url = (app_base_url or "").rstrip("/")
        self.brand = brand

    def _dispatch(self, to_email, subject, body):
        if not to_email:
            logger.warning("Dropping notification %r: no recipient", subject)
            return
        try:
            self._send(to_email, subject, body)
        except Exception:
            logger.exception("Failed to queue notification %r to %s", subject, to_email)

    def notify_admin_new_booking(self, member, slot):
        body = (
            "New booking\n\n"
            f"Name: {member.name or member.email}\n"
            f"Email: {member.email}\n"
            f"When: {_when(self.calendar, slot.start_time, slot.end_time)}\n"
            f"Location: {slot.location or ''}\n"
        )
        self._dispatch(self.admin_email, f"New {self.brand} booking", body)

    def notify_member_confirmation(self, member, slot, credits):
        body = (
            f"Hi {member.name or member.email},\n\n"
            "Your coaching session is confirmed.\n\n"
            f"When: {_when(self.calendar, slot.start_time, slot.end_time)}\n"
            f"Location: {slot.location or self.brand}\n"
            f"Remaining session credits: {credits}\n\n"
            "Need to reschedule? Reply to this email.\n"
        )
        self._dispatch(member.email, f"{self.brand} - Your session is confirmed", body)

    def notify_zero_credits(self, member):
        body = (
            f"Hi {member.name or member.email},\n\n"
            "You have just used your last session credit. "
            "Top up with your coach to keep booking sessions.\n"
        )
        self._dispatch(member.email, f"{self.brand} - You are out of credits", body)

    def notify_reschedule(self, member, old_start, slot):
        body = (
            f"Hi {member.name or member.email},\n\n"
            f"Your session previously at {_when(self.calendar, old_start)} has been moved to:\n"
            f"{_when(self.calendar, slot.start_time, slot.end_time)} at {slot.location or self.brand}\n"
        )
        self._dispatch(member.email, f"{self.brand} - Session rescheduled", body)

    def notify_cancellation(self, member, slot, refunded):
        credit_line = "Your credit has been restored." if refunded else "No credit was refunded."
        body = (
            f"Hi {member.name or member.email},\n\n"
            f"Your session on {_when(self.calendar, slot.start_time)} at "
            f"{slot.location or self.brand} was cancelled by the coach. {credit_line}\n"
        )
        self._dispatch(member.email, f"{self.brand} - Your session was cancelled", body)

    def notify_invite(self, member, token):
        link = f"{self.app_base_url}/activate.html?token={token}"
        body = (
            f"Hi {member.name or member.email},\n\n"
            f"Welcome to {self.brand}. Set your password here:\n{link}\n"
        )
        self._dispatch(member.email, f"Activate your {self.brand} account", body)
