import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

logger = logging.getLogger(__name__)


def _smtp_settings(config):
    username = config.get("SMTP_USERNAME")
    return {
        "host": config.get("SMTP_HOST"),
        "port": config.get("SMTP_PORT", 587),
        "username": username,
        "password": config.get("SMTP_PASSWORD"),
        "sender": config.get("SMTP_FROM_EMAIL") or username,
        "tls": config.get("SMTP_USE_TLS", True),
        "brand": config.get("BRAND_NAME", "CSCoaching"),
    }


def build_message(sender, brand, to_email, subject, body) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = f'"{brand}" <{sender}>'
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)
    return msg


def send_email(to_email: str, subject: str, body: str):
    """Deliver one plain-text email over SMTP. Returns (ok, error)."""
    smtp = _smtp_settings(current_app.config)
    if not smtp["host"] or not smtp["sender"]:
        return False, "Email not configured"

    msg = build_message(smtp["sender"], smtp["brand"], to_email, subject, body)
    try:
        with smtplib.SMTP(smtp["host"], smtp["port"], timeout=10) as server:
            if smtp["tls"]:
                server.starttls()
            if smtp["username"] and smtp["password"]:
                server.login(smtp["username"], smtp["password"])
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("SMTP delivery to %s failed", to_email)
        return False, str(exc)
    return True, None
