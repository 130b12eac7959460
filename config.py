import os

from celery.schedules import crontab

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _env_bool(name, default):
    return os.getenv(name, str(default)).lower() in ("1", "true", "yes")


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")
    ADMIN_KEY = os.getenv("ADMIN_KEY", "changeme")

    # SQLite database file stored next to this file as coachslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "coachslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Business calendar: every weekday/hour/holiday rule is read in this zone
    BUSINESS_TIMEZONE = os.getenv("BUSINESS_TIMEZONE", "Europe/London")
    SLOT_DURATION_MINUTES = int(os.getenv("SLOT_DURATION_MINUTES", "60"))

    # Weekday 0 = Monday; hours are [start_hour, end_hour)
    SCHEDULE_RULES = (
        {"weekday": 0, "location": "Scunthorpe", "start_hour": 17, "end_hour": 21},
        {"weekday": 1, "location": "Hull", "start_hour": 17, "end_hour": 22},
        {"weekday": 2, "location": "Shipley", "start_hour": 18, "end_hour": 22},
        {"weekday": 3, "location": "Hull", "start_hour": 17, "end_hour": 22},
    )

    # Cancellation policy: members are refunded only before this cutoff
    REFUND_CUTOFF_HOURS = int(os.getenv("REFUND_CUTOFF_HOURS", "24"))

    # Unknown emails are rejected with NOT_MEMBER; false records a zero-credit walk-in
    REQUIRE_REGISTERED_MEMBER = _env_bool("REQUIRE_REGISTERED_MEMBER", True)

    # Slot horizon
    MAINTAIN_DEFAULT_DAYS = 14
    MAINTAIN_MAX_DAYS = 31
    SLOT_LIST_MAX_DAYS = 14
    MAINTENANCE_HOUR = int(os.getenv("MAINTENANCE_HOUR", "2"))
    MAINTENANCE_MINUTE = int(os.getenv("MAINTENANCE_MINUTE", "15"))

    # Member accounts
    INVITE_TTL_DAYS = 7
    BCRYPT_ROUNDS = 12
    AUTH_COOKIE_NAME = "coachslot_session"
    SESSION_LIFETIME_SECONDS = 14 * 24 * 60 * 60
    IDLE_TIMEOUT_SECONDS = 7 * 24 * 60 * 60
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_bool("SESSION_COOKIE_SECURE", False)

    # Email (SMTP)
    BRAND_NAME = os.getenv("BRAND_NAME", "CSCoaching")
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:5002")
    ADMIN_EMAIL = os.getenv("ADMIN_EMAIL") or os.getenv("SMTP_USERNAME")
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = _env_bool("SMTP_USE_TLS", True)

    # Background work: email delivery and the nightly slot maintenance
    CELERY = {
        "broker_url": os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0"),
        "task_ignore_result": True,
        "task_publish_retry": False,
        "imports": ("utils.tasks",),
        "timezone": BUSINESS_TIMEZONE,
        "beat_schedule": {
            "maintain-slots-nightly": {
                "task": "coachslot.maintain_slots",
                "schedule": crontab(hour=MAINTENANCE_HOUR, minute=MAINTENANCE_MINUTE),
                "args": (MAINTAIN_DEFAULT_DAYS,),
            },
        },
    }

    # Basic app settings
    DEBUG = False
