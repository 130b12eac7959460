from datetime import datetime, timedelta, timezone

import pytest

from app import create_app
from models import db
from services import EXTENSION_KEY
from services.notifier import Notifier

ADMIN_KEY = "test-admin-key"

# Monday 19 October 2026, 10:00 in London (BST)
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now):
        self.current = now

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    """Keeps every notification; raises from the names listed in `fail`."""

    def __init__(self):
        self.calls = []
        self.fail = set()

    def _record(self, name, *args):
        self.calls.append((name, args))
        if name in self.fail:
            raise RuntimeError(f"{name} exploded")

    def names(self):
        return [name for name, _ in self.calls]

    def notify_admin_new_booking(self, member, slot):
        self._record("admin_new_booking", member, slot)

    def notify_member_confirmation(self, member, slot, credits):
        self._record("member_confirmation", member, slot, credits)

    def notify_zero_credits(self, member):
        self._record("zero_credits", member)

    def notify_reschedule(self, member, old_start, slot):
        self._record("reschedule", member, old_start, slot)

    def notify_cancellation(self, member, slot, refunded):
        self._record("cancellation", member, slot, refunded)

    def notify_invite(self, member, token):
        self._record("invite", member, token)


@pytest.fixture()
def clock():
    return FrozenClock(NOW)


@pytest.fixture()
def notifier():
    return RecordingNotifier()


@pytest.fixture()
def app_config():
    return {}


@pytest.fixture()
def app(clock, notifier, app_config):
    config = {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "ADMIN_KEY": ADMIN_KEY,
        "LOG_LEVEL": "WARNING",
        "SMTP_HOST": None,
        "BCRYPT_ROUNDS": 4,
        "CELERY": {
            "broker_url": "memory://",
            "task_always_eager": True,
            "task_ignore_result": True,
        },
    }
    config.update(app_config)
    app = create_app(test_config=config, notifier=notifier, clock=clock)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_headers():
    return {"X-ADMIN-KEY": ADMIN_KEY}


@pytest.fixture()
def services(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture()
def make_member(services):
    def _make(email="sam@example.com", credits=3, name="Sam"):
        with services.store.atomic():
            member = services.store.create_member(email, name=name, credits=credits)
        return member
    return _make


@pytest.fixture()
def make_slot(services):
    def _make(start, location="Hull", minutes=60):
        slot = services.store.add_slot(start, start + timedelta(minutes=minutes), location)
        assert slot is not None
        return slot
    return _make


def utc(*args):
    """Naive UTC instant, the way slots are stored."""
    return datetime(*args)
