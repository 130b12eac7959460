from flask import current_app

from services.booking_engine import BookingEngine
from services.calendar import BusinessCalendar
from services.cancellation import CancellationEngine
from services.notifier import Notifier
from services.schedule_policy import SchedulePolicy
from services.settings import BookingSettings
from services.slots import SlotManager
from services.store import BookingStore

EXTENSION_KEY = "coachslot"


class Services:
    """Engines wired to one store, calendar and notifier."""

    def __init__(self, session, settings, calendar=None, notifier=None):
        self.settings = settings
        self.calendar = calendar or BusinessCalendar(settings.timezone)
        self.policy = SchedulePolicy(settings.schedule_rules, self.calendar)
        self.store = BookingStore(session)
        self.notifier = notifier or Notifier()

        self.booking = BookingEngine(self.store, self.notifier, settings)
        self.cancellation = CancellationEngine(self.store, self.notifier, self.calendar, settings)
        self.slots = SlotManager(self.store, self.policy, self.calendar, settings)


def init_services(app, session, calendar=None, notifier=None) -> Services:
    settings = BookingSettings.from_config(app.config)
    services = Services(session, settings, calendar=calendar, notifier=notifier)
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
