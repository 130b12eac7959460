"""
Business wall-clock helpers.

Slots are stored as naive UTC instants, while every scheduling rule (weekday,
hour, holiday day) is expressed in the business's local time. All conversions
between the two go through BusinessCalendar so nothing depends on the server
process timezone.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def system_clock():
    return datetime.now(timezone.utc)


class BusinessCalendar:
    def __init__(self, tz_name: str = "Europe/London", clock=None):
        self.tz = ZoneInfo(tz_name)
        self._clock = clock or system_clock

    def now(self) -> datetime:
        """Current instant as naive UTC."""
        current = self._clock()
        if current.tzinfo is None:
            return current
        return current.astimezone(timezone.utc).replace(tzinfo=None)

    def to_local(self, instant: datetime) -> datetime:
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)
        return instant.astimezone(self.tz)

    def local_day(self, instant: datetime):
        return self.to_local(instant).date()

    def today(self):
        return self.local_day(self.now())

    def at(self, day, hour: int, minute: int = 0) -> datetime:
        """Business-local wall time on `day` as a naive UTC instant."""
        local = datetime(day.year, day.month, day.day, hour, minute, tzinfo=self.tz)
        return local.astimezone(timezone.utc).replace(tzinfo=None)

    def start_of_day(self, day) -> datetime:
        return self.at(day, 0)

    def parse_instant(self, value: str) -> datetime:
        """
        Parse an ISO-8601 timestamp into naive UTC.

        Input carrying an offset (or a trailing Z) is converted; input without
        one is read as business-local wall time.
        """
        if not isinstance(value, str):
            raise TypeError("expected an ISO-8601 string")
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=self.tz)
        return parsed.astimezone(timezone.utc).replace(tzinfo=None)
