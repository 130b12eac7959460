"""
schedule_policy.py
------------------
Decides which start instants are legal coaching slots.

Rules are keyed by business-local weekday (0 = Monday) and give the location
coached that day plus a half-open hour range [start_hour, end_hour). A blank
location matches the day's default location; otherwise the requested location
must contain the rule's location (case-insensitive), so "Hull Leisure Centre"
matches a "Hull" rule.
"""

from dataclasses import dataclass

from services.errors import PolicyViolation


@dataclass(frozen=True)
class WeekdayRule:
    weekday: int
    location: str
    start_hour: int
    end_hour: int

    @property
    def hours(self):
        return range(self.start_hour, self.end_hour)

    def matches_location(self, location) -> bool:
        wanted = (location or "").strip().lower()
        return not wanted or self.location.lower() in wanted


class SchedulePolicy:
    def __init__(self, rules, calendar):
        self.calendar = calendar
        self._rules = {}
        for rule in rules:
            self._rules[rule.weekday] = rule

    def rule_for(self, weekday: int):
        return self._rules.get(weekday)

    def default_location(self, weekday: int):
        rule = self.rule_for(weekday)
        return rule.location if rule else None

    def allowed_start_hours(self, weekday: int, location=None) -> frozenset:
        rule = self.rule_for(weekday)
        if rule is None or not rule.matches_location(location):
            return frozenset()
        return frozenset(rule.hours)

    def check(self, start, location=None) -> None:
        """Raise PolicyViolation unless `start` (naive UTC) is a legal slot start."""
        local = self.calendar.to_local(start)
        rule = self.rule_for(local.weekday())
        if rule is None or not rule.matches_location(location):
            raise PolicyViolation("DAY_NOT_ALLOWED")
        if local.hour not in rule.hours:
            raise PolicyViolation("HOUR_NOT_ALLOWED")

    def is_bookable(self, start, location=None) -> bool:
        try:
            self.check(start, location)
        except PolicyViolation:
            return False
        return True

    def is_holiday(self, start, holiday_days) -> bool:
        return self.calendar.local_day(start) in holiday_days
