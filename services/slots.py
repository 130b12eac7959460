"""
slots.py
--------
Slot maintenance and admin slot management.

maintain() purges ended, unbooked slots and tops the horizon back up from
the schedule rules. Generation is keyed on the exact start instant, which is
unique in the store, so re-running it (or running two copies at once) never
creates duplicates.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from services.booking_engine import clean_text
from services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaintenanceResult:
    purged: int
    created: int
    days: int


class SlotManager:
    def __init__(self, store, policy, calendar, settings):
        self.store = store
        self.policy = policy
        self.calendar = calendar
        self.settings = settings

    # ---------- maintenance ----------
    def clamp_days(self, days) -> int:
        try:
            days = int(days)
        except (TypeError, ValueError):
            days = self.settings.maintain_default_days
        return max(1, min(self.settings.maintain_max_days, days))

    def maintain(self, days=None) -> MaintenanceResult:
        days = self.clamp_days(self.settings.maintain_default_days if days is None else days)
        purged = self.store.purge_expired_slots(self.calendar.now())
        created = self.top_up(days)
        logger.info("Slot maintenance: purged %s, created %s (%s days)", purged, created, days)
        return MaintenanceResult(purged=purged, created=created, days=days)

    def top_up(self, days: int) -> int:
        now = self.calendar.now()
        today = self.calendar.today()
        holidays = self.store.holiday_days(today, today + timedelta(days=days))
        duration = timedelta(minutes=self.settings.slot_duration_minutes)

        created = 0
        for offset in range(days):
            day = today + timedelta(days=offset)
            if day in holidays:
                continue
            rule = self.policy.rule_for(day.weekday())
            if rule is None:
                continue
            for hour in rule.hours:
                start = self.calendar.at(day, hour)
                if start <= now:
                    continue
                if self.store.insert_slot_if_missing(start, start + duration, rule.location):
                    created += 1
        return created

    # ---------- admin ----------
    def _parse_start(self, value, code="MISSING_START"):
        if not value:
            raise ValidationError(code)
        try:
            return self.calendar.parse_instant(value)
        except (TypeError, ValueError):
            raise ValidationError("INVALID_DATETIME")

    def _duration(self, minutes):
        if minutes in (None, ""):
            return timedelta(minutes=self.settings.slot_duration_minutes)
        try:
            minutes = int(minutes)
        except (TypeError, ValueError):
            raise ValidationError("INVALID_DURATION")
        if minutes <= 0:
            raise ValidationError("INVALID_DURATION")
        return timedelta(minutes=minutes)

    def create_slot(self, start_iso, location=None, duration_minutes=None, force=False):
        """Ad hoc slot. Checked against the schedule rules unless `force`."""
        start = self._parse_start(start_iso)
        duration = self._duration(duration_minutes)
        location = clean_text(location, 160) or None

        if not force:
            self.policy.check(start, location)
        if location is None:
            location = self.policy.default_location(self.calendar.to_local(start).weekday())

        if self.store.slot_at(start) is not None:
            raise ConflictError("DUPLICATE_START")
        slot = self.store.add_slot(start, start + duration, location)
        if slot is None:
            raise ConflictError("DUPLICATE_START")
        logger.info("Created slot %s at %s (force=%s)", slot.id, start, bool(force))
        return slot

    def update_slot(self, slot_id, start_iso=None, location=None):
        """
        Edit a slot's time and/or location. Returns (slot, old_start, booking)
        where booking is the active booking whose member must be told.
        """
        location = clean_text(location, 160) or None
        if not start_iso and not location:
            raise ValidationError("NO_CHANGES")

        slot = self.store.get_slot(slot_id)
        if slot is None:
            raise NotFoundError("SLOT_NOT_FOUND")

        old_start = slot.start_time
        length = slot.end_time - slot.start_time
        with self.store.atomic():
            if start_iso:
                new_start = self._parse_start(start_iso)
                if new_start != old_start:
                    clash = self.store.slot_at(new_start)
                    if clash is not None:
                        raise ConflictError("DUPLICATE_START")
                    slot.start_time = new_start
                    slot.end_time = new_start + length
            if location:
                slot.location = location

        booking = self.store.active_booking_for_slot(slot.id) if slot.is_booked else None
        return slot, old_start, booking

    def delete_slot(self, slot_id):
        slot = self.store.get_slot(slot_id)
        if slot is None:
            raise NotFoundError("SLOT_NOT_FOUND")
        if slot.is_booked:
            raise ConflictError("SLOT_BOOKED")
        with self.store.atomic():
            if not self.store.delete_open_slot(slot.id):
                # booked since we read it
                raise ConflictError("SLOT_BOOKED")
        return True

    # ---------- reads ----------
    def list_open(self, start=None, end=None, only_available=False, include_holidays=False):
        """
        Slots in [start, end) as dicts, earliest first.

        The window is clamped to the listing horizon. Holiday days are dropped
        unless `include_holidays`, in which case they are flagged instead.
        """
        now = self.calendar.now()
        horizon = now + timedelta(days=self.settings.slot_list_max_days)
        start = start or now
        end = min(end or horizon, horizon)

        rows = self.store.list_slots(start, end, only_available=only_available)
        holidays = self.store.holiday_days(
            self.calendar.local_day(start), self.calendar.local_day(end)
        )
        out = []
        for slot in rows:
            holiday = self.policy.is_holiday(slot.start_time, holidays)
            if holiday and not include_holidays:
                continue
            item = slot.to_dict(self.calendar)
            item["holiday"] = holiday
            out.append(item)
        return out
