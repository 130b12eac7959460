"""
booking_engine.py
-----------------
Books one slot for one member against one credit.

The credit decrement and the slot claim are both guarded UPDATEs run inside a
single transaction together with the booking insert. Two requests racing for
the member's last credit, or for the same slot, can both pass the pre-checks;
only one of them gets a row back from each guard and the loser's transaction
is rolled back, leaving slot, ledger and bookings untouched.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError

from services.errors import (
    ConflictError,
    NoCreditsError,
    NotFoundError,
    NotMemberError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 1000


@dataclass(frozen=True)
class BookingReceipt:
    booking_id: int
    member_id: int
    slot_id: int
    credits: int


def clean_text(value, limit=None) -> str:
    """Stripped text of a JSON field; anything that is not a string reads as empty."""
    if not isinstance(value, str):
        return ""
    value = value.strip()
    return value[:limit] if limit else value


def normalize_email(value) -> str:
    return clean_text(value).lower()


def _coerce_id(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class BookingEngine:
    def __init__(self, store, notifier, settings):
        self.store = store
        self.notifier = notifier
        self.settings = settings

    def book(self, slot_id, email, notes=None) -> BookingReceipt:
        email = normalize_email(email)
        if slot_id in (None, "") or not email:
            raise ValidationError("MISSING_FIELDS")
        slot_id = _coerce_id(slot_id)
        if slot_id is None:
            raise NotFoundError("SLOT_NOT_FOUND")
        notes = clean_text(notes, MAX_NOTES_LENGTH) or None

        slot = self.store.get_slot(slot_id)
        if slot is None:
            raise NotFoundError("SLOT_NOT_FOUND")
        if slot.is_booked:
            raise ConflictError("SLOT_ALREADY_BOOKED")

        member = self._resolve_member(email)
        if member.credits <= 0:
            raise NoCreditsError()

        with self.store.atomic():
            if not self.store.consume_credit(member.id):
                raise NoCreditsError()
            if not self.store.claim_slot(slot.id):
                # lost the slot to a concurrent booking; the decrement rolls back
                raise ConflictError("SLOT_ALREADY_BOOKED")
            booking = self.store.insert_booking(member.id, slot.id, notes)
            remaining = self.store.credits_of(member.id)
            receipt = BookingReceipt(
                booking_id=booking.id,
                member_id=member.id,
                slot_id=slot.id,
                credits=remaining,
            )

        logger.info(
            "Booked slot %s for member %s (booking %s, %s credits left)",
            receipt.slot_id, receipt.member_id, receipt.booking_id, receipt.credits,
        )
        self._notify(receipt, member, slot)
        return receipt

    def _resolve_member(self, email):
        member = self.store.get_member_by_email(email)
        if member is not None:
            return member
        if self.settings.require_registered_member:
            raise NotMemberError()
        # walk-in: record the member with no credits so the coach can top them up
        try:
            with self.store.atomic():
                member = self.store.create_member(email, credits=0)
        except IntegrityError:
            # created by a concurrent request for the same email
            return self.store.get_member_by_email(email)
        logger.info("Created walk-in member %s", member.id)
        return member

    def _notify(self, receipt, member, slot):
        calls = [
            (self.notifier.notify_admin_new_booking, (member, slot)),
            (self.notifier.notify_member_confirmation, (member, slot, receipt.credits)),
        ]
        if receipt.credits == 0:
            calls.append((self.notifier.notify_zero_credits, (member,)))
        for fn, args in calls:
            try:
                fn(*args)
            except Exception:
                logger.exception("Notification %s failed for booking %s", fn.__name__, receipt.booking_id)
