"""
cancellation.py
---------------
Cancels and moves bookings, and withdraws whole slots.

A cancellation stamps the booking, frees its slot and (optionally) refunds
one credit in one transaction. The stamp is guarded on `cancelled_at IS NULL`
so two concurrent cancels of the same booking cannot both refund.

Members get an automatic refund only when they cancel more than
REFUND_CUTOFF_HOURS before the start; admins choose explicitly.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MEMBER = "member"
ADMIN = "admin"


@dataclass(frozen=True)
class CancelResult:
    booking_id: int
    refunded: bool


@dataclass(frozen=True)
class SlotCancelResult:
    slot_id: int
    booking_id: Optional[int]
    refunded: bool
    notified: bool


@dataclass(frozen=True)
class MoveResult:
    booking_id: int
    old_slot_id: int
    new_slot_id: int


class CancellationEngine:
    def __init__(self, store, notifier, calendar, settings):
        self.store = store
        self.notifier = notifier
        self.calendar = calendar
        self.settings = settings

    def member_refund_due(self, slot_start) -> bool:
        cutoff = timedelta(hours=self.settings.refund_cutoff_hours)
        return slot_start - self.calendar.now() > cutoff

    def _load_active(self, booking_id, member_id=None):
        booking = self.store.get_booking(booking_id)
        if booking is None or (member_id is not None and booking.member_id != member_id):
            raise NotFoundError("NOT_FOUND")
        if booking.cancelled_at is not None:
            raise ConflictError("ALREADY_CANCELLED")
        return booking

    def cancel_by_member(self, booking_id, member_id) -> CancelResult:
        booking = self._load_active(booking_id, member_id=member_id)
        refund = self.member_refund_due(booking.slot.start_time)
        return self._cancel(booking, MEMBER, refund)

    def cancel_by_admin(self, booking_id, refund: bool = True) -> CancelResult:
        booking = self._load_active(booking_id)
        result = self._cancel(booking, ADMIN, bool(refund))

        booking = self.store.get_booking(result.booking_id)
        try:
            self.notifier.notify_cancellation(booking.member, booking.slot, result.refunded)
        except Exception:
            logger.exception("Cancellation notice failed for booking %s", result.booking_id)
        return result

    def _cancel(self, booking, actor, refund) -> CancelResult:
        booking_id, slot_id, member_id = booking.id, booking.slot_id, booking.member_id
        slot = booking.slot
        with self.store.atomic():
            if not self.store.mark_cancelled(booking_id, actor, refund, self.calendar.now(), slot=slot):
                raise ConflictError("ALREADY_CANCELLED")
            if not self.store.release_slot(slot_id):
                logger.warning("Slot %s of active booking %s was not marked booked", slot_id, booking_id)
            if refund:
                self.store.refund_credit(member_id)

        logger.info(
            "Booking %s cancelled by %s (refunded=%s)", booking_id, actor, refund,
        )
        return CancelResult(booking_id=booking_id, refunded=bool(refund))

    def cancel_slot(self, slot_id) -> SlotCancelResult:
        """
        Withdraw a slot. Its active booking, if any, is cancelled with a refund
        and the member is told; the slot row is then deleted.
        """
        slot = self.store.get_slot(slot_id)
        if slot is None:
            raise NotFoundError("SLOT_NOT_FOUND")
        slot_id = slot.id
        booking = self.store.active_booking_for_slot(slot_id)
        booking_id = booking.id if booking is not None else None

        with self.store.atomic():
            if booking is not None:
                if not self.store.mark_cancelled(booking_id, ADMIN, True, self.calendar.now(), slot=slot):
                    raise ConflictError("ALREADY_CANCELLED")
                self.store.release_slot(slot_id)
                self.store.refund_credit(booking.member_id)
            elif slot.is_booked:
                # flag left set without a live booking
                self.store.release_slot(slot_id)
            if not self.store.delete_open_slot(slot_id):
                raise ConflictError("SLOT_BOOKED")

        logger.info("Slot %s cancelled (booking=%s)", slot_id, booking_id)
        if booking_id is None:
            return SlotCancelResult(slot_id=slot_id, booking_id=None, refunded=False, notified=False)

        booking = self.store.get_booking(booking_id)
        notified = True
        try:
            self.notifier.notify_cancellation(booking.member, booking.slot_snapshot(), True)
        except Exception:
            notified = False
            logger.exception("Cancellation notice failed for booking %s", booking_id)
        return SlotCancelResult(slot_id=slot_id, booking_id=booking_id, refunded=True, notified=notified)

    def move(self, booking_id, new_slot_id) -> MoveResult:
        if new_slot_id in (None, ""):
            raise ValidationError("MISSING_NEW_SLOT")
        try:
            new_slot_id = int(new_slot_id)
        except (TypeError, ValueError):
            raise NotFoundError("TARGET_NOT_FOUND")

        booking = self._load_active(booking_id)
        target = self.store.get_slot(new_slot_id)
        if target is None:
            raise NotFoundError("TARGET_NOT_FOUND")
        if target.is_booked or target.id == booking.slot_id:
            raise ConflictError("TARGET_BOOKED")
        if target.start_time <= self.calendar.now():
            raise ValidationError("TARGET_IN_PAST")

        old_slot_id = booking.slot_id
        old_start = booking.slot.start_time
        with self.store.atomic():
            if not self.store.claim_slot(target.id):
                raise ConflictError("TARGET_BOOKED")
            if not self.store.repoint_booking(booking.id, old_slot_id, target.id):
                # cancelled or moved elsewhere since we read it
                raise ConflictError("ALREADY_CANCELLED")
            self.store.release_slot(old_slot_id)

        logger.info("Booking %s moved from slot %s to %s", booking_id, old_slot_id, new_slot_id)
        booking = self.store.get_booking(booking_id)
        try:
            self.notifier.notify_reschedule(booking.member, old_start, booking.slot)
        except Exception:
            logger.exception("Reschedule notice failed for booking %s", booking_id)
        return MoveResult(booking_id=booking_id, old_slot_id=old_slot_id, new_slot_id=new_slot_id)
