"""
store.py
--------
SQLAlchemy-backed repository for slots, members, bookings and holidays.

This is the only code path that writes `slots.is_booked` and
`members.credits`. Every such write is a conditional UPDATE whose WHERE clause
carries the guard ("only if still unbooked", "only if credits > 0"), and the
caller learns from the affected row count whether it won. Callers compose
these inside `atomic()` so a failed guard rolls back everything before it.
"""

from contextlib import contextmanager

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError

from models import Booking, Holiday, Member, Slot


class BookingStore:
    def __init__(self, session):
        self.session = session

    @contextmanager
    def atomic(self):
        """Commit on success, roll back on any exception."""
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _changed(self, stmt) -> bool:
        result = self.session.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount == 1

    # ---------- slots ----------
    def get_slot(self, slot_id):
        return self.session.get(Slot, slot_id)

    def slot_at(self, start):
        return self.session.execute(
            select(Slot).where(Slot.start_time == start)
        ).scalar_one_or_none()

    def list_slots(self, start=None, end=None, only_available=False, newest_first=False):
        stmt = select(Slot)
        if start is not None:
            stmt = stmt.where(Slot.start_time >= start)
        if end is not None:
            stmt = stmt.where(Slot.start_time < end)
        if only_available:
            stmt = stmt.where(Slot.is_booked.is_(False))
        order = Slot.start_time.desc() if newest_first else Slot.start_time.asc()
        return self.session.execute(stmt.order_by(order)).scalars().all()

    def add_slot(self, start, end, location):
        """Insert and commit a slot; None if the start instant is already taken."""
        slot = Slot(start_time=start, end_time=end, location=location, is_booked=False)
        self.session.add(slot)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return None
        return slot

    def insert_slot_if_missing(self, start, end, location) -> bool:
        if self.slot_at(start) is not None:
            return False
        return self.add_slot(start, end, location) is not None

    def claim_slot(self, slot_id) -> bool:
        return self._changed(
            update(Slot)
            .where(Slot.id == slot_id, Slot.is_booked.is_(False))
            .values(is_booked=True)
        )

    def release_slot(self, slot_id) -> bool:
        return self._changed(
            update(Slot)
            .where(Slot.id == slot_id, Slot.is_booked.is_(True))
            .values(is_booked=False)
        )

    def _detach_cancelled(self, slot_ids):
        # cancelled bookings keep their own copy of the slot's time and place
        self.session.execute(
            update(Booking)
            .where(Booking.cancelled_at.is_not(None), Booking.slot_id.in_(slot_ids))
            .values(slot_id=None)
            .execution_options(synchronize_session=False)
        )

    def delete_open_slot(self, slot_id) -> bool:
        """Delete a slot only while it is unbooked."""
        self._detach_cancelled([slot_id])
        return self._changed(
            delete(Slot).where(Slot.id == slot_id, Slot.is_booked.is_(False))
        )

    def purge_expired_slots(self, now) -> int:
        """Delete every unbooked slot that has ended."""
        expired = (Slot.is_booked.is_(False), Slot.end_time < now)
        with self.atomic():
            self._detach_cancelled(select(Slot.id).where(*expired))
            result = self.session.execute(
                delete(Slot).where(*expired).execution_options(synchronize_session=False)
            )
        return result.rowcount or 0

    # ---------- members ----------
    def get_member(self, member_id):
        return self.session.get(Member, member_id)

    def get_member_by_email(self, email):
        return self.session.execute(
            select(Member).where(func.lower(Member.email) == (email or "").strip().lower())
        ).scalar_one_or_none()

    def create_member(self, email, name=None, credits=0):
        member = Member(email=(email or "").strip().lower(), name=name, credits=credits)
        self.session.add(member)
        self.session.flush()
        return member

    def credits_of(self, member_id) -> int:
        return self.session.execute(
            select(Member.credits).where(Member.id == member_id)
        ).scalar_one()

    def consume_credit(self, member_id) -> bool:
        return self._changed(
            update(Member)
            .where(Member.id == member_id, Member.credits > 0)
            .values(credits=Member.credits - 1)
        )

    def refund_credit(self, member_id) -> bool:
        return self._changed(
            update(Member)
            .where(Member.id == member_id)
            .values(credits=Member.credits + 1)
        )

    def set_member_credits(self, member_id, credits: int) -> bool:
        return self._changed(
            update(Member).where(Member.id == member_id).values(credits=credits)
        )

    # ---------- bookings ----------
    def get_booking(self, booking_id):
        return self.session.get(Booking, booking_id)

    def active_booking_for_slot(self, slot_id):
        return self.session.execute(
            select(Booking).where(Booking.slot_id == slot_id, Booking.cancelled_at.is_(None))
        ).scalar_one_or_none()

    def insert_booking(self, member_id, slot_id, notes=None):
        booking = Booking(member_id=member_id, slot_id=slot_id, notes=notes)
        self.session.add(booking)
        self.session.flush()
        return booking

    def mark_cancelled(self, booking_id, cancelled_by, refunded, at, slot=None) -> bool:
        values = dict(cancelled_at=at, cancelled_by=cancelled_by, refunded=bool(refunded))
        if slot is not None:
            values.update(
                slot_start_time=slot.start_time,
                slot_end_time=slot.end_time,
                slot_location=slot.location,
            )
        return self._changed(
            update(Booking)
            .where(Booking.id == booking_id, Booking.cancelled_at.is_(None))
            .values(**values)
        )

    def repoint_booking(self, booking_id, old_slot_id, new_slot_id) -> bool:
        return self._changed(
            update(Booking)
            .where(
                Booking.id == booking_id,
                Booking.slot_id == old_slot_id,
                Booking.cancelled_at.is_(None),
            )
            .values(slot_id=new_slot_id)
        )

    def member_bookings(self, member_id):
        """(booking, slot) rows; slot is None once a cancelled booking's slot is gone."""
        starts = func.coalesce(Slot.start_time, Booking.slot_start_time)
        return self.session.execute(
            select(Booking, Slot)
            .outerjoin(Slot, Booking.slot_id == Slot.id)
            .where(Booking.member_id == member_id)
            .order_by(starts.desc())
        ).all()

    def list_bookings(self, now=None, active_only=False, limit=500):
        """Bookings joined with member and slot; `now` keeps only future slots."""
        starts = func.coalesce(Slot.start_time, Booking.slot_start_time)
        stmt = (
            select(Booking, Member, Slot)
            .join(Member, Booking.member_id == Member.id)
            .outerjoin(Slot, Booking.slot_id == Slot.id)
        )
        if active_only:
            stmt = stmt.where(Booking.cancelled_at.is_(None))
        if now is not None:
            stmt = stmt.where(starts >= now)
        return self.session.execute(stmt.order_by(starts.asc()).limit(limit)).all()

    # ---------- holidays ----------
    def holiday_days(self, first_day=None, last_day=None) -> set:
        stmt = select(Holiday.day)
        if first_day is not None:
            stmt = stmt.where(Holiday.day >= first_day)
        if last_day is not None:
            stmt = stmt.where(Holiday.day <= last_day)
        return set(self.session.execute(stmt).scalars().all())
