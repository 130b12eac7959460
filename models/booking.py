from datetime import datetime
from models.db import db
from models.slot import Slot

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=False, index=True)
    # repointed by a move while active; NULL once a cancelled booking's slot is deleted
    slot_id = db.Column(db.Integer, db.ForeignKey("slots.id"), nullable=True, index=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    # set once; a cancelled booking is terminal
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancelled_by = db.Column(db.String(10), nullable=True)  # member | admin
    refunded = db.Column(db.Boolean, default=False, nullable=False)

    # copy of the slot taken at cancel time
    slot_start_time = db.Column(db.DateTime, nullable=True)
    slot_end_time = db.Column(db.DateTime, nullable=True)
    slot_location = db.Column(db.String(160), nullable=True)

    member = db.relationship("Member", back_populates="bookings")
    slot = db.relationship("Slot")

    __table_args__ = (
        # At most one active booking per slot
        db.Index(
            "uq_bookings_active_slot",
            "slot_id",
            unique=True,
            sqlite_where=db.text("cancelled_at IS NULL"),
            postgresql_where=db.text("cancelled_at IS NULL"),
        ),
    )

    @property
    def is_active(self):
        return self.cancelled_at is None

    def slot_snapshot(self):
        """Unsaved Slot rebuilt from the copy kept on the booking."""
        if self.slot_start_time is None:
            return None
        return Slot(
            start_time=self.slot_start_time,
            end_time=self.slot_end_time,
            location=self.slot_location,
            is_booked=False,
        )

    def slot_dict(self, slot=None, calendar=None):
        slot = slot if slot is not None else self.slot_snapshot()
        return slot.to_dict(calendar) if slot is not None else None
