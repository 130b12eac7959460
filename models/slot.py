from datetime import datetime
from models.db import db

class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    # naive UTC instants
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)

    location = db.Column(db.String(160), nullable=True)
    is_booked = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # One slot per start instant (maintenance and ad hoc creation rely on it)
        db.UniqueConstraint("start_time", name="uq_slots_start_time"),
        db.CheckConstraint("end_time > start_time", name="ck_slots_end_after_start"),
    )

    def to_dict(self, calendar=None):
        out = {
            "id": self.id,
            "start_time": self.start_time.isoformat() + "Z",
            "end_time": self.end_time.isoformat() + "Z",
            "location": self.location,
            "is_booked": self.is_booked,
        }
        if calendar is not None:
            out["local_start"] = calendar.to_local(self.start_time).isoformat()
        return out
