from datetime import datetime
from models.db import db

class Holiday(db.Model):
    __tablename__ = "holidays"

    # business-local calendar day
    day = db.Column(db.Date, primary_key=True)
    note = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {"day": self.day.isoformat(), "note": self.note}
