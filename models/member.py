from datetime import datetime
from models.db import db

class Member(db.Model):
    __tablename__ = "members"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=True)
    # stored normalized (stripped, lower-cased)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    credits = db.Column(db.Integer, default=0, nullable=False)

    # null until the member activates their invite
    password_hash = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    bookings = db.relationship("Booking", back_populates="member", lazy="dynamic")

    __table_args__ = (
        db.CheckConstraint("credits >= 0", name="ck_members_credits_non_negative"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "credits": self.credits,
            "activated": self.password_hash is not None,
            "created_at": self.created_at.isoformat(),
        }
