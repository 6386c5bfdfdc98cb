from datetime import datetime
from models.db import db

class Slot(db.Model):
    __tablename__ = "slots"

    id = db.Column(db.Integer, primary_key=True)

    # Wall-clock values in the reference timezone
    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    time = db.Column(db.String(5), nullable=False)               # HH:mm

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    bookings = db.relationship("Booking", back_populates="slot", cascade="all, delete-orphan")

    __table_args__ = (
        # One slot per calendar day and start time
        db.UniqueConstraint("date", "time", name="uq_slot_date_time"),
    )
