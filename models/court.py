from datetime import datetime, timedelta
from models.db import db

COURT_TYPES = ("competition", "training", "solo", "dink", "full_venue")

# placeholder court that stands for "the whole venue" in listings; never booked directly
FULL_VENUE_TYPE = "full_venue"

AMENITIES = ("air_conditioning", "lighting", "net", "paddles", "balls", "water", "shower")

class Court(db.Model):
    __tablename__ = "courts"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False)
    number = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(20), nullable=False, default="competition")
    description = db.Column(db.String(500), nullable=True)
    capacity = db.Column(db.Integer, nullable=False, default=4)
    amenities = db.Column(db.JSON, nullable=False, default=list)

    # [{"start_time": "06:00", "end_time": "18:00", "price": 100, "name": "day"}, ...]
    time_slots = db.Column(db.JSON, nullable=False, default=list)
    # legacy flat rates, used only when time_slots is empty
    peak_rate = db.Column(db.Float, nullable=True)
    off_peak_rate = db.Column(db.Float, nullable=True)
    member_discount = db.Column(db.Float, nullable=False, default=0)  # percent

    # {"monday": {"is_open": true, "start": "07:00", "end": "24:00"}, ...}
    operating_hours = db.Column(db.JSON, nullable=False, default=dict)

    is_active = db.Column(db.Boolean, default=True, nullable=False)

    is_under_maintenance = db.Column(db.Boolean, default=False, nullable=False)
    maintenance_start = db.Column(db.DateTime, nullable=True)
    maintenance_end = db.Column(db.DateTime, nullable=True)
    maintenance_reason = db.Column(db.String(200), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    bookings = db.relationship("Booking", back_populates="court", lazy="dynamic")

    __table_args__ = (
        db.UniqueConstraint("number", name="uq_courts_number"),
    )

    def under_maintenance_during(self, start_at: datetime, end_at: datetime) -> bool:
        """True when the maintenance window overlaps [start_at, end_at), or the flag is on with no window."""
        if self.maintenance_start is None or self.maintenance_end is None:
            return bool(self.is_under_maintenance)
        return self.maintenance_start < end_at and self.maintenance_end > start_at

    def under_maintenance_at(self, moment: datetime) -> bool:
        return self.under_maintenance_during(moment, moment + timedelta(minutes=1))

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "number": self.number,
            "type": self.type,
            "description": self.description,
            "capacity": self.capacity,
            "amenities": list(self.amenities or []),
            "pricing": {
                "time_slots": list(self.time_slots or []),
                "peak_rate": self.peak_rate,
                "off_peak_rate": self.off_peak_rate,
                "member_discount": self.member_discount,
            },
            "operating_hours": dict(self.operating_hours or {}),
            "is_active": self.is_active,
            "maintenance": {
                "is_under_maintenance": self.is_under_maintenance,
                "start": self.maintenance_start.isoformat() if self.maintenance_start else None,
                "end": self.maintenance_end.isoformat() if self.maintenance_end else None,
                "reason": self.maintenance_reason,
            },
        }
