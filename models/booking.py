from datetime import datetime
from models.db import db

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed", "no_show")

# statuses that hold the court; everything else is ignored by conflict checks
ACTIVE_STATUSES = ("pending", "confirmed")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=True)  # only differs from date when the range crosses midnight
    start_time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    end_time = db.Column(db.String(5), nullable=False)    # "HH:MM" or "24:00"
    duration_minutes = db.Column(db.Integer, nullable=False)

    players = db.Column(db.JSON, nullable=False, default=list)
    total_players = db.Column(db.Integer, nullable=False, default=1)
    special_requests = db.Column(db.String(500), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="pending")
    # status values: pending, confirmed, cancelled, completed, no_show

    base_price = db.Column(db.Float, nullable=False, default=0)
    member_discount = db.Column(db.Float, nullable=False, default=0)
    total_price = db.Column(db.Float, nullable=False, default=0)
    custom_points = db.Column(db.Integer, nullable=True)
    is_custom_points = db.Column(db.Boolean, default=False, nullable=False)

    is_full_venue = db.Column(db.Boolean, default=False, nullable=False)
    full_venue_group = db.Column(db.String(32), nullable=True, index=True)
    full_venue_booking_ids = db.Column(db.JSON, nullable=False, default=list)

    created_by = db.Column(db.String(10), nullable=False, default="user")  # user / admin
    bypass_restrictions = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancelled_by = db.Column(db.String(10), nullable=True)  # user / admin / system
    cancel_reason = db.Column(db.String(200), nullable=True)

    court = db.relationship("Court", back_populates="bookings")

    __table_args__ = (
        db.Index("ix_bookings_court_date", "court_id", "date"),
        db.Index("ix_bookings_status_date", "status", "date"),
    )

    @property
    def charged_total(self):
        if self.is_custom_points and self.custom_points is not None:
            return self.custom_points
        return self.total_price

    def to_dict(self):
        return {
            "id": self.id,
            "user_id": self.user_id,
            "court_id": self.court_id,
            "date": self.date.isoformat(),
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_minutes": self.duration_minutes,
            "players": list(self.players or []),
            "total_players": self.total_players,
            "special_requests": self.special_requests,
            "notes": self.notes,
            "status": self.status,
            "pricing": {
                "base_price": self.base_price,
                "member_discount": self.member_discount,
                "total_price": self.total_price,
                "custom_points": self.custom_points,
                "is_custom_points": self.is_custom_points,
                "charged_total": self.charged_total,
            },
            "is_full_venue": self.is_full_venue,
            "full_venue_group": self.full_venue_group,
            "full_venue_booking_ids": list(self.full_venue_booking_ids or []),
            "created_by": self.created_by,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancelled_by": self.cancelled_by,
            "cancel_reason": self.cancel_reason,
        }
