from datetime import datetime
from models.db import db

class CalendarPolicySetting(db.Model):
    """Single versioned row holding the venue-wide weekend-rate configuration."""
    __tablename__ = "calendar_policy"

    id = db.Column(db.Integer, primary_key=True)

    # weekday indices, 0 = Sunday .. 6 = Saturday
    weekend_days = db.Column(db.JSON, nullable=False, default=lambda: [0, 6])
    include_friday_evening = db.Column(db.Boolean, default=False, nullable=False)
    friday_evening_hour = db.Column(db.Integer, default=18, nullable=False)

    # bumped on every admin write; readers compare it against their cached copy
    version = db.Column(db.Integer, default=1, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_by = db.Column(db.Integer, nullable=True)


class Holiday(db.Model):
    __tablename__ = "holidays"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), nullable=False)  # YYYY-MM-DD
    name = db.Column(db.String(100), nullable=True)
    description = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.UniqueConstraint("date", name="uq_holidays_date"),
    )
