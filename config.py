import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

def _int_list(value: str):
    return [int(part) for part in value.split(",") if part.strip()]

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as pickleslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "pickleslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie name for our auth token
    AUTH_COOKIE_NAME = "pickleslot_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = 8 * 60 * 60

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = 20 * 60

    # Session/cookie security defaults
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = False  # set True when using HTTPS

    # Venue wall clock; booking dates and times are local to the venue
    VENUE_TIMEZONE = os.getenv("VENUE_TIMEZONE", "Asia/Hong_Kong")

    # Cancellation policy
    CANCEL_CUTOFF_HOURS = int(os.getenv("CANCEL_CUTOFF_HOURS", "2"))

    # Booking length limits (minutes), skipped for admin bypass
    MIN_BOOKING_MINUTES = 60
    MAX_BOOKING_MINUTES = 120

    # How far ahead each role may book
    MAX_ADVANCE_DAYS_BY_ROLE = {"PLAYER": 7, "COACH": 14, "ADMIN": 30}

    # Calendar policy defaults until an admin saves one (0 = Sunday .. 6 = Saturday)
    DEFAULT_WEEKEND_DAYS = _int_list(os.getenv("DEFAULT_WEEKEND_DAYS", "0,6"))
    DEFAULT_FRIDAY_EVENING_HOUR = int(os.getenv("DEFAULT_FRIDAY_EVENING_HOUR", "18"))

    # Pricing
    WEEKEND_PEAK_START_HOUR = 8          # weekend promotion applies from 08:00 to midnight
    LEGACY_PEAK_HOURS = (18, 23)         # flat-rate courts: weekday peak window [18, 23)
    PEAK_BAND_NAMES = ("繁忙時間", "peak")

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Create missing default roles when the app starts (needs the schema in place)
    SEED_ROLES_ON_STARTUP = os.getenv("SEED_ROLES_ON_STARTUP", "1") == "1"

    # Basic app settings
    DEBUG = False
