from routes.health import health_bp
from routes.courts import court_bp
from routes.booking import booking_bp
from routes.full_venue import full_venue_bp
from routes.calendar_policy import calendar_bp
from routes.admin import admin_bp
