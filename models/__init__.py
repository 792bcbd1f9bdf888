from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .court import Court
from .booking import Booking
from .calendar_policy import CalendarPolicySetting, Holiday
