from .db import db
from .user import User, ROLE_USER, ROLE_ADMIN
from .audit_log import AuditLog
from .session import Session
from .slot import Slot
from .booking import Booking, BOOKING_STATUSES
