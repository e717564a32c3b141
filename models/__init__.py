from .db import db
from .user import User, Role, user_roles, user_favorites
from .audit_log import AuditLog
from .session import Session
from .facility import Facility
from .booking import Booking
