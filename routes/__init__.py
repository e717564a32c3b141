from .health import health_bp
from .auth import auth_bp
from .facilities import facility_bp
from .bookings import booking_bp
from .users import users_bp
from .admin import admin_bp
from .audit_logs import audit_bp
