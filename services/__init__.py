from .errors import (
    BookingError,
    ValidationError,
    ConflictError,
    AuthorizationError,
    NotFoundError,
    UnexpectedError,
)
from .facilities import FacilityDirectory
from .bookings import BookingManager, Availability, overlaps
