"""Error taxonomy shared by the facility directory and the booking lifecycle.

Every error carries the HTTP status it maps to and a short machine-readable
``code``. Policy violations share ``ValidationError`` (400) and are told
apart by ``code``.
"""


class BookingError(Exception):
    status_code = 500
    default_code = "error"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "code": self.code}


class ValidationError(BookingError):
    status_code = 400
    default_code = "validation_error"


class ConflictError(BookingError):
    status_code = 400
    default_code = "slot_conflict"


class AuthorizationError(BookingError):
    status_code = 403
    default_code = "forbidden"


class NotFoundError(BookingError):
    status_code = 404
    default_code = "not_found"


class UnexpectedError(BookingError):
    status_code = 500
    default_code = "unexpected_error"

    def __init__(self, message: str = "Something went wrong", code: str = None):
        super().__init__(message, code)
