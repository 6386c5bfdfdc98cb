"""
Domain errors for the booking services.

Every failure a caller can act on is a ``BookingError`` carrying a kind, a
stable machine-readable code and a human message. Routes never build error
responses for these themselves; the handler registered in ``app.py`` maps them
to JSON.
"""


class BookingError(Exception):
    kind = "unexpected"
    http_status = 500

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__.upper()
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "kind": self.kind}


class ValidationError(BookingError):
    kind = "validation"
    http_status = 400

    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(message, code)


class NotFound(BookingError):
    kind = "not_found"
    http_status = 404


class Conflict(BookingError):
    kind = "conflict"
    http_status = 409


class Unauthorized(BookingError):
    kind = "unauthorized"
    http_status = 401


class Forbidden(BookingError):
    kind = "forbidden"
    http_status = 403

    def __init__(self, message: str = "Forbidden", code: str = "FORBIDDEN"):
        super().__init__(message, code)


class InvalidState(BookingError):
    kind = "invalid_state"
    http_status = 400


class Unexpected(BookingError):
    kind = "unexpected"
    http_status = 500

    def __init__(self, message: str = "Storage operation failed", code: str = "STORAGE_ERROR"):
        super().__init__(message, code)


def slot_not_found():
    return NotFound("Slot not found", "SLOT_NOT_FOUND")


def booking_not_found():
    return NotFound("Booking not found", "BOOKING_NOT_FOUND")


def user_not_found():
    return NotFound("User not found", "USER_NOT_FOUND")


def duplicate_booking():
    return Conflict("Duplicate booking", "DUPLICATE_BOOKING")
