"""Typed failures raised by the booking engine.

Routes never build error responses for these by hand; ``app.py`` registers a
single handler that renders ``kind`` and ``message`` with ``status_code``.
"""


class BookingError(Exception):
    kind = "BookingError"
    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class NotFound(BookingError):
    kind = "NotFound"
    status_code = 404


class Unauthorized(BookingError):
    kind = "Unauthorized"
    status_code = 403


class ValidationError(BookingError):
    kind = "ValidationError"
    status_code = 400


class ConflictError(BookingError):
    kind = "ConflictError"
    status_code = 409


class InvalidTransition(BookingError):
    kind = "InvalidTransition"
    status_code = 409

    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Cannot move booking from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class BookingCreationFailed(BookingError):
    kind = "BookingCreationFailed"


class BookingFetchFailed(BookingError):
    kind = "BookingFetchFailed"


class NotificationFailure(BookingError):
    """Raised inside the outbox only; delivery code logs it and moves on."""

    kind = "NotificationFailure"
