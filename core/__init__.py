from .errors import (
    BookingError,
    NotFound,
    Unauthorized,
    ValidationError,
    ConflictError,
    InvalidTransition,
    BookingCreationFailed,
    BookingFetchFailed,
    NotificationFailure,
)
