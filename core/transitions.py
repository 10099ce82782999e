"""Allowed booking status moves.

PENDING -> CONFIRMED | CANCELLED
CONFIRMED -> IN_PROGRESS | CANCELLED
IN_PROGRESS -> COMPLETED | NO_SHOW | CANCELLED

COMPLETED, CANCELLED and NO_SHOW are terminal.
"""
from models.booking import BookingStatus
from core.errors import InvalidTransition, ValidationError

S = BookingStatus

ALLOWED_TRANSITIONS = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED}),
    S.CONFIRMED: frozenset({S.IN_PROGRESS, S.CANCELLED}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.NO_SHOW, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)


def coerce_status(value) -> BookingStatus:
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(s.value for s in BookingStatus)
        raise ValidationError(f"Unknown status {value!r}. Use one of: {allowed}") from None


def is_terminal(status) -> bool:
    return coerce_status(status) in TERMINAL_STATUSES


def can_transition(from_status, to_status) -> bool:
    return coerce_status(to_status) in ALLOWED_TRANSITIONS[coerce_status(from_status)]


def validate_transition(from_status, to_status) -> None:
    """Raise ``InvalidTransition`` unless ``from -> to`` is in the table.

    Same-status requests are not transitions; callers treat them as no-ops.
    """
    current, target = coerce_status(from_status), coerce_status(to_status)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(current.value, target.value)
