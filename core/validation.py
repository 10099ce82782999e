import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from core.errors import ValidationError

CENT = Decimal("0.01")
END_OF_DAY = "24:00"

_TIME_RE = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def parse_date(value) -> date:
    """Accept a ``date`` or a plain ``YYYY-MM-DD`` string; anything carrying a time is rejected."""
    if isinstance(value, datetime):
        raise ValidationError("date must not include a time component")
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("date is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError("Invalid date. Use YYYY-MM-DD") from None


def parse_time(value, allow_end_of_day: bool = False) -> str:
    """Normalise ``H:MM`` / ``HH:MM`` to zero-padded ``HH:MM``.

    ``allow_end_of_day`` also accepts ``24:00``, for the end of a window
    that runs until midnight.
    """
    if not isinstance(value, str):
        raise ValidationError("time is required (HH:MM)")
    if allow_end_of_day and value.strip() == END_OF_DAY:
        return END_OF_DAY
    match = _TIME_RE.match(value.strip())
    if not match:
        raise ValidationError("Invalid time. Use HH:MM (24h)")
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def time_to_minutes(hhmm: str) -> int:
    hour, minute = hhmm.split(":")
    return int(hour) * 60 + int(minute)


def minutes_to_time(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_positive_int(value, field: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None
    if number <= 0:
        raise ValidationError(f"{field} must be positive")
    return number


def parse_money(value, field: str) -> Decimal:
    """Parse an amount to cents; NaN, infinities and garbage are rejected."""
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            raise InvalidOperation
        return amount.quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number") from None
