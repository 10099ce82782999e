"""Free-slot calculation for a service on a given day.

The provider's working window for the weekday is cut into candidate start
times, and every candidate whose span overlaps a live (non-cancelled)
booking of the same service is dropped.

Example:
    calc = AvailabilityCalculator(gateway)
    result = calc.compute_availability(service_id=3, day=date(2026, 11, 2))
    result.slots  # ["09:00", "10:00", "12:00", ...]
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Optional

from core.errors import ConflictError, NotFound, ValidationError
from core.validation import minutes_to_time, parse_date, parse_time, time_to_minutes

logger = logging.getLogger(__name__)


@dataclass
class Availability:
    service_id: int
    day: date
    slot_duration_minutes: int
    window_start: str
    window_end: str
    slots: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "service_id": self.service_id,
            "date": self.day.isoformat(),
            "slots": list(self.slots),
            "slot_duration_minutes": self.slot_duration_minutes,
            "window": {"start": self.window_start, "end": self.window_end},
        }


class AvailabilityCalculator:
    def __init__(
        self,
        gateway,
        default_start: str = "09:00",
        default_end: str = "17:00",
        granularity_minutes: int = 0,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.gateway = gateway
        self.default_start = parse_time(default_start)
        self.default_end = parse_time(default_end, allow_end_of_day=True)
        self.granularity_minutes = granularity_minutes
        self._now = now or datetime.now

    # ---------- public API ----------
    def compute_availability(self, service_id: int, day) -> Availability:
        day = parse_date(day)
        service = self._active_service(service_id)
        self._reject_past_day(day)

        start, end = self.window_for(service, day)
        busy = self._busy_spans(service.id, day)
        earliest = self._earliest_start_minute(day)

        slots = []
        for candidate in self._candidate_starts(service, start, end):
            if candidate < earliest:
                continue
            if _overlaps(candidate, candidate + service.duration, busy):
                continue
            slots.append(minutes_to_time(candidate))

        logger.debug("Service %s on %s: %d free slot(s)", service.id, day, len(slots))
        return Availability(
            service_id=service.id,
            day=day,
            slot_duration_minutes=service.duration,
            window_start=minutes_to_time(start),
            window_end=minutes_to_time(end),
            slots=slots,
        )

    def check_slot(self, service, day: date, time_of_day: str, duration: Optional[int] = None) -> None:
        """Raise unless ``time_of_day`` is a bookable start for ``duration`` minutes.

        Off-grid or out-of-window requests are ``ValidationError``; a slot
        taken by a live booking is ``ConflictError``.
        """
        duration = duration or service.duration
        self._reject_past_day(day)
        requested = time_to_minutes(parse_time(time_of_day))
        if requested < self._earliest_start_minute(day):
            raise ValidationError("Cannot book past/started slots")

        start, end = self.window_for(service, day)
        if requested < start or requested + duration > end:
            raise ValidationError(
                f"Requested time is outside working hours ({minutes_to_time(start)}-{minutes_to_time(end)})"
            )
        if (requested - start) % self.step_for(service):
            raise ValidationError("Requested time does not align with the slot grid")
        if _overlaps(requested, requested + duration, self._busy_spans(service.id, day)):
            raise ConflictError("Slot already booked")

    def is_slot_free(self, service, day: date, time_of_day: str, duration: Optional[int] = None) -> bool:
        try:
            self.check_slot(service, day, time_of_day, duration)
        except (ValidationError, ConflictError):
            return False
        return True

    def window_for(self, service, day: date) -> tuple[int, int]:
        hours = self.gateway.working_hours_for(service.provider_id, day.weekday())
        if hours is None:
            return time_to_minutes(self.default_start), time_to_minutes(self.default_end)
        return time_to_minutes(hours.start_time), time_to_minutes(hours.end_time)

    def step_for(self, service) -> int:
        return self.granularity_minutes if self.granularity_minutes > 0 else service.duration

    # ---------- helpers ----------
    def _active_service(self, service_id):
        service = self.gateway.get_service(service_id)
        if service is None:
            raise NotFound("Service not found")
        if not service.is_active:
            raise ValidationError("Service is not active")
        return service

    def _reject_past_day(self, day: date):
        if day < self._now().date():
            raise ValidationError("Date is in the past")

    def _earliest_start_minute(self, day: date) -> int:
        now = self._now()
        if day == now.date():
            # slots starting at or before the current minute are gone
            return now.hour * 60 + now.minute + 1
        return 0

    def _candidate_starts(self, service, start: int, end: int):
        step = self.step_for(service)
        minute = start
        while minute + service.duration <= end:
            yield minute
            minute += step

    def _busy_spans(self, service_id: int, day: date):
        spans = []
        for booking in self.gateway.live_bookings_on(service_id, day):
            begin = time_to_minutes(booking.booking_time)
            spans.append((begin, begin + booking.duration))
        return spans


def _overlaps(start: int, end: int, spans) -> bool:
    return any(start < busy_end and busy_start < end for busy_start, busy_end in spans)
