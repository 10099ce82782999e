"""Booking lifecycle: create, read, move through statuses, cancel.

The availability pre-check only turns the common case into a readable error.
Slot safety comes from the write path: the service row is locked, overlapping
live bookings are looked up again, and the row is inserted, all in one
transaction. Concurrent creates for one service therefore run one after the
other, and the ``uq_booking_active_slot`` partial unique index backs up the
exact-start case. Either way the loser gets ``ConflictError``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError

from core import notifications
from core.errors import (
    BookingCreationFailed,
    BookingError,
    BookingFetchFailed,
    ConflictError,
    NotFound,
    Unauthorized,
    ValidationError,
)
from core.transitions import coerce_status, validate_transition
from core.validation import parse_date, parse_positive_int, parse_time, time_to_minutes
from models import Booking, BookingStatus

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass
class BookingRequest:
    service_id: int
    date: object
    time: str
    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    special_requests: Optional[str] = None

    @classmethod
    def from_json(cls, data: dict, customer_id: Optional[int] = None) -> "BookingRequest":
        service_id = data.get("service_id") or data.get("serviceId")
        if not service_id:
            raise ValidationError("service_id is required")
        return cls(
            service_id=parse_positive_int(service_id, "service_id"),
            date=data.get("date"),
            time=data.get("time"),
            customer_id=customer_id,
            customer_name=(data.get("customer_name") or "").strip() or None,
            customer_email=(data.get("customer_email") or "").strip().lower() or None,
            customer_phone=(data.get("customer_phone") or "").strip() or None,
            special_requests=(data.get("special_requests") or "").strip() or None,
        )


def compute_total(price, duration_minutes: int) -> Decimal:
    """Service prices are hourly; bill pro rata and round to cents."""
    amount = Decimal(str(price)) * Decimal(duration_minutes) / Decimal(60)
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


class BookingManager:
    def __init__(self, gateway, availability, outbox, now: Optional[Callable[[], datetime]] = None):
        self.gateway = gateway
        self.availability = availability
        self.outbox = outbox
        self._now = now or datetime.utcnow

    # ---------- create ----------
    def create_booking(self, request: BookingRequest) -> Booking:
        day = parse_date(request.date)
        time_of_day = parse_time(request.time)

        service = self.gateway.get_service(request.service_id)
        if service is None:
            raise NotFound("Service not found")
        if not service.is_active:
            raise ValidationError("Service is not active")

        # the slot length and the price always come from the service
        duration = service.duration

        name, email, phone = self._contact_details(request)

        self.availability.check_slot(service, day, time_of_day, duration)

        booking = Booking(
            service_id=service.id,
            provider_id=service.provider_id,
            customer_id=request.customer_id,
            customer_name=name,
            customer_email=email,
            customer_phone=phone,
            booking_date=day,
            booking_time=time_of_day,
            duration=duration,
            total_amount=compute_total(service.price, duration),
            status=BookingStatus.PENDING.value,
            special_requests=request.special_requests,
        )
        try:
            self.gateway.lock_service_schedule(service.id)
            self._reject_overlap(service.id, day, time_of_day, duration)
            self.gateway.insert(booking, conflict_message="Slot already booked")
            self.gateway.commit()
        except BookingError:
            self.gateway.rollback()
            raise
        except SQLAlchemyError as exc:
            self.gateway.rollback()
            logger.exception("Error creating booking for service %s", service.id)
            raise BookingCreationFailed("Failed to create booking") from exc

        logger.info(
            "Booking %s created: service=%s date=%s time=%s",
            booking.id, service.id, day.isoformat(), time_of_day,
        )
        self.outbox.enqueue_quietly(notifications.BOOKING_CONFIRMATION, booking)
        self.outbox.enqueue_quietly(notifications.PROVIDER_NOTIFICATION, booking)
        return booking

    def _reject_overlap(self, service_id: int, day, time_of_day: str, duration: int):
        """Re-check the span under the schedule lock; the pre-check ran without it."""
        begin = time_to_minutes(time_of_day)
        for other in self.gateway.live_bookings_on(service_id, day):
            other_begin = time_to_minutes(other.booking_time)
            if begin < other_begin + other.duration and other_begin < begin + duration:
                raise ConflictError("Slot already booked")

    def _contact_details(self, request: BookingRequest):
        customer = self.gateway.get_user(request.customer_id)
        if request.customer_id is not None and customer is None:
            raise NotFound("Customer not found")

        name = request.customer_name or (customer.full_name if customer else None)
        email = request.customer_email or (customer.email if customer else None)
        phone = request.customer_phone or (customer.phone if customer else None)

        if not name or not email:
            raise ValidationError("customer_name and customer_email are required")
        if "@" not in email or len(email) > 255:
            raise ValidationError("Invalid customer_email")
        return name, email, phone

    # ---------- read ----------
    def get_booking(self, booking_id: int) -> Booking:
        try:
            booking = self.gateway.get_booking(booking_id)
        except SQLAlchemyError as exc:
            logger.exception("Error fetching booking %s", booking_id)
            raise BookingFetchFailed("Failed to fetch booking") from exc
        if booking is None:
            raise NotFound("Booking not found")
        return booking

    def list_bookings(self, user_id: int, role: str = "customer", status=None, date_from=None, date_to=None):
        if role not in ("customer", "provider"):
            raise ValidationError("role must be customer or provider")
        filters = {
            "status": coerce_status(status).value if status else None,
            "date_from": parse_date(date_from) if date_from else None,
            "date_to": parse_date(date_to) if date_to else None,
        }
        if role == "customer":
            filters["customer_id"] = user_id
        else:
            filters["provider_id"] = user_id
        try:
            return self.gateway.list_bookings(**filters)
        except SQLAlchemyError as exc:
            logger.exception("Error fetching bookings for user %s", user_id)
            raise BookingFetchFailed("Failed to fetch bookings") from exc

    # ---------- status changes ----------
    def update_booking_status(self, booking_id: int, new_status, acting_user_id: int, reason: str = None) -> Booking:
        target = coerce_status(new_status)
        booking = self.get_booking(booking_id)

        if acting_user_id is None or acting_user_id not in (booking.customer_id, booking.service.provider_id):
            raise Unauthorized("Unauthorized to update this booking")

        old_status = booking.status
        if old_status == target.value:
            # re-applying the current status changes nothing and notifies no one
            return booking

        validate_transition(old_status, target)

        booking.status = target.value
        booking.updated_at = self._now()
        if target is BookingStatus.CANCELLED:
            booking.cancelled_at = self._now()
            booking.cancel_reason = reason
        try:
            self.gateway.commit()
        except SQLAlchemyError as exc:
            self.gateway.rollback()
            logger.exception("Error updating booking %s", booking_id)
            raise BookingFetchFailed("Failed to update booking") from exc

        logger.info("Booking %s: %s -> %s by user %s", booking.id, old_status, target.value, acting_user_id)
        self.outbox.enqueue_quietly(notifications.STATUS_UPDATE, booking, old_status=old_status)
        return booking

    def cancel_booking(self, booking_id: int, acting_user_id: int, reason: str = None) -> Booking:
        return self.update_booking_status(booking_id, BookingStatus.CANCELLED, acting_user_id, reason=reason)
