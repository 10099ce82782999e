"""Booking notifications: the dispatcher and the outbox that feeds it.

Lifecycle code never sends anything itself. It writes an outbox row after
its own commit, and ``flask deliver-notifications`` drains due rows through
``NotificationDispatcher``. A failed send is retried with exponential
backoff until ``max_attempts``; the booking row is never touched.
"""
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from core.errors import NotificationFailure
from models import NotificationOutbox

logger = logging.getLogger(__name__)

BOOKING_CONFIRMATION = "booking_confirmation"
PROVIDER_NOTIFICATION = "provider_notification"
STATUS_UPDATE = "status_update"
REMINDER = "reminder"

KINDS = (BOOKING_CONFIRMATION, PROVIDER_NOTIFICATION, STATUS_UPDATE, REMINDER)

REMINDER_LABELS = {"24h": "tomorrow", "1h": "in about an hour"}


def _customer_email(booking):
    if booking.customer is not None and booking.customer.email:
        return booking.customer.email
    return booking.customer_email


def _customer_name(booking):
    if booking.customer is not None and booking.customer.full_name:
        return booking.customer.full_name
    return booking.customer_name


def _summary(booking) -> str:
    return (
        f"Booking #{booking.id}\n"
        f"Service: {booking.service.name}\n"
        f"Date: {booking.booking_date.isoformat()} at {booking.booking_time}\n"
        f"Duration: {booking.duration} minutes\n"
        f"Total: {booking.total_amount}\n"
    )


class NotificationDispatcher:
    """Sends booking messages; every method returns ``(ok, error)``."""

    def __init__(self, send_email: Callable[[str, str, str], tuple]):
        self.send_email = send_email

    def send_booking_confirmation(self, booking):
        body = (
            f"Hi {_customer_name(booking)},\n\n"
            f"Your booking request has been received.\n\n{_summary(booking)}"
        )
        if booking.special_requests:
            body += f"Special requests: {booking.special_requests}\n"
        return self.send_email(_customer_email(booking), f"Booking Confirmation - {booking.service.name}", body)

    def send_provider_notification(self, booking):
        provider = booking.provider
        if provider is None or not provider.email:
            return False, "Provider has no email"
        body = (
            f"New booking from {_customer_name(booking)} ({_customer_email(booking)}).\n\n"
            f"{_summary(booking)}"
        )
        if booking.customer_phone:
            body += f"Phone: {booking.customer_phone}\n"
        return self.send_email(provider.email, f"New Booking Received - {booking.service.name}", body)

    def send_booking_status_update(self, booking, old_status):
        body = (
            f"Hi {_customer_name(booking)},\n\n"
            f"Your booking status changed from {old_status} to {booking.status}.\n\n{_summary(booking)}"
        )
        if booking.cancel_reason:
            body += f"Reason: {booking.cancel_reason}\n"
        return self.send_email(_customer_email(booking), f"Booking Update - {booking.service.name}", body)

    def send_booking_reminder(self, booking, reminder_type="24h"):
        when = REMINDER_LABELS.get(reminder_type, "soon")
        body = (
            f"Hi {_customer_name(booking)},\n\n"
            f"This is a reminder that your booking starts {when}.\n\n{_summary(booking)}"
        )
        return self.send_email(_customer_email(booking), f"Booking Reminder - {booking.service.name}", body)


@dataclass
class DeliveryReport:
    sent: int = 0
    retried: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.sent + self.retried + self.failed


class NotificationQueue:
    def __init__(
        self,
        gateway,
        max_attempts: int = 5,
        backoff_seconds: int = 60,
        batch_size: int = 50,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.gateway = gateway
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.batch_size = batch_size
        self._now = now or datetime.utcnow

    def enqueue(self, kind: str, booking, **params) -> NotificationOutbox:
        if kind not in KINDS:
            raise ValueError(f"Unknown notification kind: {kind}")
        row = NotificationOutbox(
            kind=kind,
            booking_id=booking.id,
            params_json=json.dumps(params) if params else None,
            status="PENDING",
            attempts=0,
            next_attempt_at=self._now(),
        )
        self.gateway.session.add(row)
        self.gateway.commit()
        return row

    def enqueue_quietly(self, kind: str, booking, **params) -> Optional[NotificationOutbox]:
        """Enqueue, but log and swallow any failure; the booking is already committed."""
        try:
            return self.enqueue(kind, booking, **params)
        except Exception:
            self.gateway.rollback()
            logger.exception("Could not queue %s for booking %s", kind, booking.id)
            return None

    def deliver_due(self, dispatcher: NotificationDispatcher, limit: Optional[int] = None) -> DeliveryReport:
        report = DeliveryReport()
        for row in self.gateway.due_notifications(self._now(), limit or self.batch_size):
            outcome = self._deliver_one(row, dispatcher)
            setattr(report, outcome, getattr(report, outcome) + 1)
        if report.processed:
            logger.info(
                "Notification pass: %d sent, %d retrying, %d failed",
                report.sent, report.retried, report.failed,
            )
        return report

    def _deliver_one(self, row: NotificationOutbox, dispatcher: NotificationDispatcher) -> str:
        try:
            ok, error = self._send(row, dispatcher)
            if not ok:
                raise NotificationFailure(error or "delivery failed")
        except Exception as exc:
            return self._record_failure(row, exc)

        row.status = "SENT"
        row.sent_at = self._now()
        row.attempts += 1
        row.last_error = None
        self.gateway.commit()
        logger.info("Sent %s for booking %s", row.kind, row.booking_id)
        return "sent"

    def _send(self, row: NotificationOutbox, dispatcher: NotificationDispatcher):
        booking = row.booking
        if booking is None:
            raise NotificationFailure("Booking no longer exists")
        params = json.loads(row.params_json) if row.params_json else {}

        if row.kind == BOOKING_CONFIRMATION:
            return dispatcher.send_booking_confirmation(booking)
        if row.kind == PROVIDER_NOTIFICATION:
            return dispatcher.send_provider_notification(booking)
        if row.kind == STATUS_UPDATE:
            return dispatcher.send_booking_status_update(booking, params.get("old_status"))
        if row.kind == REMINDER:
            return dispatcher.send_booking_reminder(booking, params.get("reminder_type", "24h"))
        raise NotificationFailure(f"Unknown notification kind: {row.kind}")

    def _record_failure(self, row: NotificationOutbox, exc: Exception) -> str:
        row.attempts += 1
        row.last_error = str(exc)[:255]
        if row.attempts >= self.max_attempts:
            row.status = "FAILED"
            outcome = "failed"
            logger.error(
                "Giving up on %s for booking %s after %d attempts: %s",
                row.kind, row.booking_id, row.attempts, exc,
            )
        else:
            delay = self.backoff_seconds * 2 ** (row.attempts - 1)
            row.next_attempt_at = self._now() + timedelta(seconds=delay)
            outcome = "retried"
            logger.warning(
                "Failed to send %s for booking %s (attempt %d), retrying in %ss: %s",
                row.kind, row.booking_id, row.attempts, delay, exc,
            )
        self.gateway.commit()
        return outcome
