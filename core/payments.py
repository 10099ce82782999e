import logging
from datetime import datetime
from typing import Callable, Optional

from core.errors import NotFound, Unauthorized, ValidationError
from core.validation import parse_money
from models import BookingStatus, Payment, PaymentStatus

logger = logging.getLogger(__name__)

# processor result -> booking.payment_status
PAYMENT_OUTCOMES = {
    "INIT": None,
    "PAID": PaymentStatus.PAID,
    "FAILED": PaymentStatus.FAILED,
    "REFUNDED": PaymentStatus.REFUNDED,
}

UNPAYABLE = (BookingStatus.CANCELLED.value, BookingStatus.NO_SHOW.value)


class PaymentLedger:
    """Records processor results against bookings; no processor SDK is called here."""

    def __init__(self, gateway, default_currency: str = "USD", now: Optional[Callable[[], datetime]] = None):
        self.gateway = gateway
        self.default_currency = default_currency
        self._now = now or datetime.utcnow

    def record_payment(self, booking_id: int, acting_user_id: int, amount=None, currency: str = None,
                       status: str = "PAID", external_transaction_id: str = None) -> Payment:
        booking = self.gateway.get_booking(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if acting_user_id is None or acting_user_id != booking.service.provider_id:
            raise Unauthorized("Only the provider can record payments for this booking")
        if booking.status in UNPAYABLE:
            raise ValidationError(f"Cannot record a payment for a {booking.status} booking")

        status = (status or "").strip().upper()
        if status not in PAYMENT_OUTCOMES:
            raise ValidationError("status must be one of: " + ", ".join(PAYMENT_OUTCOMES))

        if amount in (None, ""):
            amount = booking.total_amount
        amount = parse_money(amount, "amount")
        if amount <= 0:
            raise ValidationError("amount must be positive")

        payment = Payment(
            booking_id=booking.id,
            amount=amount,
            currency=(currency or self.default_currency).upper(),
            status=status,
            external_transaction_id=(external_transaction_id or "").strip() or None,
            paid_at=self._now() if status == "PAID" else None,
        )
        self.gateway.insert(payment, conflict_message="Transaction already recorded")

        outcome = PAYMENT_OUTCOMES[status]
        if outcome is not None:
            booking.payment_status = outcome.value
        self.gateway.commit()

        logger.info("Payment %s (%s) recorded for booking %s", payment.id, status, booking.id)
        return payment

    def list_payments(self, booking_id: int, acting_user_id: int):
        booking = self.gateway.get_booking(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if acting_user_id not in (booking.customer_id, booking.service.provider_id):
            raise Unauthorized("Unauthorized to view payments for this booking")
        return self.gateway.list_payments(booking.id)
