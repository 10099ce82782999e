"""Tests for the payment ledger."""

from datetime import datetime
from decimal import Decimal

import pytest

from conftest import add_booking
from core.errors import ConflictError, NotFound, Unauthorized, ValidationError
from core.payments import PaymentLedger
from models import BookingStatus

PAID_AT = datetime(2030, 1, 8, 9, 30)


@pytest.fixture
def ledger(gateway):
    return PaymentLedger(gateway, default_currency="usd", now=lambda: PAID_AT)


@pytest.fixture
def booking(service, customer):
    return add_booking(service, customer=customer, status=BookingStatus.CONFIRMED)


def test_provider_records_full_payment(ledger, booking, service):
    payment = ledger.record_payment(booking.id, service.provider_id, external_transaction_id="txn_1")

    assert payment.amount == Decimal("100.00")
    assert payment.currency == "USD"
    assert payment.status == "PAID"
    assert payment.paid_at == PAID_AT
    assert booking.payment_status == "PAID"


def test_refund_updates_booking(ledger, booking, service):
    ledger.record_payment(booking.id, service.provider_id, external_transaction_id="txn_1")
    ledger.record_payment(booking.id, service.provider_id, status="refunded", amount="100", external_transaction_id="txn_2")
    assert booking.payment_status == "REFUNDED"
    assert len(ledger.list_payments(booking.id, service.provider_id)) == 2


def test_init_leaves_booking_status(ledger, booking, service):
    payment = ledger.record_payment(booking.id, service.provider_id, status="INIT")
    assert payment.paid_at is None
    assert booking.payment_status == "PENDING"


def test_duplicate_transaction_id(ledger, booking, service):
    ledger.record_payment(booking.id, service.provider_id, external_transaction_id="txn_1")
    with pytest.raises(ConflictError):
        ledger.record_payment(booking.id, service.provider_id, external_transaction_id="txn_1")


def test_customer_cannot_record(ledger, booking, customer):
    with pytest.raises(Unauthorized):
        ledger.record_payment(booking.id, customer.id)


def test_cancelled_booking(ledger, service, customer):
    booking = add_booking(service, time="11:00", customer=customer, status=BookingStatus.CANCELLED)
    with pytest.raises(ValidationError):
        ledger.record_payment(booking.id, service.provider_id)


@pytest.mark.parametrize("kwargs", [
    {"status": "MAYBE"}, {"amount": "-5"}, {"amount": "abc"}, {"amount": "NaN"}, {"amount": "Infinity"},
])
def test_bad_input(ledger, booking, service, kwargs):
    with pytest.raises(ValidationError):
        ledger.record_payment(booking.id, service.provider_id, **kwargs)


def test_listing_is_private(ledger, booking, customer, stranger):
    assert ledger.list_payments(booking.id, customer.id) == []
    with pytest.raises(Unauthorized):
        ledger.list_payments(booking.id, stranger.id)


def test_missing_booking(ledger, provider):
    with pytest.raises(NotFound):
        ledger.record_payment(999, provider.id)
