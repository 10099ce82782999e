from flask import Blueprint, request, jsonify, g

from core import wiring
from utils.auth_context import login_required
from utils.audit import log_event

payments_bp = Blueprint("payments", __name__, url_prefix="/bookings")


def _payment_json(p):
    return {
        "id": p.id,
        "booking_id": p.booking_id,
        "amount": str(p.amount),
        "currency": p.currency,
        "status": p.status,
        "external_transaction_id": p.external_transaction_id,
        "created_at": p.created_at.isoformat(),
        "paid_at": p.paid_at.isoformat() if p.paid_at else None,
    }


# ---------- PROVIDERS: record a processor result ----------
@payments_bp.post("/<int:booking_id>/payments")
@login_required
def record_payment(booking_id: int):
    data = request.get_json(silent=True) or {}

    payment = wiring.payment_ledger().record_payment(
        booking_id,
        g.user.id,
        amount=data.get("amount"),
        currency=data.get("currency"),
        status=data.get("status") or "PAID",
        external_transaction_id=data.get("external_transaction_id"),
    )

    log_event(
        "PAYMENT_RECORDED",
        user_id=g.user.id,
        entity="payment",
        entity_id=payment.id,
        metadata={"booking_id": booking_id, "status": payment.status},
    )
    return jsonify(_payment_json(payment)), 201


@payments_bp.get("/<int:booking_id>/payments")
@login_required
def list_payments(booking_id: int):
    rows = wiring.payment_ledger().list_payments(booking_id, g.user.id)
    return jsonify([_payment_json(p) for p in rows]), 200
