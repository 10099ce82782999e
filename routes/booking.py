from flask import Blueprint, request, jsonify, g

from core import wiring
from core.lifecycle import BookingRequest
from security.rbac import require_roles
from utils.auth_context import current_user_id, login_required
from utils.audit import log_event

booking_bp = Blueprint("booking", __name__, url_prefix="/bookings")


def booking_json(b, include_related=True):
    out = {
        "id": b.id,
        "service_id": b.service_id,
        "provider_id": b.provider_id,
        "customer_id": b.customer_id,
        "customer_name": b.customer_name,
        "customer_email": b.customer_email,
        "customer_phone": b.customer_phone,
        "date": b.booking_date.isoformat(),
        "time": b.booking_time,
        "duration": b.duration,
        "total_amount": str(b.total_amount),
        "status": b.status,
        "payment_status": b.payment_status,
        "special_requests": b.special_requests,
        "cancel_reason": b.cancel_reason,
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
        "created_at": b.created_at.isoformat(),
        "updated_at": b.updated_at.isoformat() if b.updated_at else None,
    }
    if include_related:
        s = b.service
        out["service"] = {
            "id": s.id,
            "name": s.name,
            "category": s.category,
            "price": str(s.price),
            "duration": s.duration,
        } if s else None
        out["provider"] = _person(b.provider)
        out["customer"] = _person(b.customer)
    return out


def _person(user):
    if user is None:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
    }


# ---------- CUSTOMERS (registered or guest): create booking ----------
@booking_bp.post("")
def create_booking():
    data = request.get_json(silent=True) or {}
    req = BookingRequest.from_json(data, customer_id=current_user_id())

    booking = wiring.booking_manager().create_booking(req)

    log_event(
        "BOOKING_CREATE",
        user_id=req.customer_id,
        entity="booking",
        entity_id=booking.id,
        metadata={"service_id": booking.service_id, "date": booking.booking_date.isoformat(), "time": booking.booking_time},
    )
    return jsonify(booking=booking_json(booking)), 201


# ---------- PUBLIC: availability ----------
@booking_bp.get("/availability/<int:service_id>")
def availability(service_id: int):
    date_str = request.args.get("date")
    if not date_str:
        return jsonify(error="date query parameter is required (YYYY-MM-DD)"), 400

    result = wiring.availability_calculator().compute_availability(service_id, date_str)
    return jsonify(result.to_dict()), 200


# ---------- CUSTOMERS/PROVIDERS: my bookings ----------
@booking_bp.get("/me")
@login_required
def my_bookings():
    role = (request.args.get("role") or "customer").strip().lower()
    rows = wiring.booking_manager().list_bookings(
        g.user.id,
        role=role,
        status=request.args.get("status"),
        date_from=request.args.get("from"),
        date_to=request.args.get("to"),
    )
    return jsonify([booking_json(b) for b in rows]), 200


@booking_bp.get("/<int:booking_id>")
@login_required
def get_booking(booking_id: int):
    booking = wiring.booking_manager().get_booking(booking_id)
    if g.user.id not in (booking.customer_id, booking.provider_id) and not g.user.has_role("ADMIN"):
        return jsonify(error="Booking not found"), 404
    return jsonify(booking=booking_json(booking)), 200


# ---------- CUSTOMERS/PROVIDERS: status changes ----------
@booking_bp.patch("/<int:booking_id>/status")
@login_required
def update_status(booking_id: int):
    data = request.get_json(silent=True) or {}
    new_status = data.get("status")
    if not new_status:
        return jsonify(error="status is required"), 400

    manager = wiring.booking_manager()
    old_status = manager.get_booking(booking_id).status
    booking = manager.update_booking_status(booking_id, new_status, g.user.id)

    if booking.status != old_status:
        log_event(
            "BOOKING_STATUS_CHANGE",
            user_id=g.user.id,
            entity="booking",
            entity_id=booking.id,
            metadata={"from": old_status, "to": booking.status},
        )
    return jsonify(booking=booking_json(booking)), 200


@booking_bp.post("/<int:booking_id>/cancel")
@login_required
def cancel_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None

    manager = wiring.booking_manager()
    old_status = manager.get_booking(booking_id).status
    booking = manager.cancel_booking(booking_id, g.user.id, reason)

    if booking.status != old_status:
        log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return jsonify(booking=booking_json(booking)), 200


# ---------- PROVIDERS: dashboard stats ----------
@booking_bp.get("/stats")
@require_roles("PROVIDER")
def booking_stats():
    stats = wiring.stats_aggregator().booking_stats(
        g.user.id,
        date_from=request.args.get("from"),
        date_to=request.args.get("to"),
    )
    stats["total_revenue"] = str(stats["total_revenue"])
    return jsonify(stats), 200
