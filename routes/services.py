from flask import Blueprint, request, jsonify, g

from core import wiring
from core.errors import NotFound
from security.rbac import require_roles
from utils.audit import log_event

services_bp = Blueprint("services", __name__, url_prefix="/services")


def service_json(s):
    return {
        "id": s.id,
        "provider_id": s.provider_id,
        "name": s.name,
        "category": s.category,
        "description": s.description,
        "price": str(s.price),
        "duration": s.duration,
        "is_active": s.is_active,
        "rating_average": str(s.rating_average) if s.rating_average is not None else None,
        "rating_count": s.rating_count,
        "created_at": s.created_at.isoformat(),
    }


@services_bp.get("")
def list_services():
    category = (request.args.get("category") or "").strip() or None
    name_query = (request.args.get("name") or "").strip() or None
    provider_id = request.args.get("provider_id", type=int)

    rows = wiring.gateway().list_services(category=category, name=name_query, provider_id=provider_id)
    return jsonify([service_json(s) for s in rows]), 200


@services_bp.get("/<int:service_id>")
def get_service(service_id: int):
    service = wiring.gateway().get_service(service_id)
    if service is None:
        raise NotFound("Service not found")
    return jsonify(service_json(service)), 200


@services_bp.post("")
@require_roles("PROVIDER")
def create_service():
    data = request.get_json(silent=True) or {}
    service = wiring.service_catalog().create_service(g.user.id, data)

    log_event("SERVICE_CREATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(service_json(service)), 201


@services_bp.patch("/<int:service_id>")
@require_roles("PROVIDER")
def update_service(service_id: int):
    data = request.get_json(silent=True) or {}
    service = wiring.service_catalog().update_service(service_id, g.user.id, data)

    log_event("SERVICE_UPDATE", user_id=g.user.id, entity="service", entity_id=service.id, metadata=sorted(data))
    return jsonify(service_json(service)), 200


@services_bp.post("/<int:service_id>/deactivate")
@require_roles("PROVIDER")
def deactivate_service(service_id: int):
    service = wiring.service_catalog().deactivate_service(service_id, g.user.id)

    log_event("SERVICE_DEACTIVATE", user_id=g.user.id, entity="service", entity_id=service.id)
    return jsonify(message="Service deactivated"), 200


@services_bp.get("/<int:service_id>/reviews")
def list_reviews(service_id: int):
    rows = wiring.review_book().list_service_reviews(service_id)
    return jsonify([
        {
            "id": r.id,
            "booking_id": r.booking_id,
            "customer_id": r.customer_id,
            "rating": r.rating,
            "title": r.title,
            "comment": r.comment,
            "created_at": r.created_at.isoformat(),
        }
        for r in rows
    ]), 200
