from flask import Blueprint, request, jsonify, g

from core import wiring
from utils.auth_context import login_required
from utils.audit import log_event

reviews_bp = Blueprint("reviews", __name__, url_prefix="/bookings")


@reviews_bp.post("/<int:booking_id>/reviews")
@login_required
def create_review(booking_id: int):
    data = request.get_json(silent=True) or {}
    if data.get("rating") is None:
        return jsonify(error="rating is required"), 400

    review = wiring.review_book().create_review(
        booking_id,
        g.user.id,
        data.get("rating"),
        title=data.get("title"),
        comment=data.get("comment"),
    )

    log_event("REVIEW_CREATE", user_id=g.user.id, entity="review", entity_id=review.id, metadata={"booking_id": booking_id})
    return jsonify(id=review.id, rating=review.rating), 201
