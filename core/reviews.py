import logging
from decimal import Decimal

from core.errors import NotFound, Unauthorized, ValidationError
from models import BookingStatus, Review

logger = logging.getLogger(__name__)


class ReviewBook:
    def __init__(self, gateway):
        self.gateway = gateway

    def create_review(self, booking_id: int, customer_id: int, rating, title: str = None, comment: str = None) -> Review:
        booking = self.gateway.get_booking(booking_id)
        if booking is None:
            raise NotFound("Booking not found")
        if customer_id is None or booking.customer_id != customer_id:
            raise Unauthorized("Unauthorized to review this booking")
        if booking.status != BookingStatus.COMPLETED.value:
            raise ValidationError("Can only review completed bookings")

        try:
            rating = int(rating)
        except (TypeError, ValueError):
            raise ValidationError("rating must be an integer from 1 to 5") from None
        if not 1 <= rating <= 5:
            raise ValidationError("rating must be an integer from 1 to 5")

        review = Review(
            booking_id=booking.id,
            service_id=booking.service_id,
            customer_id=customer_id,
            provider_id=booking.provider_id,
            rating=rating,
            title=(title or "").strip() or None,
            comment=(comment or "").strip() or None,
        )
        self.gateway.insert(review, conflict_message="Review already exists for this booking")

        avg, count = self.gateway.rating_summary(booking.service_id)
        service = booking.service
        service.rating_count = count
        service.rating_average = Decimal(str(avg)).quantize(Decimal("0.01")) if avg is not None else None
        self.gateway.commit()

        logger.info("Review %s created for service %s by customer %s", review.id, service.id, customer_id)
        return review

    def list_service_reviews(self, service_id: int):
        if self.gateway.get_service(service_id) is None:
            raise NotFound("Service not found")
        return self.gateway.list_reviews(service_id)
