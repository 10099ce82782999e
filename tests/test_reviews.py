"""Tests for customer reviews."""

from decimal import Decimal

import pytest

from conftest import add_booking
from core.errors import ConflictError, NotFound, Unauthorized, ValidationError
from core.reviews import ReviewBook
from models import BookingStatus


@pytest.fixture
def reviews(gateway):
    return ReviewBook(gateway)


@pytest.fixture
def completed(service, customer):
    return add_booking(service, customer=customer, status=BookingStatus.COMPLETED)


def test_review_updates_service_rating(reviews, completed, service, customer):
    review = reviews.create_review(completed.id, customer.id, 4, title=" Great ", comment="Spotless")

    assert review.rating == 4
    assert review.title == "Great"
    assert review.provider_id == service.provider_id
    assert service.rating_count == 1
    assert service.rating_average == Decimal("4.00")


def test_average_over_several_bookings(reviews, service, customer):
    for time, rating in (("09:00", 5), ("10:00", 4), ("11:00", 4)):
        booking = add_booking(service, time=time, customer=customer, status=BookingStatus.COMPLETED)
        reviews.create_review(booking.id, customer.id, rating)

    assert service.rating_count == 3
    assert service.rating_average == Decimal("4.33")
    assert len(reviews.list_service_reviews(service.id)) == 3


def test_one_review_per_booking(reviews, completed, customer):
    reviews.create_review(completed.id, customer.id, 5)
    with pytest.raises(ConflictError):
        reviews.create_review(completed.id, customer.id, 3)


def test_only_completed_bookings(reviews, service, customer):
    booking = add_booking(service, customer=customer, status=BookingStatus.CONFIRMED)
    with pytest.raises(ValidationError):
        reviews.create_review(booking.id, customer.id, 5)


def test_only_the_customer(reviews, completed, stranger):
    with pytest.raises(Unauthorized):
        reviews.create_review(completed.id, stranger.id, 5)


@pytest.mark.parametrize("rating", [0, 6, "great", None])
def test_rating_range(reviews, completed, customer, rating):
    with pytest.raises(ValidationError):
        reviews.create_review(completed.id, customer.id, rating)


def test_missing_booking(reviews, customer):
    with pytest.raises(NotFound):
        reviews.create_review(999, customer.id, 5)


def test_list_for_unknown_service(reviews, app):
    with pytest.raises(NotFound):
        reviews.list_service_reviews(999)
