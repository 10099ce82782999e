"""Shared fixtures: an app on in-memory SQLite, a few users, one service."""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from app import create_app
from config import TestingConfig
from core.availability import AvailabilityCalculator
from core.gateway import SqlGateway
from core.lifecycle import BookingManager
from core.notifications import NotificationQueue
from models import Booking, BookingStatus, Role, Service, User, db
from security.session import create_session
from utils.seed import seed_roles

# Tuesday
NOW = datetime(2030, 1, 8, 8, 0)
DAY = date(2030, 1, 9)


class FixedClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def make_user(email, *roles, first_name="Test", last_name="User", phone=None):
    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        phone=phone,
        roles=Role.query.filter(Role.name.in_(roles)).all(),
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def provider(app):
    return make_user("pro@example.com", "PROVIDER", first_name="Pat", last_name="Provider")


@pytest.fixture
def customer(app):
    return make_user("cus@example.com", "CUSTOMER", first_name="Casey", last_name="Customer", phone="555-0100")


@pytest.fixture
def stranger(app):
    return make_user("other@example.com", "CUSTOMER", first_name="Sam")


@pytest.fixture
def admin(app):
    return make_user("admin@example.com", "ADMIN", first_name="Ada")


@pytest.fixture
def service(provider):
    svc = Service(
        provider_id=provider.id,
        name="Deep Clean",
        category="cleaning",
        price=Decimal("100.00"),
        duration=60,
    )
    db.session.add(svc)
    db.session.commit()
    return svc


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def gateway(app):
    return SqlGateway(db.session)


@pytest.fixture
def calculator(gateway, clock):
    return AvailabilityCalculator(gateway, now=clock)


@pytest.fixture
def outbox(gateway, clock):
    return NotificationQueue(gateway, max_attempts=3, backoff_seconds=60, now=clock)


@pytest.fixture
def manager(gateway, calculator, outbox, clock):
    return BookingManager(gateway, calculator, outbox, now=clock)


def add_booking(service, day=DAY, time="10:00", status=BookingStatus.PENDING, customer=None, **extra):
    """Insert a booking row directly, bypassing availability checks."""
    booking = Booking(
        service_id=service.id,
        provider_id=service.provider_id,
        customer_id=customer.id if customer else None,
        customer_name=customer.full_name if customer else "Guest Person",
        customer_email=customer.email if customer else "guest@example.com",
        booking_date=day,
        booking_time=time,
        duration=extra.pop("duration", service.duration),
        total_amount=extra.pop("total_amount", Decimal("100.00")),
        status=status.value,
        **extra,
    )
    db.session.add(booking)
    db.session.commit()
    return booking


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_session(user.id, label='test')}"}
