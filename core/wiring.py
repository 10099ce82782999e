"""Build engine components for the current Flask app.

Everything shares one ``SqlGateway`` bound to ``db.session`` so a request
sees a single unit of work.
"""
from flask import current_app

from core.availability import AvailabilityCalculator
from core.catalog import ServiceCatalog, WorkingHoursBook
from core.gateway import SqlGateway
from core.lifecycle import BookingManager
from core.notifications import NotificationDispatcher, NotificationQueue
from core.payments import PaymentLedger
from core.reminders import ReminderSweep
from core.reviews import ReviewBook
from core.stats import StatsAggregator
from models import db
from utils.emailer import send_email


def gateway() -> SqlGateway:
    return SqlGateway(db.session)


def availability_calculator(gw=None) -> AvailabilityCalculator:
    cfg = current_app.config
    return AvailabilityCalculator(
        gw or gateway(),
        default_start=cfg.get("DEFAULT_WORKDAY_START", "09:00"),
        default_end=cfg.get("DEFAULT_WORKDAY_END", "17:00"),
        granularity_minutes=cfg.get("SLOT_GRANULARITY_MINUTES", 0),
    )


def notification_queue(gw=None) -> NotificationQueue:
    cfg = current_app.config
    return NotificationQueue(
        gw or gateway(),
        max_attempts=cfg.get("NOTIFY_MAX_ATTEMPTS", 5),
        backoff_seconds=cfg.get("NOTIFY_BACKOFF_SECONDS", 60),
        batch_size=cfg.get("NOTIFY_BATCH_SIZE", 50),
    )


def notification_dispatcher() -> NotificationDispatcher:
    return NotificationDispatcher(send_email)


def booking_manager() -> BookingManager:
    gw = gateway()
    return BookingManager(gw, availability_calculator(gw), notification_queue(gw))


def stats_aggregator() -> StatsAggregator:
    return StatsAggregator(gateway())


def reminder_sweep() -> ReminderSweep:
    gw = gateway()
    return ReminderSweep(gw, notification_queue(gw))


def review_book() -> ReviewBook:
    return ReviewBook(gateway())


def payment_ledger() -> PaymentLedger:
    return PaymentLedger(gateway(), default_currency=current_app.config.get("DEFAULT_CURRENCY", "USD"))


def service_catalog() -> ServiceCatalog:
    return ServiceCatalog(gateway())


def working_hours_book() -> WorkingHoursBook:
    return WorkingHoursBook(gateway())
