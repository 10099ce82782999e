"""Persistence gateway.

Every engine component receives one ``SqlGateway`` instead of reaching for
``db.session`` itself, so tests can hand in a gateway bound to any session.
The database owns durability, uniqueness and atomicity; this module only
composes queries and translates constraint violations into ``ConflictError``.
"""
import logging
from datetime import date, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from core.errors import ConflictError
from models import (
    Booking,
    BookingStatus,
    NotificationOutbox,
    Payment,
    Review,
    Service,
    User,
    WorkingHours,
)

logger = logging.getLogger(__name__)


class SqlGateway:
    def __init__(self, session):
        self.session = session

    # ---------- transaction control ----------
    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    def insert(self, row, conflict_message: str = "Row already exists"):
        """Add ``row`` and flush immediately so unique constraints fire here."""
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            logger.info("Insert of %s rejected by constraint: %s", type(row).__name__, exc.orig)
            raise ConflictError(conflict_message) from exc
        return row

    def commit_or_conflict(self, conflict_message: str):
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError(conflict_message) from exc

    # ---------- lookups ----------
    def get_user(self, user_id):
        return self.session.get(User, user_id) if user_id is not None else None

    def get_service(self, service_id):
        return self.session.get(Service, service_id)

    def get_booking(self, booking_id):
        return self.session.get(Booking, booking_id)

    # ---------- services ----------
    def list_services(self, category=None, name=None, provider_id=None, active_only=True, limit=200):
        q = self.session.query(Service)
        if active_only:
            q = q.filter(Service.is_active.is_(True))
        if category:
            q = q.filter(Service.category == category)
        if name:
            q = q.filter(Service.name.ilike(f"%{name}%"))
        if provider_id is not None:
            q = q.filter(Service.provider_id == provider_id)
        return q.order_by(Service.created_at.desc()).limit(limit).all()

    # ---------- working hours ----------
    def working_hours_for(self, provider_id: int, weekday: int):
        return (
            self.session.query(WorkingHours)
            .filter_by(provider_id=provider_id, weekday=weekday)
            .first()
        )

    def list_working_hours(self, provider_id: int):
        return (
            self.session.query(WorkingHours)
            .filter_by(provider_id=provider_id)
            .order_by(WorkingHours.weekday.asc())
            .all()
        )

    def replace_working_hours(self, provider_id: int, entries):
        """Swap the provider's whole week in one transaction (delete then insert)."""
        try:
            self.session.query(WorkingHours).filter_by(provider_id=provider_id).delete()
            rows = [WorkingHours(provider_id=provider_id, **e) for e in entries]
            self.session.add_all(rows)
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("Duplicate weekday in working hours") from exc
        except Exception:
            self.session.rollback()
            raise
        return rows

    # ---------- bookings ----------
    def lock_service_schedule(self, service_id: int):
        """Hold the service row until the next commit or rollback.

        A no-op UPDATE takes the row lock on PostgreSQL and the write lock on
        SQLite, so booking writes for one service run one at a time and reads
        made after this call see every booking committed before it.
        """
        self.session.query(Service).filter(Service.id == service_id).update(
            {Service.updated_at: Service.updated_at}, synchronize_session=False
        )

    def live_bookings_on(self, service_id: int, day: date):
        return (
            self.session.query(Booking)
            .filter(
                Booking.service_id == service_id,
                Booking.booking_date == day,
                Booking.status != BookingStatus.CANCELLED.value,
            )
            .order_by(Booking.booking_time.asc())
            .all()
        )

    def list_bookings(self, customer_id=None, provider_id=None, status=None,
                      date_from=None, date_to=None, limit=200):
        q = self.session.query(Booking)
        if customer_id is not None:
            q = q.filter(Booking.customer_id == customer_id)
        if provider_id is not None:
            q = q.filter(Booking.provider_id == provider_id)
        if status:
            q = q.filter(Booking.status == status)
        if date_from:
            q = q.filter(Booking.booking_date >= date_from)
        if date_to:
            q = q.filter(Booking.booking_date <= date_to)
        return q.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).all()

    def status_breakdown(self, provider_id: int, created_from: datetime = None, created_before: datetime = None):
        """Return ``{status: (count, amount_sum)}`` for one provider."""
        q = (
            self.session.query(Booking.status, func.count(Booking.id), func.sum(Booking.total_amount))
            .filter(Booking.provider_id == provider_id)
        )
        if created_from is not None:
            q = q.filter(Booking.created_at >= created_from)
        if created_before is not None:
            q = q.filter(Booking.created_at < created_before)
        return {status: (count, amount) for status, count, amount in q.group_by(Booking.status).all()}

    def bookings_starting_between(self, start: datetime, end: datetime, statuses, unsent_flag: str):
        flag = getattr(Booking, unsent_flag)
        candidates = (
            self.session.query(Booking)
            .filter(
                Booking.status.in_([s.value for s in statuses]),
                Booking.booking_date >= start.date(),
                Booking.booking_date <= end.date(),
                flag.is_(False),
            )
            .all()
        )
        # date and time-of-day live in separate columns, so the exact window is applied here
        return [b for b in candidates if start <= b.starts_at <= end]

    # ---------- notifications ----------
    def due_notifications(self, now: datetime, limit: int):
        return (
            self.session.query(NotificationOutbox)
            .filter(
                NotificationOutbox.status == "PENDING",
                NotificationOutbox.next_attempt_at <= now,
            )
            .order_by(NotificationOutbox.next_attempt_at.asc(), NotificationOutbox.id.asc())
            .limit(limit)
            .all()
        )

    def list_notifications(self, status=None, limit=200):
        q = self.session.query(NotificationOutbox)
        if status:
            q = q.filter(NotificationOutbox.status == status)
        return q.order_by(NotificationOutbox.created_at.desc()).limit(limit).all()

    # ---------- reviews ----------
    def find_review(self, booking_id: int, customer_id: int):
        return (
            self.session.query(Review)
            .filter_by(booking_id=booking_id, customer_id=customer_id)
            .first()
        )

    def rating_summary(self, service_id: int):
        avg, count = (
            self.session.query(func.avg(Review.rating), func.count(Review.id))
            .filter(Review.service_id == service_id)
            .one()
        )
        return avg, count

    def list_reviews(self, service_id: int, limit=100):
        return (
            self.session.query(Review)
            .filter(Review.service_id == service_id)
            .order_by(Review.created_at.desc(), Review.id.desc())
            .limit(limit)
            .all()
        )

    # ---------- payments ----------
    def list_payments(self, booking_id: int):
        return (
            self.session.query(Payment)
            .filter(Payment.booking_id == booking_id)
            .order_by(Payment.created_at.asc())
            .all()
        )


def day_bounds(day: date):
    start = datetime(day.year, day.month, day.day)
    return start, start + timedelta(days=1)
