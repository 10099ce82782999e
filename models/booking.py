from datetime import datetime
from enum import Enum

from sqlalchemy import text

from models.db import db


class BookingStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)  # NULL for guests

    # copied at booking time so guest bookings carry their own contact details
    customer_name = db.Column(db.String(160), nullable=False)
    customer_email = db.Column(db.String(255), nullable=False)
    customer_phone = db.Column(db.String(30), nullable=True)

    booking_date = db.Column(db.Date, nullable=False, index=True)
    booking_time = db.Column(db.String(5), nullable=False)  # HH:MM
    duration = db.Column(db.Integer, nullable=False)  # minutes
    total_amount = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(20), nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value)
    special_requests = db.Column(db.Text, nullable=True)

    reminder_sent_24h = db.Column(db.Boolean, default=False, nullable=False)
    reminder_sent_1h = db.Column(db.Boolean, default=False, nullable=False)

    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    service = db.relationship("Service")
    provider = db.relationship("User", foreign_keys=[provider_id])
    customer = db.relationship("User", foreign_keys=[customer_id])

    __table_args__ = (
        # Hard business-rule: one live booking per service slot (prevents double booking).
        # Cancelled rows drop out of the index so the slot can be booked again.
        db.Index(
            "uq_booking_active_slot",
            "service_id", "booking_date", "booking_time",
            unique=True,
            sqlite_where=text("status != 'CANCELLED'"),
            postgresql_where=text("status != 'CANCELLED'"),
        ),
    )

    @property
    def starts_at(self) -> datetime:
        hour, minute = (int(p) for p in self.booking_time.split(":"))
        return datetime(self.booking_date.year, self.booking_date.month, self.booking_date.day, hour, minute)
