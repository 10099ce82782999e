from datetime import datetime
from models.db import db

class NotificationOutbox(db.Model):
    __tablename__ = "notification_outbox"

    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(40), nullable=False)  # booking_confirmation, provider_notification, status_update, reminder
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    params_json = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(20), nullable=False, default="PENDING", index=True)  # PENDING, SENT, FAILED
    attempts = db.Column(db.Integer, default=0, nullable=False)
    next_attempt_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    last_error = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    sent_at = db.Column(db.DateTime, nullable=True)

    booking = db.relationship("Booking")
