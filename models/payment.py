from datetime import datetime
from models.db import db

class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(10), nullable=False, default="USD")

    status = db.Column(db.String(20), nullable=False, default="INIT")  # INIT, PAID, FAILED, REFUNDED
    external_transaction_id = db.Column(db.String(255), nullable=True, unique=True, index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    booking = db.relationship("Booking", backref=db.backref("payments", lazy="dynamic"))
