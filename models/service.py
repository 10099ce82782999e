from datetime import datetime
from models.db import db

class Service(db.Model):
    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(160), nullable=False)
    category = db.Column(db.String(80), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False)  # per hour
    duration = db.Column(db.Integer, nullable=False, default=60)  # minutes
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    rating_average = db.Column(db.Numeric(3, 2), nullable=True)
    rating_count = db.Column(db.Integer, default=0, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    provider = db.relationship("User", foreign_keys=[provider_id])

    __table_args__ = (
        db.CheckConstraint("duration > 0", name="ck_services_duration_positive"),
    )
