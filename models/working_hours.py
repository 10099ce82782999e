from models.db import db

class WorkingHours(db.Model):
    __tablename__ = "working_hours"

    id = db.Column(db.Integer, primary_key=True)
    provider_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    weekday = db.Column(db.Integer, nullable=False)  # 0 = Monday ... 6 = Sunday
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM
    end_time = db.Column(db.String(5), nullable=False)

    __table_args__ = (
        db.UniqueConstraint("provider_id", "weekday", name="uq_working_hours_provider_day"),
    )
