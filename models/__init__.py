from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .service import Service
from .working_hours import WorkingHours
from .booking import Booking, BookingStatus, PaymentStatus
from .payment import Payment
from .review import Review
from .notification import NotificationOutbox
