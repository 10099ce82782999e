from .health import health_bp
from .services import services_bp
from .working_hours import working_hours_bp
from .booking import booking_bp
from .reviews import reviews_bp
from .payments import payments_bp
from .admin import admin_bp
