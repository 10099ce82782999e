import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as slotbook.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "slotbook.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer token lifetime: 8 hours
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(8 * 60 * 60)))

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(20 * 60)))

    # Availability window used when a provider has no working hours for the weekday
    DEFAULT_WORKDAY_START = os.getenv("DEFAULT_WORKDAY_START", "09:00")
    DEFAULT_WORKDAY_END = os.getenv("DEFAULT_WORKDAY_END", "17:00")

    # 0 = step slots by each service's own duration; 60 gives a fixed hourly calendar
    SLOT_GRANULARITY_MINUTES = int(os.getenv("SLOT_GRANULARITY_MINUTES", "0"))

    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

    # Notification outbox
    NOTIFY_MAX_ATTEMPTS = int(os.getenv("NOTIFY_MAX_ATTEMPTS", "5"))
    NOTIFY_BACKOFF_SECONDS = int(os.getenv("NOTIFY_BACKOFF_SECONDS", "60"))  # doubled per failed attempt
    NOTIFY_BATCH_SIZE = int(os.getenv("NOTIFY_BATCH_SIZE", "50"))
    NOTIFY_POLL_SECONDS = int(os.getenv("NOTIFY_POLL_SECONDS", "30"))

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SMTP_HOST = None
    LOG_LEVEL = "WARNING"
