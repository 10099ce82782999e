import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from core import notifications
from models import BookingStatus

logger = logging.getLogger(__name__)

# (reminder type, window start, window end, flag column)
REMINDER_WINDOWS = (
    ("24h", timedelta(hours=23), timedelta(hours=25), "reminder_sent_24h"),
    ("1h", timedelta(minutes=45), timedelta(minutes=75), "reminder_sent_1h"),
)

REMINDABLE = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


class ReminderSweep:
    """Queue one reminder per booking per window; meant to run every few minutes."""

    def __init__(self, gateway, outbox, now: Optional[Callable[[], datetime]] = None):
        self.gateway = gateway
        self.outbox = outbox
        self._now = now or datetime.now

    def run(self) -> dict:
        now = self._now()
        queued = {}
        for reminder_type, lead_from, lead_to, flag in REMINDER_WINDOWS:
            due = self.gateway.bookings_starting_between(now + lead_from, now + lead_to, REMINDABLE, flag)
            for booking in due:
                # at-most-once: the flag is committed before the reminder is queued
                setattr(booking, flag, True)
                self.gateway.commit()
                self.outbox.enqueue_quietly(notifications.REMINDER, booking, reminder_type=reminder_type)
            queued[reminder_type] = len(due)
            if due:
                logger.info("Queued %d %s reminder(s)", len(due), reminder_type)
        return queued
