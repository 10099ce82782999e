"""Provider dashboard numbers, recomputed on every call."""
from decimal import Decimal

from core.gateway import day_bounds
from core.validation import parse_date
from core.errors import ValidationError
from models import BookingStatus


class StatsAggregator:
    def __init__(self, gateway):
        self.gateway = gateway

    def booking_stats(self, provider_id: int, date_from=None, date_to=None) -> dict:
        """Counts per status, completed revenue and completed/total.

        ``date_from`` / ``date_to`` are inclusive calendar days matched
        against the booking's creation time.
        """
        created_from = created_before = None
        if date_from:
            created_from, _ = day_bounds(parse_date(date_from))
        if date_to:
            _, created_before = day_bounds(parse_date(date_to))
        if created_from and created_before and created_from >= created_before:
            raise ValidationError("from must not be after to")

        breakdown = self.gateway.status_breakdown(provider_id, created_from, created_before)

        counts = {status.value: 0 for status in BookingStatus}
        for status, (count, _) in breakdown.items():
            counts[status] = count
        total = sum(counts.values())
        completed = counts[BookingStatus.COMPLETED.value]
        revenue = breakdown.get(BookingStatus.COMPLETED.value, (0, None))[1] or Decimal("0")

        return {
            "total_bookings": total,
            "pending_bookings": counts[BookingStatus.PENDING.value],
            "confirmed_bookings": counts[BookingStatus.CONFIRMED.value],
            "in_progress_bookings": counts[BookingStatus.IN_PROGRESS.value],
            "completed_bookings": completed,
            "cancelled_bookings": counts[BookingStatus.CANCELLED.value],
            "no_show_bookings": counts[BookingStatus.NO_SHOW.value],
            "total_revenue": Decimal(str(revenue)).quantize(Decimal("0.01")),
            "conversion_rate": round(completed / total, 4) if total else 0,
        }
