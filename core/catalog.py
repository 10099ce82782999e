import logging

from core.errors import NotFound, Unauthorized, ValidationError
from core.validation import parse_money, parse_positive_int, parse_time, time_to_minutes
from models import Service

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "category", "description", "price", "duration")
DEFAULT_DURATION = 60


def _clean_price(value):
    price = parse_money(value, "price")
    if price < 0:
        raise ValidationError("price must not be negative")
    return price


def _clean_duration(value) -> int:
    if value is None or value == "":
        return DEFAULT_DURATION
    return parse_positive_int(value, "duration")


class ServiceCatalog:
    def __init__(self, gateway):
        self.gateway = gateway

    def create_service(self, provider_id: int, data: dict) -> Service:
        name = (data.get("name") or "").strip()
        category = (data.get("category") or "").strip()
        if not name or not category:
            raise ValidationError("name and category are required")
        if data.get("price") in (None, ""):
            raise ValidationError("price is required")

        service = Service(
            provider_id=provider_id,
            name=name,
            category=category,
            description=(data.get("description") or "").strip() or None,
            price=_clean_price(data.get("price")),
            duration=_clean_duration(data.get("duration")),
            is_active=True,
        )
        self.gateway.insert(service)
        self.gateway.commit()
        logger.info("Service %s created by provider %s", service.id, provider_id)
        return service

    def owned_service(self, service_id: int, provider_id: int) -> Service:
        service = self.gateway.get_service(service_id)
        if service is None:
            raise NotFound("Service not found")
        if service.provider_id != provider_id:
            raise Unauthorized("Only the owning provider can change this service")
        return service

    def update_service(self, service_id: int, provider_id: int, data: dict) -> Service:
        service = self.owned_service(service_id, provider_id)
        for field in EDITABLE_FIELDS:
            if field not in data:
                continue
            value = data[field]
            if field == "price":
                value = _clean_price(value)
            elif field == "duration":
                value = parse_positive_int(value, "duration")
            elif field in ("name", "category"):
                value = (value or "").strip()
                if not value:
                    raise ValidationError(f"{field} must not be empty")
            else:
                value = (value or "").strip() or None
            setattr(service, field, value)
        self.gateway.commit()
        return service

    def deactivate_service(self, service_id: int, provider_id: int) -> Service:
        service = self.owned_service(service_id, provider_id)
        service.is_active = False
        self.gateway.commit()
        logger.info("Service %s deactivated", service.id)
        return service


class WorkingHoursBook:
    def __init__(self, gateway):
        self.gateway = gateway

    def for_provider(self, provider_id: int):
        return self.gateway.list_working_hours(provider_id)

    def replace(self, provider_id: int, entries) -> list:
        if not isinstance(entries, list):
            raise ValidationError("working_hours must be a list")

        cleaned, seen = [], set()
        for entry in entries:
            if not isinstance(entry, dict):
                raise ValidationError("each working_hours entry must be an object")
            weekday = entry.get("weekday")
            if not isinstance(weekday, int) or isinstance(weekday, bool) or not 0 <= weekday <= 6:
                raise ValidationError("weekday must be an integer 0 (Monday) to 6 (Sunday)")
            if weekday in seen:
                raise ValidationError(f"weekday {weekday} listed twice")
            seen.add(weekday)

            start = parse_time(entry.get("start_time"))
            end = parse_time(entry.get("end_time"), allow_end_of_day=True)
            if time_to_minutes(start) >= time_to_minutes(end):
                raise ValidationError("start_time must be before end_time")
            cleaned.append({"weekday": weekday, "start_time": start, "end_time": end})

        return self.gateway.replace_working_hours(provider_id, cleaned)
