"""HTTP tests through the Flask test client."""

from datetime import date, timedelta

import pytest

from conftest import add_booking, bearer
from models import AuditLog, BookingStatus, NotificationOutbox


@pytest.fixture
def day():
    return date.today() + timedelta(days=14)


def book(client, service, day, time="10:00", headers=None, **extra):
    payload = {"service_id": service.id, "date": day.isoformat(), "time": time}
    payload.update(extra)
    return client.post("/bookings", json=payload, headers=headers or {})


def guest_book(client, service, day, time="10:00"):
    return book(client, service, day, time, customer_name="Gail Guest", customer_email="gail@example.com")


class TestHealthAndHeaders:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok"}
        assert resp.headers["X-Content-Type-Options"] == "nosniff"


class TestServices:
    def test_list_and_get(self, client, service):
        assert [s["id"] for s in client.get("/services").get_json()] == [service.id]
        assert client.get("/services?category=plumbing").get_json() == []
        assert client.get(f"/services/{service.id}").get_json()["price"] == "100.00"

    def test_missing_service(self, client, app):
        resp = client.get("/services/999")
        assert resp.status_code == 404
        assert resp.get_json()["kind"] == "NotFound"

    def test_create_requires_provider(self, client, provider, customer):
        payload = {"name": "Lawn", "category": "garden", "price": "30"}
        assert client.post("/services", json=payload).status_code == 401
        assert client.post("/services", json=payload, headers=bearer(customer)).status_code == 403

        resp = client.post("/services", json=payload, headers=bearer(provider))
        assert resp.status_code == 201
        assert resp.get_json()["provider_id"] == provider.id

    def test_nan_price_is_a_bad_request(self, client, provider):
        payload = {"name": "Lawn", "category": "garden", "price": "NaN"}
        resp = client.post("/services", json=payload, headers=bearer(provider))
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "ValidationError"

    def test_deactivate(self, client, service, provider):
        resp = client.post(f"/services/{service.id}/deactivate", headers=bearer(provider))
        assert resp.status_code == 200
        assert client.get("/services").get_json() == []


class TestAvailability:
    def test_requires_date(self, client, service):
        assert client.get(f"/bookings/availability/{service.id}").status_code == 400

    def test_bad_date(self, client, service):
        resp = client.get(f"/bookings/availability/{service.id}?date=tomorrow")
        assert resp.status_code == 400
        assert resp.get_json()["kind"] == "ValidationError"

    def test_full_day(self, client, service, day):
        data = client.get(f"/bookings/availability/{service.id}?date={day.isoformat()}").get_json()
        assert data["slots"][0] == "09:00"
        assert len(data["slots"]) == 8


class TestCreateBooking:
    def test_guest_booking_then_conflict(self, client, service, day):
        resp = guest_book(client, service, day)
        assert resp.status_code == 201
        booking = resp.get_json()["booking"]
        assert booking["status"] == "PENDING"
        assert booking["total_amount"] == "100.00"
        assert booking["customer_id"] is None
        assert booking["service"]["name"] == "Deep Clean"

        slots = client.get(f"/bookings/availability/{service.id}?date={day.isoformat()}").get_json()["slots"]
        assert "10:00" not in slots

        again = guest_book(client, service, day)
        assert again.status_code == 409
        assert again.get_json()["kind"] == "ConflictError"

    def test_registered_customer_uses_profile(self, client, service, customer, day):
        resp = book(client, service, day, headers=bearer(customer))
        assert resp.status_code == 201
        booking = resp.get_json()["booking"]
        assert booking["customer_id"] == customer.id
        assert booking["customer_email"] == customer.email

    def test_duration_in_payload_does_not_change_price(self, client, service, customer, day):
        resp = book(client, service, day, headers=bearer(customer), duration=1)
        assert resp.status_code == 201
        booking = resp.get_json()["booking"]
        assert booking["duration"] == 60
        assert booking["total_amount"] == "100.00"

    def test_queues_notifications_and_audits(self, client, service, day):
        booking_id = guest_book(client, service, day).get_json()["booking"]["id"]
        assert NotificationOutbox.query.filter_by(booking_id=booking_id).count() == 2
        log = AuditLog.query.filter_by(action="BOOKING_CREATE").one()
        assert log.source == "http"
        assert log.entity_id == str(booking_id)

    def test_missing_fields(self, client, service, day):
        assert client.post("/bookings", json={}).status_code == 400
        assert book(client, service, day).status_code == 400


class TestReadBookings:
    def test_my_bookings(self, client, service, customer, stranger, day):
        book(client, service, day, headers=bearer(customer))
        assert client.get("/bookings/me").status_code == 401
        assert len(client.get("/bookings/me", headers=bearer(customer)).get_json()) == 1
        assert client.get("/bookings/me", headers=bearer(stranger)).get_json() == []

    def test_provider_view(self, client, service, provider, day):
        guest_book(client, service, day)
        rows = client.get("/bookings/me?role=provider", headers=bearer(provider)).get_json()
        assert len(rows) == 1

    def test_single_booking_is_private(self, client, service, customer, stranger, admin, day):
        booking_id = book(client, service, day, headers=bearer(customer)).get_json()["booking"]["id"]
        assert client.get(f"/bookings/{booking_id}", headers=bearer(customer)).status_code == 200
        assert client.get(f"/bookings/{booking_id}", headers=bearer(admin)).status_code == 200
        assert client.get(f"/bookings/{booking_id}", headers=bearer(stranger)).status_code == 404


class TestStatusChanges:
    def test_provider_confirms(self, client, service, provider, day):
        booking_id = guest_book(client, service, day).get_json()["booking"]["id"]
        resp = client.patch(f"/bookings/{booking_id}/status", json={"status": "confirmed"}, headers=bearer(provider))
        assert resp.status_code == 200
        assert resp.get_json()["booking"]["status"] == "CONFIRMED"
        assert AuditLog.query.filter_by(action="BOOKING_STATUS_CHANGE").count() == 1

    def test_invalid_transition(self, client, service, provider, day):
        booking_id = guest_book(client, service, day).get_json()["booking"]["id"]
        resp = client.patch(f"/bookings/{booking_id}/status", json={"status": "COMPLETED"}, headers=bearer(provider))
        assert resp.status_code == 409
        assert resp.get_json()["kind"] == "InvalidTransition"

    def test_stranger_forbidden(self, client, service, stranger, day):
        booking_id = guest_book(client, service, day).get_json()["booking"]["id"]
        resp = client.patch(f"/bookings/{booking_id}/status", json={"status": "CANCELLED"}, headers=bearer(stranger))
        assert resp.status_code == 403
        assert resp.get_json()["kind"] == "Unauthorized"

    def test_status_required(self, client, service, provider, day):
        booking_id = guest_book(client, service, day).get_json()["booking"]["id"]
        assert client.patch(f"/bookings/{booking_id}/status", json={}, headers=bearer(provider)).status_code == 400

    def test_cancel_is_idempotent(self, client, service, customer, day):
        headers = bearer(customer)
        booking_id = book(client, service, day, headers=headers).get_json()["booking"]["id"]

        first = client.post(f"/bookings/{booking_id}/cancel", json={"reason": "clash"}, headers=headers)
        second = client.post(f"/bookings/{booking_id}/cancel", headers=headers)

        assert first.get_json()["booking"]["status"] == "CANCELLED"
        assert first.get_json()["booking"]["cancel_reason"] == "clash"
        assert second.status_code == 200
        assert second.get_json()["booking"]["status"] == "CANCELLED"
        assert AuditLog.query.filter_by(action="BOOKING_CANCEL").count() == 1


class TestStats:
    def test_provider_stats(self, client, service, provider, day):
        guest_book(client, service, day)
        data = client.get("/bookings/stats", headers=bearer(provider)).get_json()
        assert data["total_bookings"] == 1
        assert data["pending_bookings"] == 1
        assert data["total_revenue"] == "0.00"
        assert data["conversion_rate"] == 0

    def test_customers_forbidden(self, client, customer):
        assert client.get("/bookings/stats", headers=bearer(customer)).status_code == 403


class TestWorkingHoursRoutes:
    def test_replace_and_read(self, client, provider):
        week = {"working_hours": [{"weekday": 0, "start_time": "08:00", "end_time": "12:00"}]}
        resp = client.put("/providers/me/working-hours", json=week, headers=bearer(provider))
        assert resp.status_code == 200

        data = client.get(f"/providers/{provider.id}/working-hours").get_json()
        assert data["working_hours"] == week["working_hours"]

    def test_invalid_week(self, client, provider):
        week = {"working_hours": [{"weekday": 9, "start_time": "08:00", "end_time": "12:00"}]}
        assert client.put("/providers/me/working-hours", json=week, headers=bearer(provider)).status_code == 400
        assert client.put("/providers/me/working-hours", json={}, headers=bearer(provider)).status_code == 400


class TestReviewsAndPayments:
    def test_review_completed_booking(self, client, service, customer):
        booking = add_booking(service, customer=customer, status=BookingStatus.COMPLETED)
        resp = client.post(f"/bookings/{booking.id}/reviews", json={"rating": 5}, headers=bearer(customer))
        assert resp.status_code == 201

        listed = client.get(f"/services/{service.id}/reviews").get_json()
        assert [r["rating"] for r in listed] == [5]
        assert client.get(f"/services/{service.id}").get_json()["rating_count"] == 1

    def test_review_requires_rating(self, client, service, customer):
        booking = add_booking(service, customer=customer, status=BookingStatus.COMPLETED)
        assert client.post(f"/bookings/{booking.id}/reviews", json={}, headers=bearer(customer)).status_code == 400

    def test_payment_flow(self, client, service, provider, customer):
        booking = add_booking(service, customer=customer, status=BookingStatus.CONFIRMED)
        resp = client.post(
            f"/bookings/{booking.id}/payments",
            json={"external_transaction_id": "pi_123"},
            headers=bearer(provider),
        )
        assert resp.status_code == 201
        assert resp.get_json()["amount"] == "100.00"

        listed = client.get(f"/bookings/{booking.id}/payments", headers=bearer(customer)).get_json()
        assert [p["external_transaction_id"] for p in listed] == ["pi_123"]

        dup = client.post(
            f"/bookings/{booking.id}/payments",
            json={"external_transaction_id": "pi_123"},
            headers=bearer(provider),
        )
        assert dup.status_code == 409


class TestAdmin:
    def test_admin_only(self, client, customer):
        for path in ("/admin/bookings", "/admin/notifications", "/admin/audit-logs"):
            assert client.get(path, headers=bearer(customer)).status_code == 403

    def test_admin_views(self, client, service, admin, day):
        guest_book(client, service, day)
        headers = bearer(admin)

        assert len(client.get("/admin/bookings", headers=headers).get_json()) == 1
        kinds = {n["kind"] for n in client.get("/admin/notifications?status=pending", headers=headers).get_json()}
        assert kinds == {"booking_confirmation", "provider_notification"}
        actions = [r["action"] for r in client.get("/admin/audit-logs", headers=headers).get_json()]
        assert "BOOKING_CREATE" in actions
