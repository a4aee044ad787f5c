"""
API tests.

Coverage:
- Health and company listing
- Availability endpoints (single and multi-company)
- Booking submission status codes (200, 404, 409, 422, duplicate)
- Lead capture and lookup (including a database outage)
- Conversion reporting
- Internal cleanup secret handling
"""

from datetime import timedelta

import pytest

from bookingpro.core.config import settings
from bookingpro.db.enums import CompanyStatus
from bookingpro.services import company_service, lead_service


# =============================================================================
# Health / Companies
# =============================================================================

class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_list_companies(self, client, company, second_company):
        response = await client.get("/companies")
        assert response.status_code == 200
        assert [c["name"] for c in response.json()] == ["Acme Roofing", "Summit Windows"]
        assert response.json()[0]["available_days"] == [1, 2, 3, 4, 5]


# =============================================================================
# Availability
# =============================================================================

class TestAvailabilityEndpoints:

    @pytest.mark.asyncio
    async def test_company_availability(self, client, company, monday):
        response = await client.get(
            f"/companies/{company.id}/availability",
            params={"date_from": monday.isoformat(), "date_to": monday.isoformat()},
        )
        assert response.status_code == 200
        data = response.json()
        day = data["days"][monday.isoformat()]
        assert day["day_name"] == "Mon"
        assert len(day["slots"]) == 16
        assert day["slots"][0] == {"time": "09:00", "formatted": "9:00 AM", "available": True}

    @pytest.mark.asyncio
    async def test_inactive_company_404(self, client, db, company, monday):
        company_service.set_company_status(db, company, CompanyStatus.INACTIVE)
        response = await client.get(f"/companies/{company.id}/availability")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_multi_company_availability(self, client, company, second_company, monday):
        response = await client.get(
            "/availability",
            params={
                "company_ids": [company.id, second_company.id, 9999],
                "date_from": monday.isoformat(),
                "date_to": (monday + timedelta(days=2)).isoformat(),
            },
        )
        assert response.status_code == 200
        availability = response.json()["availability"]
        assert set(availability) == {str(company.id), str(second_company.id)}
        assert len(availability[str(company.id)]) == 3
        # Mon and Wed only
        assert len(availability[str(second_company.id)]) == 2

    @pytest.mark.asyncio
    async def test_range_is_clamped(self, client, company, monday):
        response = await client.get(
            "/availability",
            params={
                "company_ids": company.id,
                "date_from": monday.isoformat(),
                "date_to": (monday + timedelta(days=365)).isoformat(),
            },
        )
        assert response.status_code == 200
        expected = monday + timedelta(days=settings.AVAILABILITY_MAX_RANGE_DAYS)
        assert response.json()["date_to"] == expected.isoformat()


# =============================================================================
# Bookings
# =============================================================================

class TestBookingEndpoints:

    @pytest.mark.asyncio
    async def test_submit_booking(self, client, booking_form, company, monday):
        response = await client.post("/bookings", json=booking_form)
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is True
        assert data["duplicate"] is False

        booking = await client.get(f"/bookings/{data['booking_id']}")
        assert booking.status_code == 200
        assert booking.json()["appointments"] == [{
            "company_id": company.id,
            "company_name": "Acme Roofing",
            "date": monday.isoformat(),
            "time": "10:00",
        }]

        slots = await client.get(
            f"/companies/{company.id}/availability",
            params={"date_from": monday.isoformat(), "date_to": monday.isoformat()},
        )
        by_time = {s["time"]: s["available"] for s in slots.json()["days"][monday.isoformat()]["slots"]}
        assert by_time["10:00"] is False

    @pytest.mark.asyncio
    async def test_missing_field_422(self, client, booking_form):
        del booking_form["address"]
        response = await client.post("/bookings", json=booking_form)
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "address"

    @pytest.mark.asyncio
    async def test_invalid_email_422(self, client, booking_form):
        booking_form["email"] = "jane@"
        response = await client.post("/bookings", json=booking_form)
        assert response.status_code == 422
        assert response.json()["detail"] == {"field": "email", "message": "Invalid email address."}

    @pytest.mark.asyncio
    async def test_unknown_company_404(self, client, booking_form):
        booking_form["company"] = "Nobody"
        response = await client.post("/bookings", json=booking_form)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_slot_taken_409(self, client, booking_form):
        first = await client.post("/bookings", json=dict(booking_form, session_id="a"))
        assert first.status_code == 200

        second = await client.post("/bookings", json=dict(booking_form, session_id="b"))
        assert second.status_code == 409
        assert second.json()["detail"] == "Selected time slot is no longer available"

    @pytest.mark.asyncio
    async def test_duplicate_submit(self, client, booking_form):
        booking_form["session_id"] = "double-click"
        first = await client.post("/bookings", json=booking_form)
        second = await client.post("/bookings", json=booking_form)

        assert first.json()["duplicate"] is False
        assert second.status_code == 200
        assert second.json() == {"ok": True, "booking_id": None, "reference": None, "duplicate": True}

    @pytest.mark.asyncio
    async def test_booking_not_found(self, client):
        response = await client.get("/bookings/12345")
        assert response.status_code == 404


# =============================================================================
# Leads
# =============================================================================

class TestLeadEndpoints:

    @pytest.mark.asyncio
    async def test_capture_mints_session(self, client):
        response = await client.post(
            "/leads/capture",
            json={"fields": {"full_name": "Jane Doe", "service": "Roof"}},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["captured"] is True
        assert data["lead_status"] == "capturing"
        assert data["completion_percentage"] == 22

        lead = await client.get(f"/leads/{data['session_id']}")
        assert lead.status_code == 200
        assert lead.json()["service_type"] == "Roof"

    @pytest.mark.asyncio
    async def test_capture_reuses_active_session(self, client):
        first = await client.post("/leads/capture", json={"fields": {"full_name": "Jane"}})
        session_id = first.json()["session_id"]

        second = await client.post(
            "/leads/capture",
            json={"session_id": session_id, "fields": {"email": "jane@example.com"}},
        )
        assert second.json()["session_id"] == session_id

    @pytest.mark.asyncio
    async def test_capture_without_meaningful_data(self, client):
        response = await client.post("/leads/capture", json={"fields": {"form_step": 1}})
        assert response.status_code == 200
        assert response.json()["captured"] is False

    @pytest.mark.asyncio
    async def test_capture_during_database_outage(self, client, monkeypatch):
        from sqlalchemy.exc import OperationalError

        def unreachable(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("could not connect to server"))

        monkeypatch.setattr(lead_service, "get_or_create_session_id", unreachable)
        response = await client.post(
            "/leads/capture",
            json={"session_id": "sess-down", "fields": {"full_name": "Jane Doe"}},
        )
        assert response.status_code == 200
        assert response.json()["captured"] is False
        assert response.json()["session_id"] == "sess-down"

    @pytest.mark.asyncio
    async def test_booking_converts_captured_lead(self, client, booking_form):
        capture = await client.post("/leads/capture", json={"fields": {"full_name": "Jane Doe"}})
        session_id = capture.json()["session_id"]

        booking = await client.post("/bookings", json=dict(booking_form, session_id=session_id))
        lead = await client.get(f"/leads/{session_id}")

        assert lead.json()["status"] == "converted"
        assert lead.json()["booking_id"] == booking.json()["booking_id"]

        stats = await client.get("/conversions/stats", params={"days": 7})
        assert stats.json()["converted_leads"] == 1
        assert stats.json()["conversion_rate"] == 100

        metrics = await client.get("/conversions/metrics")
        assert len(metrics.json()) == 1
        assert metrics.json()[0]["conversion_value"] == 15000

    @pytest.mark.asyncio
    async def test_lead_not_found(self, client):
        response = await client.get("/leads/nope")
        assert response.status_code == 404


# =============================================================================
# Internal
# =============================================================================

class TestInternalEndpoints:

    @pytest.mark.asyncio
    async def test_secret_not_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "INTERNAL_SECRET", "")
        response = await client.post(
            "/internal/scheduled/lead-cleanup", headers={"X-Internal-Secret": "x"}
        )
        assert response.status_code == 501

    @pytest.mark.asyncio
    async def test_wrong_secret(self, client, monkeypatch):
        monkeypatch.setattr(settings, "INTERNAL_SECRET", "s3cret")
        response = await client.post(
            "/internal/scheduled/lead-cleanup", headers={"X-Internal-Secret": "wrong"}
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cleanup(self, client, monkeypatch):
        monkeypatch.setattr(settings, "INTERNAL_SECRET", "s3cret")
        response = await client.post(
            "/internal/scheduled/lead-cleanup", headers={"X-Internal-Secret": "s3cret"}
        )
        assert response.status_code == 200
        assert response.json() == {"abandoned": 0, "deleted": 0}
