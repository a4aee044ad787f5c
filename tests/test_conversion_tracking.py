"""
Tests for Conversion Service.

Coverage:
- Funnel statistics (empty period, rounding, averages)
- Time-to-conversion and value estimation
- Rolling metric log trimming
- BookingCreated handling is idempotent per booking
"""

from datetime import timedelta

import pytest

from bookingpro.db.enums import LeadStatus, LeadType
from bookingpro.db.models import ConversionMetric, Lead
from bookingpro.db.types import utcnow
from bookingpro.services import conversion_service
from bookingpro.services.booking_events import BookingCreated


@pytest.fixture
def now():
    return utcnow().replace(microsecond=0)


def _lead(db, session_id, created_at, converted_at=None, **kwargs) -> Lead:
    lead = Lead(
        session_id=session_id,
        form_data={},
        created_at=created_at,
        last_updated=converted_at or created_at,
        **kwargs,
    )
    if converted_at is not None:
        lead.status = LeadStatus.CONVERTED.value
        lead.lead_type = LeadType.COMPLETE.value
        lead.converted_to_booking = True
        lead.conversion_timestamp = converted_at
    db.add(lead)
    db.commit()
    return lead


# =============================================================================
# Statistics
# =============================================================================

class TestConversionStats:

    def test_no_leads(self, db, now):
        stats = conversion_service.get_conversion_stats(db, 30, now=now)
        assert stats.total_leads == 0
        assert stats.conversion_rate == 0
        assert stats.avg_conversion_time_minutes == 0

    def test_rate_is_rounded(self, db, now):
        _lead(db, "a", now - timedelta(hours=3), converted_at=now - timedelta(hours=2))
        _lead(db, "b", now - timedelta(hours=3))
        _lead(db, "c", now - timedelta(hours=3))

        stats = conversion_service.get_conversion_stats(db, 30, now=now)
        assert stats.total_leads == 3
        assert stats.converted_leads == 1
        assert stats.conversion_rate == 33.33
        assert stats.avg_conversion_time_minutes == 60

    def test_period_excludes_old_leads(self, db, now):
        _lead(db, "old", now - timedelta(days=40), converted_at=now - timedelta(days=39))
        _lead(db, "new", now - timedelta(days=1))

        stats = conversion_service.get_conversion_stats(db, 30, now=now)
        assert stats.total_leads == 1
        assert stats.converted_leads == 0


# =============================================================================
# Metrics
# =============================================================================

class TestMetrics:

    def test_time_to_conversion(self, now):
        lead = Lead(created_at=now, conversion_timestamp=now + timedelta(days=2, hours=12))
        elapsed = conversion_service.calculate_time_to_conversion(lead)
        assert elapsed.minutes == 3600
        assert elapsed.hours == 60
        assert elapsed.days == 2.5

    def test_conversion_value(self):
        assert conversion_service.estimate_conversion_value({"service": "Roof"}) == 15000
        assert conversion_service.estimate_conversion_value({"service_type": "ADU"}) == 25000
        assert conversion_service.estimate_conversion_value({"service": "Pool"}) == 0
        assert conversion_service.estimate_conversion_value(None) == 0

    def test_record_conversion(self, db, now):
        lead = _lead(
            db, "rec", now - timedelta(minutes=30), converted_at=now,
            booking_id=11, service_type="Kitchen", utm_source="bing",
            completion_percentage=100, lead_score=80,
        )
        metric = conversion_service.record_conversion(db, lead, {"service": "Kitchen"})

        assert metric.booking_id == 11
        assert metric.time_to_conversion_minutes == 30
        assert metric.conversion_value == 18000
        assert metric.utm_source == "bing"
        assert metric.is_retroactive is False

    def test_metrics_trimmed_to_limit(self, db, now):
        lead = _lead(db, "trim", now, converted_at=now)
        for _ in range(5):
            conversion_service.record_conversion(db, lead, {}, limit=3)

        assert conversion_service.count_metrics(db) == 3
        ids = [m.id for m in conversion_service.list_recent_metrics(db)]
        assert ids == sorted(ids, reverse=True)
        assert min(ids) == 3


# =============================================================================
# Event Handling
# =============================================================================

class TestHandleBookingCreated:

    def test_handles_each_booking_once(self, db):
        event = BookingCreated(
            booking_id=21,
            session_id=None,
            booking_data={"customer_email": "x@example.com", "service_type": "Siding"},
        )
        conversion_service.handle_booking_created(db, event)
        conversion_service.handle_booking_created(db, event)

        assert db.query(ConversionMetric).filter(ConversionMetric.booking_id == 21).count() == 1
        assert db.query(Lead).filter(Lead.booking_id == 21).count() == 1
        metric = db.query(ConversionMetric).one()
        assert metric.is_retroactive is True
        assert metric.conversion_value == 10000
