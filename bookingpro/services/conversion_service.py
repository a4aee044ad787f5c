"""Conversion service - lead-to-booking conversion metrics."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Mapping, NamedTuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from bookingpro.core.config import settings
from bookingpro.core.constants import SERVICE_VALUES
from bookingpro.core.structured_logging import build_log_context
from bookingpro.db.enums import LeadType
from bookingpro.db.models import ConversionMetric, Lead
from bookingpro.db.types import utcnow
from bookingpro.services import lead_service
from bookingpro.services.booking_events import BookingCreated
from bookingpro.services.field_mapper import normalize

logger = logging.getLogger(__name__)


class TimeToConversion(NamedTuple):
    minutes: int
    hours: float
    days: float


class ConversionStats(NamedTuple):
    period_days: int
    total_leads: int
    converted_leads: int
    conversion_rate: float
    avg_conversion_time_minutes: float


def calculate_time_to_conversion(lead: Lead, now: datetime | None = None) -> TimeToConversion:
    """Elapsed time from lead creation to its conversion timestamp."""
    converted_at = lead.conversion_timestamp or now or utcnow()
    elapsed = max(converted_at - lead.created_at, timedelta(0))
    minutes = int(elapsed.total_seconds() // 60)
    return TimeToConversion(
        minutes=minutes,
        hours=round(minutes / 60, 2),
        days=elapsed.days + (elapsed.seconds // 3600) / 24,
    )


def estimate_conversion_value(booking_data: Mapping[str, Any] | None) -> int:
    service = normalize(booking_data).get("service_type")
    return SERVICE_VALUES.get(service, 0) if isinstance(service, str) else 0


def _trim_metrics(db: Session, limit: int) -> int:
    """Drop the oldest metric rows beyond the limit."""
    cutoff_id = db.query(ConversionMetric.id).order_by(
        ConversionMetric.id.desc()
    ).offset(limit).limit(1).scalar()
    if cutoff_id is None:
        return 0
    return db.query(ConversionMetric).filter(
        ConversionMetric.id <= cutoff_id
    ).delete(synchronize_session=False)


def record_conversion(
    db: Session,
    lead: Lead,
    booking_data: Mapping[str, Any] | None,
    limit: int | None = None,
) -> ConversionMetric:
    """Append a conversion metric for a converted lead to the rolling log."""
    limit = limit if limit is not None else settings.CONVERSION_METRICS_LIMIT
    elapsed = calculate_time_to_conversion(lead)
    normalized = normalize(booking_data)

    metric = ConversionMetric(
        lead_id=lead.id,
        booking_id=lead.booking_id,
        session_id=lead.session_id,
        service_type=lead.service_type or normalized.get("service_type") or "unknown",
        utm_source=lead.utm_source or "unknown",
        time_to_conversion_minutes=elapsed.minutes,
        time_to_conversion_hours=elapsed.hours,
        time_to_conversion_days=elapsed.days,
        completion_percentage=lead.completion_percentage,
        lead_score=lead.lead_score,
        conversion_value=estimate_conversion_value(booking_data),
        is_retroactive=lead.lead_type == LeadType.RETROACTIVE.value,
    )
    db.add(metric)
    db.flush()
    trimmed = _trim_metrics(db, max(limit, 1))
    db.commit()
    db.refresh(metric)

    logger.info(
        "conversion_recorded",
        extra={
            "time_to_conversion_minutes": elapsed.minutes,
            "conversion_value": metric.conversion_value,
            "trimmed": trimmed,
            **build_log_context(
                session_id=lead.session_id,
                lead_id=lead.id,
                booking_id=lead.booking_id,
                action="record_conversion",
            ),
        },
    )
    return metric


def get_conversion_stats(
    db: Session,
    period_days: int = 30,
    now: datetime | None = None,
) -> ConversionStats:
    """Funnel statistics over leads created within the last period_days."""
    now = now or utcnow()
    since = now - timedelta(days=period_days)
    base = db.query(Lead).filter(Lead.created_at >= since)

    total = base.count()
    converted = base.filter(Lead.converted_to_booking.is_(True)).all()
    rate = (len(converted) / total) * 100 if total else 0.0

    durations = [
        calculate_time_to_conversion(lead, now).minutes
        for lead in converted
        if lead.conversion_timestamp is not None
    ]
    avg_minutes = sum(durations) / len(durations) if durations else 0.0

    return ConversionStats(
        period_days=period_days,
        total_leads=total,
        converted_leads=len(converted),
        conversion_rate=round(rate, 2),
        avg_conversion_time_minutes=round(avg_minutes, 2),
    )


def list_recent_metrics(db: Session, limit: int = 50) -> list[ConversionMetric]:
    return db.query(ConversionMetric).order_by(
        ConversionMetric.id.desc()
    ).limit(limit).all()


def count_metrics(db: Session) -> int:
    return db.query(func.count(ConversionMetric.id)).scalar() or 0


def handle_booking_created(db: Session, event: BookingCreated) -> None:
    """Event subscriber: convert the session's lead and record metrics."""
    lead = lead_service.complete_conversion(
        db,
        event.session_id,
        event.booking_id,
        event.booking_data,
    )
    existing = db.query(ConversionMetric.id).filter(
        ConversionMetric.booking_id == event.booking_id
    ).first()
    if existing is not None:
        return
    record_conversion(db, lead, event.booking_data)
