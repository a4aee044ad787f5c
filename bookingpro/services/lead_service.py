"""Lead service - lead lifecycle keyed by form session.

Handles:
- Session id validation/minting
- Incremental capture with merge (new non-empty values win, nothing is erased)
- Conversion hand-off (converting -> converted, retroactive fallback)
- Duplicate request markers
- Abandonment and retention sweeps
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Mapping

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookingpro.core.config import settings
from bookingpro.core.dedup import DedupCache, marker_key
from bookingpro.core.errors import PersistenceError
from bookingpro.core.structured_logging import build_log_context
from bookingpro.db.enums import LeadStatus, LeadType
from bookingpro.db.models import Lead
from bookingpro.db.types import utcnow
from bookingpro.services import attribution_service
from bookingpro.services.field_mapper import (
    calculate_completion_percentage,
    is_empty_value,
    is_valid_lead_data,
    normalize,
)

logger = logging.getLogger(__name__)


# Canonical field -> (Lead column, max length)
LEAD_COLUMN_FIELDS: dict[str, tuple[str, int | None]] = {
    "customer_name": ("customer_name", 255),
    "customer_email": ("customer_email", 255),
    "customer_phone": ("customer_phone", 50),
    "customer_address": ("customer_address", None),
    "city": ("city", 100),
    "state": ("state", 50),
    "zip_code": ("zip_code", 20),
    "service_type": ("service_type", 100),
    "company_name": ("company_name", 255),
    "booking_date": ("booking_date", 20),
    "booking_time": ("booking_time", 20),
    "utm_source": ("utm_source", 255),
    "utm_medium": ("utm_medium", 255),
    "utm_campaign": ("utm_campaign", 255),
    "utm_term": ("utm_term", 255),
    "utm_content": ("utm_content", 255),
    "gclid": ("gclid", 255),
    "referrer": ("referrer", None),
}

# Keys describing the lead row itself; never copied from client payloads
_SERVER_MANAGED_KEYS = frozenset({
    "session_id",
    "completion_percentage",
    "lead_type",
    "lead_status",
    "lead_score",
    "is_complete",
    "converted_to_booking",
    "booking_post_id",
    "conversion_timestamp",
    "traffic_source",
    "capture_timestamp",
    "last_updated",
    "created_date",
})


@dataclass
class CaptureResult:
    session_id: str
    lead: Lead
    completion_percentage: int

    @property
    def status(self) -> str:
        return self.lead.status


# =============================================================================
# Sessions
# =============================================================================

def new_session_id() -> str:
    return uuid.uuid4().hex


def derive_session_id(
    email: str | None,
    phone: str | None,
    service: str | None,
    on_date: date | None = None,
) -> str | None:
    """
    Deterministic correlation key for submissions without a session id.

    Stable for the same contact/service within one UTC day. None when all
    three parts are empty.
    """
    parts = [str(p).strip() for p in (email, phone, service) if not is_empty_value(p)]
    if not parts:
        return None
    on_date = on_date or utcnow().date()
    digest = hashlib.sha256(("|".join(parts) + on_date.isoformat()).encode("utf-8"))
    return f"bsp_{digest.hexdigest()}"


def _session_cutoff(now: datetime | None = None) -> datetime:
    return (now or utcnow()) - timedelta(seconds=settings.SESSION_TIMEOUT_SECONDS)


def get_active_lead(db: Session, session_id: str, now: datetime | None = None) -> Lead | None:
    """Most recent lead for the session created inside the session window."""
    if not session_id:
        return None
    return db.query(Lead).filter(
        Lead.session_id == session_id,
        Lead.created_at > _session_cutoff(now),
    ).order_by(Lead.created_at.desc(), Lead.id.desc()).first()


def get_or_create_session_id(
    db: Session,
    session_id: str | None,
    now: datetime | None = None,
) -> str:
    """Keep the session id if it has a recent lead, otherwise mint a new one."""
    if session_id and get_active_lead(db, session_id, now) is not None:
        return session_id
    return new_session_id()


def get_lead_by_session(db: Session, session_id: str) -> Lead | None:
    """Latest lead for a session regardless of age."""
    return db.query(Lead).filter(
        Lead.session_id == session_id
    ).order_by(Lead.last_updated.desc(), Lead.id.desc()).first()


def get_lead(db: Session, lead_id: int) -> Lead | None:
    return db.query(Lead).filter(Lead.id == lead_id).first()


# =============================================================================
# Capture
# =============================================================================

def _clean_fields(normalized: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: value
        for key, value in normalized.items()
        if key not in _SERVER_MANAGED_KEYS and not is_empty_value(value)
    }


def _apply_columns(lead: Lead, data: Mapping[str, Any]) -> None:
    """Copy canonical fields onto the lead's typed columns."""
    for field, (column, max_length) in LEAD_COLUMN_FIELDS.items():
        value = data.get(field)
        if is_empty_value(value):
            continue
        text = str(value).strip()
        setattr(lead, column, text[:max_length] if max_length else text)

    company_id = data.get("company_id")
    if not is_empty_value(company_id):
        try:
            lead.company_id = int(company_id)
        except (TypeError, ValueError):
            pass


def _apply_attribution(lead: Lead, data: Mapping[str, Any], completion: int) -> None:
    marketing = attribution_service.extract_marketing_source(data)
    _apply_columns(lead, marketing)
    scored = {**data, **marketing}
    lead.lead_score = attribution_service.calculate_lead_score(scored, completion)
    lead.traffic_source = attribution_service.determine_traffic_source(scored)


def capture_lead(
    db: Session,
    session_id: str,
    data: Mapping[str, Any] | None,
    now: datetime | None = None,
) -> CaptureResult:
    """
    Record a partial form interaction for a session.

    Merges into the session's lead created inside the session window or
    inserts a new one. Omitted or empty values never erase stored ones.

    Raises:
        PersistenceError: storage failed (callers may choose to ignore it)
    """
    now = now or utcnow()
    incoming = _clean_fields(normalize(data))

    lead = get_active_lead(db, session_id, now)
    if lead is None:
        lead = Lead(
            session_id=session_id,
            form_data={},
            status=LeadStatus.NEW.value,
            lead_type=LeadType.PROCESSING.value,
            created_at=now,
        )
        db.add(lead)

    merged = {**(lead.form_data or {}), **incoming}
    lead.form_data = merged
    _apply_columns(lead, merged)

    in_conversion = lead.status in LeadStatus.in_conversion()
    if in_conversion:
        completion = 100
    else:
        completion = calculate_completion_percentage(merged, merged.get("service_type"))
        if is_valid_lead_data(merged):
            lead.status = LeadStatus.CAPTURING.value
        elif lead.status != LeadStatus.FAILED.value:
            lead.status = LeadStatus.NEW.value
    lead.completion_percentage = completion
    _apply_attribution(lead, merged, completion)
    lead.last_updated = now

    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Lead capture failed to persist",
            exc_info=exc,
            extra=build_log_context(session_id=session_id, action="capture"),
        )
        raise PersistenceError("Lead capture failed") from exc
    db.refresh(lead)

    logger.debug(
        "lead_captured",
        extra={
            "completion_percentage": completion,
            **build_log_context(session_id=session_id, lead_id=lead.id, action="capture"),
        },
    )
    return CaptureResult(session_id=session_id, lead=lead, completion_percentage=completion)


# =============================================================================
# Conversion
# =============================================================================

def _commit(db: Session, action: str, session_id: str | None) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning(
            "Lead update failed to persist",
            exc_info=exc,
            extra=build_log_context(session_id=session_id, action=action),
        )
        raise PersistenceError(f"Lead {action} failed") from exc


def begin_conversion(
    db: Session,
    session_id: str,
    final_data: Mapping[str, Any] | None,
    now: datetime | None = None,
) -> Lead | None:
    """
    Mark the session's lead as converting at final submit.

    Returns None when the session has no recent lead. A lead already
    converting or converted is returned unchanged.
    """
    now = now or utcnow()
    lead = get_active_lead(db, session_id, now)
    if lead is None:
        return None
    if lead.status in LeadStatus.in_conversion():
        return lead

    final = _clean_fields(normalize(final_data))
    merged = {**(lead.form_data or {}), **final}
    lead.form_data = merged
    lead.final_form_data = final
    _apply_columns(lead, merged)

    lead.status = LeadStatus.CONVERTING.value
    lead.lead_type = LeadType.COMPLETE.value
    lead.completion_percentage = 100
    lead.is_complete = True
    lead.failure_reason = None
    # Placeholder until the booking exists
    lead.conversion_timestamp = now
    lead.last_updated = now
    _apply_attribution(lead, merged, 100)

    _commit(db, "begin_conversion", session_id)
    db.refresh(lead)
    logger.info(
        "lead_converting",
        extra=build_log_context(session_id=session_id, lead_id=lead.id, action="begin_conversion"),
    )
    return lead


def _find_converted_lead(db: Session, booking_id: int) -> Lead | None:
    return db.query(Lead).filter(
        Lead.booking_id == booking_id,
        Lead.converted_to_booking.is_(True),
    ).order_by(Lead.id).first()


def _create_retroactive_lead(
    db: Session,
    session_id: str,
    booking_id: int,
    booking_data: Mapping[str, Any],
    now: datetime,
) -> Lead:
    data = _clean_fields(normalize(booking_data))
    lead = Lead(
        session_id=session_id,
        form_data=data,
        final_form_data=dict(booking_data),
        completion_percentage=100,
        lead_type=LeadType.RETROACTIVE.value,
        status=LeadStatus.CONVERTED.value,
        is_complete=True,
        converted_to_booking=True,
        booking_id=booking_id,
        conversion_timestamp=now,
        conversion_session_id=session_id,
        created_at=now,
        last_updated=now,
    )
    _apply_columns(lead, data)
    _apply_attribution(lead, data, 100)
    db.add(lead)
    _commit(db, "retroactive_conversion", session_id)
    db.refresh(lead)
    logger.info(
        "retroactive_lead_created",
        extra=build_log_context(
            session_id=session_id, lead_id=lead.id, booking_id=booking_id, action="complete_conversion"
        ),
    )
    return lead


def complete_conversion(
    db: Session,
    session_id: str | None,
    booking_id: int,
    booking_data: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> Lead:
    """
    Link the session's lead to a created booking.

    Without a usable lead (none found, or the update fails) exactly one
    retroactive lead is created from the booking data. Calling again for the
    same booking returns the already-converted lead.
    """
    now = now or utcnow()
    booking_data = booking_data or {}

    existing = _find_converted_lead(db, booking_id)
    if existing is not None:
        return existing

    if not session_id:
        normalized = normalize(booking_data)
        session_id = derive_session_id(
            normalized.get("customer_email"),
            normalized.get("customer_phone"),
            normalized.get("service_type"),
            now.date(),
        ) or f"bsp_booking_{booking_id}"

    lead = get_active_lead(db, session_id, now)
    if lead is not None:
        lead.status = LeadStatus.CONVERTED.value
        lead.lead_type = LeadType.COMPLETE.value
        lead.converted_to_booking = True
        lead.booking_id = booking_id
        lead.conversion_timestamp = now
        lead.conversion_session_id = session_id
        lead.is_complete = True
        lead.completion_percentage = 100
        lead.last_updated = now
        try:
            _commit(db, "complete_conversion", session_id)
        except PersistenceError:
            lead = None
        else:
            db.refresh(lead)
            logger.info(
                "lead_converted",
                extra=build_log_context(
                    session_id=session_id, lead_id=lead.id, booking_id=booking_id,
                    action="complete_conversion",
                ),
            )
            return lead

    return _create_retroactive_lead(db, session_id, booking_id, booking_data, now)


def reopen_conversion(
    db: Session,
    session_id: str,
    now: datetime | None = None,
) -> Lead | None:
    """
    Put a converting lead back into capture after its submit failed.

    Converted leads are left alone. The merged form data is kept, so the
    next submit can begin conversion again.
    """
    now = now or utcnow()
    lead = get_active_lead(db, session_id, now)
    if lead is None or lead.status != LeadStatus.CONVERTING.value:
        return lead

    data = lead.form_data or {}
    completion = calculate_completion_percentage(data, data.get("service_type"))
    lead.status = (
        LeadStatus.CAPTURING.value if is_valid_lead_data(data) else LeadStatus.NEW.value
    )
    lead.lead_type = LeadType.PROCESSING.value
    lead.is_complete = False
    lead.conversion_timestamp = None
    lead.completion_percentage = completion
    lead.last_updated = now
    _apply_attribution(lead, data, completion)

    _commit(db, "reopen_conversion", session_id)
    db.refresh(lead)
    logger.info(
        "lead_conversion_reopened",
        extra=build_log_context(session_id=session_id, lead_id=lead.id, action="reopen_conversion"),
    )
    return lead


def mark_lead_failed(
    db: Session,
    session_id: str,
    reason: str,
    now: datetime | None = None,
) -> Lead | None:
    """Record a processing failure on the session's lead."""
    now = now or utcnow()
    lead = get_active_lead(db, session_id, now)
    if lead is None:
        return None
    lead.status = LeadStatus.FAILED.value
    lead.lead_type = LeadType.FAILED.value
    lead.failure_reason = reason
    lead.last_updated = now
    _commit(db, "mark_failed", session_id)
    db.refresh(lead)
    return lead


# =============================================================================
# Deduplication
# =============================================================================

def is_duplicate_request(
    cache: DedupCache,
    session_id: str | None,
    action: str,
    ttl_seconds: int | None = None,
) -> bool:
    """
    True if the same action for this session was seen inside the TTL window.

    The first call sets the marker and returns False. Cache failures let the
    request through.
    """
    if not session_id:
        return False
    ttl = ttl_seconds if ttl_seconds is not None else settings.REQUEST_DEDUP_SECONDS
    try:
        return not cache.add(marker_key(action, session_id), ttl)
    except Exception as exc:
        logger.warning(
            "Dedup marker unavailable, allowing request",
            exc_info=exc,
            extra=build_log_context(session_id=session_id, action=action),
        )
        return False


# =============================================================================
# Maintenance
# =============================================================================

def expire_stale_leads(
    db: Session,
    timeout_seconds: int | None = None,
    now: datetime | None = None,
) -> int:
    """Mark new/capturing leads idle past the session timeout as abandoned."""
    now = now or utcnow()
    timeout = timeout_seconds if timeout_seconds is not None else settings.SESSION_TIMEOUT_SECONDS
    cutoff = now - timedelta(seconds=timeout)
    updated = db.query(Lead).filter(
        Lead.status.in_([LeadStatus.NEW.value, LeadStatus.CAPTURING.value]),
        Lead.last_updated < cutoff,
    ).update(
        {Lead.status: LeadStatus.ABANDONED.value},
        synchronize_session=False,
    )
    if updated:
        db.commit()
    logger.info("Abandoned %s stale leads", updated)
    return updated


def cleanup_expired_leads(
    db: Session,
    retention_days: int | None = None,
    now: datetime | None = None,
) -> int:
    """Delete unconverted leads created before the retention window."""
    now = now or utcnow()
    days = retention_days if retention_days is not None else settings.LEAD_RETENTION_DAYS
    cutoff = now - timedelta(days=days)
    deleted = db.query(Lead).filter(
        Lead.status.in_(LeadStatus.unconverted()),
        Lead.converted_to_booking.is_(False),
        Lead.created_at < cutoff,
    ).delete(synchronize_session=False)
    db.commit()
    logger.info("Deleted %s expired leads (cutoff %s)", deleted, cutoff.isoformat())
    return deleted


def get_lead_system_stats(db: Session, now: datetime | None = None) -> dict[str, int]:
    """Lead counts for monitoring."""
    now = now or utcnow()
    by_type = dict(
        db.query(Lead.lead_type, func.count(Lead.id)).group_by(Lead.lead_type).all()
    )
    return {
        "total_leads": db.query(func.count(Lead.id)).scalar() or 0,
        "recent_leads": db.query(func.count(Lead.id)).filter(
            Lead.created_at > now - timedelta(hours=24)
        ).scalar() or 0,
        "processing_leads": by_type.get(LeadType.PROCESSING.value, 0),
        "complete_leads": by_type.get(LeadType.COMPLETE.value, 0),
        "failed_leads": by_type.get(LeadType.FAILED.value, 0),
        "retroactive_leads": by_type.get(LeadType.RETROACTIVE.value, 0),
    }
