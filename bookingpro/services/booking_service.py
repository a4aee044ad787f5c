"""Booking service - final form submission to a persisted booking.

Handles:
- Required field and email validation
- Duplicate submit suppression per session
- Single or multi-company appointment resolution
- Booking + reservations in one transaction
- BookingCreated publication for conversion tracking
"""

from __future__ import annotations

import json
import logging
import secrets
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookingpro.core.config import settings
from bookingpro.core.constants import (
    BOOKING_REQUIRED_FIELDS,
    DEDUP_ACTION_SUBMIT,
    EMAIL_PATTERN,
    SERVICE_FIELDS,
)
from bookingpro.core.dedup import DedupCache, marker_key
from bookingpro.core.errors import (
    BookingProError,
    DuplicateSuppressed,
    InvalidEmail,
    PersistenceError,
    ValidationError,
)
from bookingpro.core.structured_logging import build_log_context
from bookingpro.db.enums import DEFAULT_BOOKING_STATUS
from bookingpro.db.models import Booking, Company
from bookingpro.db.types import utcnow
from bookingpro.services import availability_service, company_service, lead_service
from bookingpro.services.attribution_service import extract_marketing_source
from bookingpro.services.booking_events import BookingCreated, EventBus
from bookingpro.services.field_mapper import is_empty_value, normalize

logger = logging.getLogger(__name__)

_SERVICE_DETAIL_FIELDS = tuple(
    dict.fromkeys(field for fields in SERVICE_FIELDS.values() for field in fields)
)


# =============================================================================
# Types
# =============================================================================

@dataclass
class BookingResult:
    ok: bool
    booking_id: int | None = None
    reference: str | None = None
    duplicate: bool = False


@dataclass
class Appointment:
    """One resolved (company, date, time) of a submission."""
    company: Company
    slot_date: date
    slot_time: time

    def as_dict(self) -> dict[str, Any]:
        return {
            "company_id": self.company.id,
            "company_name": self.company.name,
            "date": self.slot_date.isoformat(),
            "time": availability_service.format_slot_time(self.slot_time),
        }


# =============================================================================
# Validation
# =============================================================================

def validate_required_fields(form: Mapping[str, Any]) -> None:
    """Raise ValidationError for the first missing required field."""
    for field in BOOKING_REQUIRED_FIELDS:
        if is_empty_value(form.get(field)):
            raise ValidationError(field)


def validate_email(email: str) -> None:
    if not EMAIL_PATTERN.match(email.strip()):
        raise InvalidEmail(email)


def _parse_appointment_list(raw: Any) -> list[Mapping[str, Any]]:
    """Appointments arrive as a list or a JSON-encoded list."""
    if is_empty_value(raw):
        return []
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ValidationError("appointments", "Appointments must be a JSON list") from exc
    if not isinstance(raw, list) or not all(isinstance(item, Mapping) for item in raw):
        raise ValidationError("appointments", "Appointments must be a JSON list")
    return raw


def _resolve_appointment(
    db: Session,
    company_ref: Any,
    raw_date: Any,
    raw_time: Any,
    today: date,
) -> Appointment:
    company = company_service.resolve_company(db, company_ref)

    try:
        slot_date = availability_service.parse_slot_date(raw_date)
    except (TypeError, ValueError) as exc:
        raise ValidationError("selected_date", "Invalid appointment date") from exc
    try:
        slot_time = availability_service.parse_slot_time(raw_time)
    except (TypeError, ValueError) as exc:
        raise ValidationError("selected_time", "Invalid appointment time") from exc

    if slot_date < today:
        raise ValidationError("selected_date", "Appointment date is in the past")
    if not availability_service.is_bookable_slot(company, slot_date, slot_time):
        raise ValidationError(
            "selected_time", "Selected time is not available for this company"
        )
    return Appointment(company=company, slot_date=slot_date, slot_time=slot_time)


def resolve_appointments(
    db: Session,
    form: Mapping[str, Any],
    today: date | None = None,
) -> list[Appointment]:
    """
    Resolve the submission's appointments.

    Uses the multi-company `appointments` list when present (items carry
    company|companyId, date and time, falling back to the single-company
    fields), else one appointment from company/selected_date/selected_time.
    """
    today = today or utcnow().date()
    items = _parse_appointment_list(form.get("appointments"))

    appointments: list[Appointment] = []
    if items:
        for item in items:
            company_ref = item.get("companyId") or item.get("company_id") or item.get("company")
            appointments.append(_resolve_appointment(
                db,
                company_ref if not is_empty_value(company_ref) else form.get("company"),
                item.get("date") or form.get("selected_date"),
                item.get("time") or form.get("selected_time"),
                today,
            ))
    else:
        appointments.append(_resolve_appointment(
            db,
            form.get("company_id") or form.get("company"),
            form.get("selected_date"),
            form.get("selected_time"),
            today,
        ))

    seen: set[tuple[int, date, time]] = set()
    for appt in appointments:
        key = (appt.company.id, appt.slot_date, appt.slot_time)
        if key in seen:
            raise ValidationError("appointments", "Duplicate appointment slot")
        seen.add(key)
    return appointments


# =============================================================================
# Booking
# =============================================================================

def generate_reference(on_date: date | None = None) -> str:
    """Human-readable booking reference, e.g. BSP-20260105-3F9A1C."""
    on_date = on_date or utcnow().date()
    return f"BSP-{on_date:%Y%m%d}-{secrets.token_hex(3).upper()}"


def build_booking_data(
    normalized: Mapping[str, Any],
    appointments: list[Appointment],
    session_id: str | None,
) -> dict[str, Any]:
    """Canonical payload handed to conversion tracking."""
    first = appointments[0]
    data: dict[str, Any] = {
        "service_type": normalized.get("service_type"),
        "customer_name": normalized.get("customer_name"),
        "customer_email": normalized.get("customer_email"),
        "customer_phone": normalized.get("customer_phone"),
        "customer_address": normalized.get("customer_address"),
        "zip_code": normalized.get("zip_code"),
        "city": normalized.get("city"),
        "state": normalized.get("state"),
        "company_name": first.company.name,
        "company_id": first.company.id,
        "booking_date": first.slot_date.isoformat(),
        "booking_time": availability_service.format_slot_time(first.slot_time),
        "appointments": [appt.as_dict() for appt in appointments],
        "marketing_source": extract_marketing_source(normalized),
    }
    for field in _SERVICE_DETAIL_FIELDS:
        if not is_empty_value(normalized.get(field)):
            data[field] = normalized[field]
    if session_id:
        data["session_id"] = session_id
    return {key: value for key, value in data.items() if not is_empty_value(value)}


def _service_details(normalized: Mapping[str, Any]) -> dict[str, Any]:
    details = {
        field: normalized[field]
        for field in _SERVICE_DETAIL_FIELDS
        if not is_empty_value(normalized.get(field))
    }
    description = normalized.get("service_details")
    if isinstance(description, str) and description.strip():
        details["description"] = description.strip()
    return details


def _begin_conversion(
    db: Session,
    correlation_key: str | None,
    form: Mapping[str, Any],
    now: datetime,
) -> bool:
    """Returns True when a lead is now converting for this submission."""
    if not correlation_key:
        return False
    try:
        lead = lead_service.begin_conversion(db, correlation_key, form, now=now)
    except BookingProError as exc:
        logger.warning(
            "Lead conversion start failed",
            exc_info=exc,
            extra=build_log_context(session_id=correlation_key, action="begin_conversion"),
        )
        return False
    return lead is not None


def _abort_conversion(
    db: Session,
    correlation_key: str,
    error: BookingProError,
    now: datetime,
) -> None:
    """
    Settle a converting lead whose booking was not written.

    Storage failures are recorded on the lead; anything the customer can
    retry (a lost slot) puts it back into capture.
    """
    try:
        if isinstance(error, PersistenceError):
            lead_service.mark_lead_failed(db, correlation_key, str(error), now=now)
        else:
            lead_service.reopen_conversion(db, correlation_key, now=now)
    except BookingProError as exc:
        logger.warning(
            "Lead conversion rollback failed",
            exc_info=exc,
            extra=build_log_context(session_id=correlation_key, action="abort_conversion"),
        )


def submit_booking(
    db: Session,
    form: Mapping[str, Any],
    *,
    dedup: DedupCache,
    events: EventBus,
    now: datetime | None = None,
) -> BookingResult:
    """
    Validate a final form submission and persist it as one booking.

    Raises:
        ValidationError / InvalidEmail: user-correctable input problems
        DuplicateSuppressed: same session submitted inside the dedup window
        CompanyUnavailable: unknown or inactive company
        SlotConflict: a slot was taken by another booking
        PersistenceError: storage failed; nothing was written
    """
    now = now or utcnow()
    validate_required_fields(form)
    validate_email(str(form["email"]))

    normalized = normalize(form)
    session_id = str(normalized["session_id"]).strip() if not is_empty_value(
        normalized.get("session_id")
    ) else None

    if session_id and lead_service.is_duplicate_request(
        dedup, session_id, DEDUP_ACTION_SUBMIT, settings.REQUEST_DEDUP_SECONDS
    ):
        logger.info(
            "booking_submit_duplicate",
            extra=build_log_context(session_id=session_id, action=DEDUP_ACTION_SUBMIT),
        )
        raise DuplicateSuppressed(session_id, DEDUP_ACTION_SUBMIT)

    correlation_key = session_id or lead_service.derive_session_id(
        normalized.get("customer_email"),
        normalized.get("customer_phone"),
        normalized.get("service_type"),
        now.date(),
    )
    converting = False
    try:
        appointments = resolve_appointments(db, form, today=now.date())
        converting = _begin_conversion(db, correlation_key, form, now)
        booking = _persist_booking(db, normalized, appointments, session_id, now)
    except BookingProError as exc:
        # Let the user correct the submission without waiting out the window
        if session_id:
            dedup.clear(marker_key(DEDUP_ACTION_SUBMIT, session_id))
        if converting:
            _abort_conversion(db, correlation_key, exc, now)
        raise

    logger.info(
        "booking_created",
        extra={
            "appointment_count": len(appointments),
            **build_log_context(
                session_id=session_id,
                booking_id=booking.id,
                company_id=booking.company_id,
                action="submit",
            ),
        },
    )

    events.publish(
        db,
        BookingCreated(
            booking_id=booking.id,
            session_id=correlation_key,
            booking_data=build_booking_data(normalized, appointments, session_id),
        ),
    )
    return BookingResult(ok=True, booking_id=booking.id, reference=booking.reference)


def _persist_booking(
    db: Session,
    normalized: Mapping[str, Any],
    appointments: list[Appointment],
    session_id: str | None,
    now: datetime,
) -> Booking:
    """Insert the booking and every reservation, or nothing."""
    first = appointments[0]
    booking = Booking(
        reference=generate_reference(now.date()),
        service_type=str(normalized["service_type"]).strip(),
        customer_name=str(normalized["customer_name"]).strip(),
        customer_email=str(normalized["customer_email"]).strip(),
        customer_phone=str(normalized["customer_phone"]).strip(),
        customer_address=str(normalized["customer_address"]).strip(),
        city=normalized.get("city") or None,
        state=normalized.get("state") or None,
        zip_code=str(normalized["zip_code"]).strip() if normalized.get("zip_code") else None,
        company_id=first.company.id,
        company_name=first.company.name,
        appointment_date=first.slot_date,
        appointment_time=first.slot_time,
        appointments=[appt.as_dict() for appt in appointments],
        service_details=_service_details(normalized),
        marketing_source=extract_marketing_source(normalized),
        session_id=session_id,
        status=DEFAULT_BOOKING_STATUS.value,
        created_at=now,
    )

    try:
        db.add(booking)
        db.flush()
        for appt in appointments:
            availability_service.book_slot(
                db, appt.company.id, appt.slot_date, appt.slot_time, booking.id, commit=False
            )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error(
            "Booking persistence failed",
            exc_info=exc,
            extra=build_log_context(session_id=session_id, action="submit"),
        )
        raise PersistenceError("Booking could not be saved") from exc

    db.refresh(booking)
    return booking


def get_booking(db: Session, booking_id: int) -> Booking | None:
    return db.query(Booking).filter(Booking.id == booking_id).first()


def get_booking_by_reference(db: Session, reference: str) -> Booking | None:
    return db.query(Booking).filter(Booking.reference == reference.strip().upper()).first()
