"""Company service - provider companies and their schedule configuration."""

from __future__ import annotations

from datetime import time

from sqlalchemy.orm import Session

from bookingpro.core.errors import CompanyUnavailable, ValidationError
from bookingpro.db.enums import CompanyStatus
from bookingpro.db.models import Company


def _minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def validate_schedule(
    available_days: list[int],
    hours_start: time,
    hours_end: time,
    slot_duration: int,
) -> None:
    """Raise ValidationError if a schedule configuration is unusable."""
    if not available_days or any(day not in range(1, 8) for day in available_days):
        raise ValidationError("available_days", "Available days must be ISO weekdays 1-7")
    if _minutes(hours_start) >= _minutes(hours_end):
        raise ValidationError(
            "available_hours_start", "Opening time must be before closing time"
        )
    if slot_duration <= 0:
        raise ValidationError("time_slot_duration", "Slot duration must be positive")
    if slot_duration > _minutes(hours_end) - _minutes(hours_start):
        raise ValidationError(
            "time_slot_duration", "Slot duration is longer than the opening hours"
        )


def create_company(
    db: Session,
    name: str,
    phone: str | None = None,
    email: str | None = None,
    address: str | None = None,
    available_days: list[int] | None = None,
    available_hours_start: time = time(9, 0),
    available_hours_end: time = time(17, 0),
    time_slot_duration: int = 30,
    max_bookings_per_day: int = 10,
    advance_booking_days: int = 30,
) -> Company:
    """Create a new active company."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name")
    days = sorted(set(available_days or [1, 2, 3, 4, 5]))
    validate_schedule(days, available_hours_start, available_hours_end, time_slot_duration)

    company = Company(
        name=name,
        phone=phone,
        email=email,
        address=address,
        available_days=days,
        available_hours_start=available_hours_start,
        available_hours_end=available_hours_end,
        time_slot_duration=time_slot_duration,
        max_bookings_per_day=max_bookings_per_day,
        advance_booking_days=advance_booking_days,
        status=CompanyStatus.ACTIVE.value,
    )
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def update_company(
    db: Session,
    company: Company,
    available_days: list[int] | None = None,
    available_hours_start: time | None = None,
    available_hours_end: time | None = None,
    time_slot_duration: int | None = None,
) -> Company:
    """Update a company's schedule configuration."""
    days = sorted(set(available_days)) if available_days is not None else company.available_days
    start = available_hours_start or company.available_hours_start
    end = available_hours_end or company.available_hours_end
    duration = time_slot_duration if time_slot_duration is not None else company.time_slot_duration
    validate_schedule(days, start, end, duration)

    company.available_days = days
    company.available_hours_start = start
    company.available_hours_end = end
    company.time_slot_duration = duration
    db.commit()
    db.refresh(company)
    return company


def set_company_status(db: Session, company: Company, status: CompanyStatus) -> Company:
    company.status = status.value
    db.commit()
    db.refresh(company)
    return company


def get_company(db: Session, company_id: int) -> Company | None:
    """Get company by ID."""
    return db.query(Company).filter(Company.id == company_id).first()


def get_company_by_name(db: Session, name: str) -> Company | None:
    return db.query(Company).filter(Company.name == name.strip()).first()


def list_companies(db: Session, active_only: bool = True) -> list[Company]:
    query = db.query(Company)
    if active_only:
        query = query.filter(Company.status == CompanyStatus.ACTIVE.value)
    return query.order_by(Company.name).all()


def get_active_company(db: Session, company_id: int) -> Company:
    """Get an active company or raise CompanyUnavailable."""
    company = get_company(db, company_id)
    if not company or not company.is_active:
        raise CompanyUnavailable(company_id)
    return company


def resolve_company(db: Session, identifier: int | str | None) -> Company:
    """Resolve a company by numeric id or by name; must be active."""
    if identifier is None or (isinstance(identifier, str) and not identifier.strip()):
        raise CompanyUnavailable(identifier)

    company = None
    if isinstance(identifier, int) or str(identifier).strip().isdigit():
        company = get_company(db, int(identifier))
    if company is None and isinstance(identifier, str):
        company = get_company_by_name(db, identifier)

    if not company or not company.is_active:
        raise CompanyUnavailable(identifier)
    return company
