"""Availability router - companies and bookable slot grids."""

from datetime import date, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from bookingpro.core.config import settings
from bookingpro.core.deps import get_db
from bookingpro.core.errors import CompanyUnavailable
from bookingpro.db.types import utcnow
from bookingpro.schemas.availability import (
    AvailabilityResponse,
    CompanyAvailabilityResponse,
    CompanyRead,
    DayAvailabilityRead,
    SlotRead,
)
from bookingpro.services import availability_service, company_service

router = APIRouter(tags=["availability"])


# =============================================================================
# Helper Functions
# =============================================================================

def _day_to_read(day: availability_service.DayAvailability) -> DayAvailabilityRead:
    return DayAvailabilityRead(
        date=day.date,
        day_name=day.day_name,
        day_number=day.day_number,
        full_date=day.full_date,
        slots=[SlotRead(**slot._asdict()) for slot in day.slots],
    )


def _clamp_range(date_from: date, date_to: date) -> date:
    """Limit the requested window to AVAILABILITY_MAX_RANGE_DAYS."""
    max_to = date_from + timedelta(days=settings.AVAILABILITY_MAX_RANGE_DAYS)
    return min(date_to, max_to)


# =============================================================================
# Companies
# =============================================================================

@router.get("/companies", response_model=list[CompanyRead])
def list_companies(db: Session = Depends(get_db)):
    """List active companies."""
    return company_service.list_companies(db, active_only=True)


@router.get("/companies/{company_id}/availability", response_model=CompanyAvailabilityResponse)
def get_company_availability(
    company_id: int,
    date_from: date | None = Query(None, description="Start date (defaults to today)"),
    date_to: date | None = Query(None, description="End date (defaults to advance booking window)"),
    db: Session = Depends(get_db),
):
    """Slot grid for one company."""
    company = company_service.get_company(db, company_id)
    if not company or not company.is_active:
        raise HTTPException(status_code=404, detail="Company not found")

    date_from = date_from or utcnow().date()
    if date_to is None:
        date_to = date_from + timedelta(days=company.advance_booking_days)
    date_to = _clamp_range(date_from, date_to)

    try:
        days = availability_service.get_availability(db, company, date_from, date_to)
    except CompanyUnavailable:
        raise HTTPException(status_code=404, detail="Company not found")

    return CompanyAvailabilityResponse(
        company_id=company.id,
        company_name=company.name,
        date_from=date_from,
        date_to=date_to,
        days={d.isoformat(): _day_to_read(day) for d, day in days.items()},
    )


# =============================================================================
# Multi-company availability
# =============================================================================

@router.get("/availability", response_model=AvailabilityResponse)
def get_availability(
    company_ids: list[int] = Query(..., description="Company IDs (repeat the parameter)"),
    date_from: date | None = Query(None, description="Start date (defaults to today)"),
    date_to: date | None = Query(None, description="End date (defaults to start + 7 days)"),
    db: Session = Depends(get_db),
):
    """
    Slot grids for several companies.

    Unknown or inactive companies are omitted from the result.
    """
    date_from = date_from or utcnow().date()
    if date_to is None:
        date_to = date_from + timedelta(days=7)
    date_to = _clamp_range(date_from, date_to)

    result = availability_service.get_availability_for_companies(
        db, company_ids, date_from, date_to
    )
    return AvailabilityResponse(
        date_from=date_from,
        date_to=date_to,
        availability={
            str(company_id): {d.isoformat(): _day_to_read(day) for d, day in days.items()}
            for company_id, days in result.items()
        },
    )
