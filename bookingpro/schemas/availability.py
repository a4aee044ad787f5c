"""Availability schemas - Pydantic models for companies and slot grids."""

from datetime import date, datetime, time

from pydantic import BaseModel, Field


# =============================================================================
# Companies
# =============================================================================

class CompanyRead(BaseModel):
    """Schema for reading a provider company."""
    id: int
    name: str
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    available_days: list[int]
    available_hours_start: time
    available_hours_end: time
    time_slot_duration: int
    max_bookings_per_day: int
    advance_booking_days: int
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


# =============================================================================
# Slots
# =============================================================================

class SlotRead(BaseModel):
    time: str = Field(..., description="HH:MM")
    formatted: str = Field(..., description="12-hour display time")
    available: bool


class DayAvailabilityRead(BaseModel):
    date: date
    day_name: str
    day_number: int
    full_date: str
    slots: list[SlotRead]


class CompanyAvailabilityResponse(BaseModel):
    """Slot grid for one company, keyed by ISO date."""
    company_id: int
    company_name: str
    date_from: date
    date_to: date
    days: dict[str, DayAvailabilityRead]


class AvailabilityResponse(BaseModel):
    """Slot grids for several companies: {company_id: {date: day}}."""
    date_from: date
    date_to: date
    availability: dict[str, dict[str, DayAvailabilityRead]]
