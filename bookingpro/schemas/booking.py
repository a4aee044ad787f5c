"""Booking schemas - Pydantic models for the booking submission API."""

from datetime import date, datetime, time
from typing import Any

from pydantic import BaseModel


class BookingSubmitResponse(BaseModel):
    """Result of a final form submission."""
    ok: bool
    booking_id: int | None = None
    reference: str | None = None
    duplicate: bool = False


class AppointmentRead(BaseModel):
    company_id: int
    company_name: str
    date: date
    time: str


class BookingRead(BaseModel):
    """Schema for reading a booking."""
    id: int
    reference: str
    service_type: str
    customer_name: str
    customer_email: str
    customer_phone: str
    customer_address: str
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    company_id: int
    company_name: str
    appointment_date: date
    appointment_time: time
    appointments: list[AppointmentRead]
    service_details: dict[str, Any]
    marketing_source: dict[str, str]
    session_id: str | None = None
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}
