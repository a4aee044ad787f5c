"""Lead schemas - Pydantic models for lead capture."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class LeadCaptureRequest(BaseModel):
    """Partial form data sent while the customer fills the form."""
    session_id: str | None = Field(None, max_length=100)
    fields: dict[str, Any] = Field(default_factory=dict)


class LeadCaptureResponse(BaseModel):
    session_id: str
    captured: bool = True
    completion_percentage: int = 0
    lead_status: str | None = None
    duplicate: bool = False


class LeadRead(BaseModel):
    """Schema for reading a lead (no raw form payload)."""
    id: int
    session_id: str
    service_type: str | None = None
    company_name: str | None = None
    zip_code: str | None = None
    completion_percentage: int
    lead_score: int
    lead_type: str
    status: str
    is_complete: bool
    converted_to_booking: bool
    booking_id: int | None = None
    conversion_timestamp: datetime | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    traffic_source: str | None = None
    created_at: datetime
    last_updated: datetime

    model_config = {"from_attributes": True}


class LeadCleanupResponse(BaseModel):
    abandoned: int
    deleted: int
