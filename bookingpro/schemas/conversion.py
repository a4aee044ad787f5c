"""Conversion schemas - Pydantic models for conversion reporting."""

from datetime import datetime

from pydantic import BaseModel


class ConversionStatsRead(BaseModel):
    period_days: int
    total_leads: int
    converted_leads: int
    conversion_rate: float
    avg_conversion_time_minutes: float


class ConversionMetricRead(BaseModel):
    """One row of the rolling conversion log."""
    id: int
    lead_id: int | None = None
    booking_id: int | None = None
    session_id: str | None = None
    service_type: str
    utm_source: str
    time_to_conversion_minutes: int
    time_to_conversion_hours: float
    time_to_conversion_days: float
    completion_percentage: int
    lead_score: int
    conversion_value: int
    is_retroactive: bool
    created_at: datetime

    model_config = {"from_attributes": True}
