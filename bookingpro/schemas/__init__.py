"""Pydantic schemas for API request/response models."""

from bookingpro.schemas.availability import (
    AvailabilityResponse,
    CompanyAvailabilityResponse,
    CompanyRead,
    DayAvailabilityRead,
    SlotRead,
)
from bookingpro.schemas.booking import AppointmentRead, BookingRead, BookingSubmitResponse
from bookingpro.schemas.conversion import ConversionMetricRead, ConversionStatsRead
from bookingpro.schemas.lead import (
    LeadCaptureRequest,
    LeadCaptureResponse,
    LeadCleanupResponse,
    LeadRead,
)

__all__ = [
    "AvailabilityResponse",
    "CompanyAvailabilityResponse",
    "CompanyRead",
    "DayAvailabilityRead",
    "SlotRead",
    "AppointmentRead",
    "BookingRead",
    "BookingSubmitResponse",
    "ConversionMetricRead",
    "ConversionStatsRead",
    "LeadCaptureRequest",
    "LeadCaptureResponse",
    "LeadCleanupResponse",
    "LeadRead",
]
