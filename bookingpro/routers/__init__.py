"""API routers."""

from bookingpro.routers.availability import router as availability_router
from bookingpro.routers.bookings import router as bookings_router
from bookingpro.routers.conversions import router as conversions_router
from bookingpro.routers.internal import router as internal_router
from bookingpro.routers.leads import router as leads_router

__all__ = [
    "availability_router",
    "bookings_router",
    "conversions_router",
    "internal_router",
    "leads_router",
]
