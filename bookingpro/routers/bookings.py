"""Bookings router - final form submission and booking lookup."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from bookingpro.core.deps import get_db, get_dedup_cache, get_event_bus
from bookingpro.core.dedup import DedupCache
from bookingpro.core.errors import (
    CompanyUnavailable,
    DuplicateSuppressed,
    PersistenceError,
    SlotConflict,
    ValidationError,
)
from bookingpro.core.rate_limit import BOOKING_LIMIT, limiter
from bookingpro.schemas.booking import BookingRead, BookingSubmitResponse
from bookingpro.services import booking_service
from bookingpro.services.booking_events import EventBus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingSubmitResponse)
@limiter.limit(BOOKING_LIMIT)
def submit_booking(
    request: Request,
    form: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    dedup: DedupCache = Depends(get_dedup_cache),
    events: EventBus = Depends(get_event_bus),
):
    """
    Submit the final booking form.

    Duplicate submissions inside the dedup window succeed without creating
    a second booking. Rate limited to prevent spam.
    """
    try:
        result = booking_service.submit_booking(db, form, dedup=dedup, events=events)
    except DuplicateSuppressed:
        return BookingSubmitResponse(ok=True, duplicate=True)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail={"field": e.field, "message": e.reason})
    except CompanyUnavailable:
        raise HTTPException(status_code=404, detail="Selected company is not available")
    except SlotConflict as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceError:
        raise HTTPException(status_code=503, detail="Booking could not be saved, please try again")

    return BookingSubmitResponse(
        ok=result.ok,
        booking_id=result.booking_id,
        reference=result.reference,
        duplicate=result.duplicate,
    )


@router.get("/{booking_id}", response_model=BookingRead)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    """Get booking by ID."""
    booking = booking_service.get_booking(db, booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking
