"""Leads router - incremental lead capture from the booking form."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from bookingpro.core.deps import get_db
from bookingpro.core.errors import PersistenceError
from bookingpro.core.rate_limit import CAPTURE_LIMIT, limiter
from bookingpro.core.structured_logging import build_log_context
from bookingpro.schemas.lead import LeadCaptureRequest, LeadCaptureResponse, LeadRead
from bookingpro.services import lead_service
from bookingpro.services.field_mapper import is_valid_lead_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leads", tags=["leads"])


@router.post("/capture", response_model=LeadCaptureResponse)
@limiter.limit(CAPTURE_LIMIT)
def capture_lead(
    request: Request,
    data: LeadCaptureRequest,
    db: Session = Depends(get_db),
):
    """
    Record partial form progress for a session.

    Always answers 200: losing a lead update must never break the form.
    """
    session_id = data.session_id or lead_service.new_session_id()
    try:
        session_id = lead_service.get_or_create_session_id(db, data.session_id)
        if not is_valid_lead_data(data.fields):
            return LeadCaptureResponse(session_id=session_id, captured=False)
        result = lead_service.capture_lead(db, session_id, data.fields)
    except (PersistenceError, SQLAlchemyError) as exc:
        db.rollback()
        logger.warning(
            "Lead capture skipped",
            exc_info=exc,
            extra=build_log_context(session_id=session_id, action="capture"),
        )
        return LeadCaptureResponse(session_id=session_id, captured=False)

    return LeadCaptureResponse(
        session_id=result.session_id,
        completion_percentage=result.completion_percentage,
        lead_status=result.status,
    )


@router.get("/{session_id}", response_model=LeadRead)
def get_lead(session_id: str, db: Session = Depends(get_db)):
    """Latest lead for a session."""
    lead = lead_service.get_lead_by_session(db, session_id)
    if not lead:
        raise HTTPException(status_code=404, detail="Lead not found")
    return lead
