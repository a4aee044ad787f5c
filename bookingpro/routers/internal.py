"""
Internal endpoints for scheduled/cron operations.

Protected by X-Internal-Secret header.
Call from external cron.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bookingpro.core.deps import get_db, verify_internal_secret
from bookingpro.schemas.lead import LeadCleanupResponse
from bookingpro.services import lead_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/internal/scheduled",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


@router.post("/lead-cleanup", response_model=LeadCleanupResponse)
def lead_cleanup(db: Session = Depends(get_db)):
    """
    Daily lead sweep.

    - Marks idle new/capturing leads as abandoned
    - Deletes unconverted leads past the retention window
    """
    abandoned = lead_service.expire_stale_leads(db)
    deleted = lead_service.cleanup_expired_leads(db)
    logger.info("Lead cleanup: abandoned=%s deleted=%s", abandoned, deleted)
    return LeadCleanupResponse(abandoned=abandoned, deleted=deleted)
