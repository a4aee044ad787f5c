"""Conversions router - funnel reporting."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bookingpro.core.deps import get_db
from bookingpro.schemas.conversion import ConversionMetricRead, ConversionStatsRead
from bookingpro.services import conversion_service

router = APIRouter(prefix="/conversions", tags=["conversions"])


@router.get("/stats", response_model=ConversionStatsRead)
def get_conversion_stats(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    """Lead-to-booking conversion rate over the last N days."""
    stats = conversion_service.get_conversion_stats(db, days)
    return ConversionStatsRead(**stats._asdict())


@router.get("/metrics", response_model=list[ConversionMetricRead])
def list_conversion_metrics(
    limit: int = Query(50, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return conversion_service.list_recent_metrics(db, limit)
