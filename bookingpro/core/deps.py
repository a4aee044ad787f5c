"""FastAPI dependencies for database access and app-scoped collaborators."""

from typing import Generator

from fastapi import Header, HTTPException, Request
from sqlalchemy.orm import Session

from bookingpro.core.config import settings
from bookingpro.core.dedup import DedupCache
from bookingpro.db.session import SessionLocal
from bookingpro.services.booking_events import EventBus


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_dedup_cache(request: Request) -> DedupCache:
    """Duplicate-request marker store built in create_app."""
    return request.app.state.dedup_cache


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def verify_internal_secret(x_internal_secret: str = Header(...)) -> None:
    """Verify the internal secret header."""
    expected = settings.INTERNAL_SECRET
    if not expected:
        raise HTTPException(status_code=501, detail="INTERNAL_SECRET not configured")
    if x_internal_secret != expected:
        raise HTTPException(status_code=403, detail="Invalid internal secret")
