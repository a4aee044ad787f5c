"""
Test configuration and fixtures.

Provides:
- SQLite database per test (schema created from the ORM metadata)
- Company and date fixtures
- HTTPX AsyncClient over a freshly built app with get_db overridden
"""
import os
from datetime import date, time, timedelta
from typing import AsyncGenerator, Generator

# Must be set before bookingpro modules read settings
os.environ["TESTING"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["REDIS_URL"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

from bookingpro.core.dedup import MemoryDedupCache
from bookingpro.core.deps import get_db
from bookingpro.db.base import Base
from bookingpro.db.models import Company
from bookingpro.db.session import build_engine
from bookingpro.main import build_event_bus, create_app
from bookingpro.services import company_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def session_factory(tmp_path) -> Generator[sessionmaker, None, None]:
    """Session factory bound to a throwaway SQLite file."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture(scope="function")
def db(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    yield session
    session.close()


# =============================================================================
# Domain Fixtures
# =============================================================================

def _next_isoweekday(weekday: int, min_days_ahead: int = 7) -> date:
    day = date.today() + timedelta(days=min_days_ahead)
    while day.isoweekday() != weekday:
        day += timedelta(days=1)
    return day


@pytest.fixture
def monday() -> date:
    """A Monday at least a week in the future."""
    return _next_isoweekday(1)


@pytest.fixture
def saturday() -> date:
    return _next_isoweekday(6)


@pytest.fixture
def company(db: Session) -> Company:
    """Mon-Fri 09:00-17:00, 30 minute slots."""
    return company_service.create_company(
        db,
        name="Acme Roofing",
        phone="555-0100",
        available_days=[1, 2, 3, 4, 5],
        available_hours_start=time(9, 0),
        available_hours_end=time(17, 0),
        time_slot_duration=30,
    )


@pytest.fixture
def second_company(db: Session) -> Company:
    return company_service.create_company(
        db,
        name="Summit Windows",
        available_days=[1, 3, 5],
        available_hours_start=time(8, 0),
        available_hours_end=time(12, 0),
        time_slot_duration=60,
    )


@pytest.fixture
def dedup() -> MemoryDedupCache:
    return MemoryDedupCache()


@pytest.fixture
def booking_form(company: Company, monday: date) -> dict:
    """A complete, valid single-company submission."""
    return {
        "service": "Roof",
        "full_name": "Jane Doe",
        "email": "jane@example.com",
        "phone": "(555) 123-4567",
        "address": "1 Main St",
        "zip_code": "90210",
        "city": "Beverly Hills",
        "state": "CA",
        "company": company.name,
        "selected_date": monday.isoformat(),
        "selected_time": "10:00",
        "roof_action": "Replace",
        "roof_material": "Asphalt",
        "utm_source": "google",
        "utm_medium": "cpc",
        "utm_campaign": "spring",
    }


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session, dedup: MemoryDedupCache) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient for the public API, sharing the test session."""
    app = create_app(dedup_cache=dedup, event_bus=build_event_bus())

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
