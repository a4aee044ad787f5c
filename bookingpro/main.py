"""FastAPI application entry point."""
import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.orm import Session

from bookingpro.core.config import settings
from bookingpro.core.dedup import DedupCache, build_dedup_cache
from bookingpro.core.deps import get_db
from bookingpro.services import conversion_service
from bookingpro.services.booking_events import EventBus

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,  # 10% of requests for performance monitoring
        send_default_pii=False,  # Customer contact data stays out of Sentry
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from bookingpro.core.rate_limit import limiter


def build_event_bus() -> EventBus:
    """Booking-created subscribers."""
    bus = EventBus(retries=settings.CONVERSION_TRACKING_RETRIES)
    bus.subscribe(conversion_service.handle_booking_created)
    return bus


def create_app(
    dedup_cache: DedupCache | None = None,
    event_bus: EventBus | None = None,
) -> FastAPI:
    """Build the API app with its app-scoped collaborators."""
    app = FastAPI(
        title="BookingPro API",
        description="Multi-company appointment booking and lead conversion API",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV == "dev" else None,
        redoc_url="/redoc" if settings.ENV == "dev" else None,
    )

    app.state.dedup_cache = dedup_cache or build_dedup_cache(settings.REDIS_URL)
    app.state.event_bus = event_bus or build_event_bus()

    # Add rate limiter
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS middleware - must be added before routers
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With"],
    )

    # ========================================================================
    # Routers
    # ========================================================================

    from bookingpro.routers import availability, bookings, conversions, internal, leads

    app.include_router(availability.router)
    app.include_router(bookings.router)
    app.include_router(leads.router)
    app.include_router(conversions.router)

    # Internal endpoints (scheduled/cron jobs - protected by INTERNAL_SECRET)
    app.include_router(internal.router)

    # ========================================================================
    # Health Check
    # ========================================================================

    @app.get("/health")
    def health(db: Session = Depends(get_db)):
        """
        Health check endpoint.

        Verifies database connectivity and returns environment info.
        """
        db.execute(text("SELECT 1"))
        return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}

    return app


app = create_app()
