"""Rate limiting for public booking endpoints (slowapi)."""

import logging
import os

from slowapi import Limiter
from slowapi.util import get_remote_address

from bookingpro.core.config import settings
from bookingpro.core.redis_client import create_sync_redis_client, normalize_redis_url

logger = logging.getLogger(__name__)

IS_TESTING = os.getenv("TESTING", "").lower() in ("1", "true", "yes")
MEMORY_STORAGE = "memory://"


def _per_minute(value: int) -> str:
    return f"{max(value, 1)}/minute"


# Per-route limits, applied with @limiter.limit(...)
BOOKING_LIMIT = _per_minute(settings.RATE_LIMIT_BOOKING)
CAPTURE_LIMIT = _per_minute(settings.RATE_LIMIT_CAPTURE)


def _default_limits() -> list[str]:
    if IS_TESTING or settings.RATE_LIMIT_API <= 0:
        return []
    return [_per_minute(settings.RATE_LIMIT_API)]


def _storage_uri() -> str:
    """Redis when configured and reachable, so all workers share counters."""
    if IS_TESTING:
        return MEMORY_STORAGE
    redis_url = normalize_redis_url(settings.REDIS_URL)
    client = create_sync_redis_client(redis_url)
    if client is None:
        return MEMORY_STORAGE
    try:
        client.ping()
    except Exception as e:
        logger.warning(f"Redis unavailable for rate limiting, using in-memory: {e}")
        return MEMORY_STORAGE
    return redis_url


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=_storage_uri(),
    default_limits=_default_limits(),
    enabled=not IS_TESTING,
)
