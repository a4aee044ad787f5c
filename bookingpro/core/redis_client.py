"""Redis client helpers with connection pooling."""

from __future__ import annotations

import os

REDIS_DISABLED_URL = "memory://"
DEFAULT_REDIS_MAX_CONNECTIONS = 20
DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS = 2.0
DEFAULT_REDIS_HEALTH_CHECK_SECONDS = 30


def normalize_redis_url(url: str | None) -> str | None:
    if not url or url.strip().lower() == REDIS_DISABLED_URL:
        return None
    return url.strip()


def _redis_max_connections() -> int:
    value = os.getenv("REDIS_MAX_CONNECTIONS", "").strip()
    if value.isdigit():
        parsed = int(value)
        if parsed > 0:
            return parsed
    return DEFAULT_REDIS_MAX_CONNECTIONS


def create_sync_redis_client(url: str | None):
    """Build a pooled sync client, or None when Redis is disabled."""
    url = normalize_redis_url(url)
    if not url:
        return None

    import redis

    pool = redis.ConnectionPool.from_url(
        url,
        max_connections=_redis_max_connections(),
        socket_connect_timeout=DEFAULT_REDIS_CONNECT_TIMEOUT_SECONDS,
        socket_timeout=DEFAULT_REDIS_SOCKET_TIMEOUT_SECONDS,
        health_check_interval=DEFAULT_REDIS_HEALTH_CHECK_SECONDS,
        retry_on_timeout=True,
    )
    return redis.Redis(connection_pool=pool)
