"""Short-lived request markers used to suppress duplicate submissions.

Markers are best effort: a race between two near-simultaneous requests may
let both through. Slot reservation never relies on them.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

KEY_PREFIX = "bsp"


def marker_key(action: str, session_id: str) -> str:
    return f"{KEY_PREFIX}:{action}:{session_id}"


class DedupCache(Protocol):
    def add(self, key: str, ttl_seconds: int) -> bool:
        """Set key if absent. Returns True when the key was newly set."""

    def clear(self, key: str) -> None:
        ...


class MemoryDedupCache:
    """In-process TTL marker store (single worker / tests)."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires: dict[str, float] = {}
        self._lock = threading.Lock()

    def add(self, key: str, ttl_seconds: int) -> bool:
        now = self._clock()
        with self._lock:
            expires_at = self._expires.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._expires[key] = now + ttl_seconds
            if len(self._expires) > 10_000:
                self._purge(now)
            return True

    def clear(self, key: str) -> None:
        with self._lock:
            self._expires.pop(key, None)

    def _purge(self, now: float) -> None:
        for key in [k for k, exp in self._expires.items() if exp <= now]:
            del self._expires[key]


class RedisDedupCache:
    """Redis-backed markers shared by all workers (SET NX EX)."""

    def __init__(self, client):
        self._client = client

    def add(self, key: str, ttl_seconds: int) -> bool:
        return bool(self._client.set(key, "1", nx=True, ex=max(1, ttl_seconds)))

    def clear(self, key: str) -> None:
        self._client.delete(key)


def build_dedup_cache(redis_url: str | None) -> DedupCache:
    """Pick the Redis store when configured and reachable, else in-memory."""
    from bookingpro.core.redis_client import create_sync_redis_client

    client = create_sync_redis_client(redis_url)
    if client is None:
        return MemoryDedupCache()
    try:
        client.ping()
    except Exception as e:
        logger.warning(f"Redis unavailable for dedup markers, using in-memory: {e}")
        return MemoryDedupCache()
    return RedisDedupCache(client)
