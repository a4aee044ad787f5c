"""Tests for duplicate request markers."""

from bookingpro.core.dedup import MemoryDedupCache, marker_key
from bookingpro.services.lead_service import is_duplicate_request


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class BrokenCache:
    def add(self, key, ttl_seconds):
        raise ConnectionError("redis down")

    def clear(self, key):
        raise ConnectionError("redis down")


class TestMemoryDedupCache:

    def test_marker_expires(self):
        clock = FakeClock()
        cache = MemoryDedupCache(clock=clock)

        assert cache.add("k", 5) is True
        assert cache.add("k", 5) is False
        clock.now += 5
        assert cache.add("k", 5) is True

    def test_clear(self):
        cache = MemoryDedupCache()
        cache.add("k", 60)
        cache.clear("k")
        assert cache.add("k", 60) is True

    def test_key_format(self):
        assert marker_key("submit", "abc") == "bsp:submit:abc"


class TestIsDuplicateRequest:

    def test_first_seen_then_duplicate(self):
        cache = MemoryDedupCache()
        assert is_duplicate_request(cache, "sess", "submit", 5) is False
        assert is_duplicate_request(cache, "sess", "submit", 5) is True

    def test_actions_and_sessions_are_independent(self):
        cache = MemoryDedupCache()
        is_duplicate_request(cache, "sess", "submit", 5)
        assert is_duplicate_request(cache, "sess", "capture", 5) is False
        assert is_duplicate_request(cache, "other", "submit", 5) is False

    def test_no_session_never_duplicate(self):
        cache = MemoryDedupCache()
        assert is_duplicate_request(cache, None, "submit", 5) is False
        assert is_duplicate_request(cache, None, "submit", 5) is False

    def test_cache_failure_allows_request(self):
        assert is_duplicate_request(BrokenCache(), "sess", "submit", 5) is False
