#!/usr/bin/env python
"""Tests for the GET response cache."""

from coursebag.api.cache import CacheEntry, ResponseCache


class TestResponseCache:
    """Test storing, expiring and invalidating cached responses."""

    def test_miss_on_empty_cache(self, clock):
        cache = ResponseCache(clock=clock)
        assert cache.get("/courses/1", False, 60) is None

    def test_hit_until_ttl(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("/profile", True, {"name": "Ada"})
        clock.advance(59)
        assert cache.get("/profile", True, 60) == {"name": "Ada"}
        clock.advance(1)
        assert cache.get("/profile", True, 60) is None

    def test_entries_are_keyed_by_auth_flag(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("/courses/1", False, {"public": True})
        assert cache.get("/courses/1", True, 60) is None
        assert ("/courses/1", False) in cache
        assert ("/courses/1", True) not in cache

    def test_invalidate_drops_both_variants(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("/courses/1", False, {})
        cache.put("/courses/1", True, {})
        cache.put("/courses/2", True, {})
        cache.invalidate("/courses/1")
        assert len(cache) == 1

    def test_clear(self, clock):
        cache = ResponseCache(clock=clock)
        cache.put("/a", False, {})
        cache.clear()
        assert len(cache) == 0

    def test_entry_age(self):
        assert CacheEntry(payload=None, timestamp=10.0).age(25.0) == 15.0
