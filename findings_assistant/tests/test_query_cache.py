# test_query_cache.py
"""Tests for the response cache and session tracking."""

from findings_assistant.services.query_cache import QueryCache, normalize_query
from findings_assistant.services.session_tracker import SessionTracker


class TestQueryCache:
    """TTL semantics with a controllable clock."""

    def test_normalize_query(self):
        assert normalize_query("  IT Findings 2025 ") == "it findings 2025"

    def test_hit_within_ttl(self, clock):
        cache = QueryCache(default_ttl=300, clock=clock)
        cache.put("IT findings 2025", "result")

        clock.advance(299)
        assert cache.get("it findings 2025  ") == "result"

    def test_expired_entry_is_a_miss(self, clock):
        cache = QueryCache(default_ttl=300, clock=clock)
        cache.put("IT findings 2025", "result")

        clock.advance(301)
        assert cache.get("IT findings 2025") is None
        assert cache.stats()["size"] == 0

    def test_per_entry_ttl(self, clock):
        cache = QueryCache(default_ttl=300, clock=clock)
        cache.put("short", "a", ttl=10)
        cache.put("long", "b")

        clock.advance(11)
        assert cache.get("short") is None
        assert cache.get("long") == "b"

    def test_sweep_on_write(self, clock):
        cache = QueryCache(default_ttl=5, clock=clock)
        cache.put("one", 1)
        cache.put("two", 2)
        clock.advance(6)

        cache.put("three", 3)
        assert cache.stats()["size"] == 1

    def test_sweep_returns_removed_count(self, clock):
        cache = QueryCache(default_ttl=5, clock=clock)
        cache.put("one", 1)
        clock.advance(6)
        assert cache.sweep() == 1

    def test_stats_and_clear(self, clock):
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.put("q", "r")
        cache.get("q")
        cache.get("missing")

        stats = cache.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == 0.5

        cache.clear()
        assert cache.stats()["size"] == 0


class TestSessionTracker:
    """Latest-query-wins correlation."""

    def test_latest_query_is_current(self):
        tracker = SessionTracker()
        first = tracker.begin("s1")
        second = tracker.begin("s1")

        assert not tracker.is_current("s1", first)
        assert tracker.is_current("s1", second)

    def test_sessions_are_independent(self):
        tracker = SessionTracker()
        mine = tracker.begin("s1")
        tracker.begin("s2")

        assert tracker.is_current("s1", mine)
        assert tracker.active_sessions() == 2

    def test_ended_session_makes_queries_stale(self):
        tracker = SessionTracker()
        query_id = tracker.begin("s1")
        tracker.end("s1")

        assert not tracker.is_current("s1", query_id)

    def test_anonymous_queries_never_stale(self):
        tracker = SessionTracker()
        query_id = tracker.begin(None)
        tracker.begin(None)

        assert tracker.is_current(None, query_id)

    def test_idle_sessions_are_forgotten(self, clock):
        tracker = SessionTracker(max_idle=3600, clock=clock)
        idle = tracker.begin("s1")
        clock.advance(3601)
        tracker.begin("s2")

        assert tracker.active_sessions() == 1
        assert not tracker.is_current("s1", idle)
