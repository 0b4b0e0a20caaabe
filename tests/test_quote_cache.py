"""
Tests for the QuoteCache.

A manual clock drives expiry so no test sleeps.
"""

import threading

import pytest

from app.infrastructure.portfolio.quote_cache import QuoteCache, make_cache_key


class ManualClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class CountingFetch:
    def __init__(self, value="payload") -> None:
        self.value = value
        self.calls = 0

    def __call__(self):
        self.calls += 1
        return self.value


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


class TestCacheKey:
    """Tests for request signatures."""

    def test_parameter_order_does_not_matter(self) -> None:
        """Keys are built from canonical JSON."""
        assert make_cache_key("/x", {"a": 1, "b": 2}) == make_cache_key("/x", {"b": 2, "a": 1})

    def test_endpoint_and_params_both_count(self) -> None:
        """Different endpoints or parameters give different keys."""
        assert make_cache_key("/x", {"a": 1}) != make_cache_key("/y", {"a": 1})
        assert make_cache_key("/x", {"a": 1}) != make_cache_key("/x", {"a": 2})


class TestTtl:
    """Tests for time-to-live semantics."""

    def test_identical_lookups_within_ttl_fetch_once(self, clock) -> None:
        """Two lookups inside the window reach the upstream exactly once."""
        cache = QuoteCache(ttl_seconds=60, clock=clock)
        fetch = CountingFetch()

        assert cache.get_or_fetch("k", fetch) == "payload"
        clock.advance(59.9)
        assert cache.get_or_fetch("k", fetch) == "payload"
        assert fetch.calls == 1

    def test_lookup_after_expiry_fetches_again(self, clock) -> None:
        """Once the TTL has elapsed the upstream is called again."""
        cache = QuoteCache(ttl_seconds=60, clock=clock)
        fetch = CountingFetch()

        cache.get_or_fetch("k", fetch)
        clock.advance(60)
        cache.get_or_fetch("k", fetch)
        assert fetch.calls == 2

    def test_expired_entry_is_a_miss_but_stays_resident(self, clock) -> None:
        """Expired entries are not returned, but are only purged under pressure."""
        cache = QuoteCache(ttl_seconds=10, clock=clock)
        cache.put("k", 1)
        clock.advance(10)

        assert cache.get("k") is None
        assert len(cache) == 1

    def test_put_overwrites_and_restamps(self, clock) -> None:
        """A put replaces the value and restarts its TTL."""
        cache = QuoteCache(ttl_seconds=10, clock=clock)
        cache.put("k", 1)
        clock.advance(8)
        cache.put("k", 2)
        clock.advance(8)
        assert cache.get("k") == 2

    def test_fetch_error_propagates_and_caches_nothing(self, clock) -> None:
        """A failing fetch raises to the caller and leaves no entry."""
        cache = QuoteCache(clock=clock)

        def boom():
            raise RuntimeError("upstream down")

        with pytest.raises(RuntimeError):
            cache.get_or_fetch("k", boom)
        assert cache.get("k") is None
        assert cache.get_or_fetch("k", CountingFetch("ok")) == "ok"


class TestEviction:
    """Tests for capacity-bounded eviction."""

    def test_oldest_entry_evicted_at_capacity(self, clock) -> None:
        """The oldest entry goes first when no entry has expired."""
        cache = QuoteCache(ttl_seconds=60, max_entries=2, clock=clock)
        cache.put("a", 1)
        clock.advance(1)
        cache.put("b", 2)
        clock.advance(1)
        cache.put("c", 3)

        assert len(cache) == 2
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_expired_entries_evicted_first(self, clock) -> None:
        """Expired entries are purged before live ones."""
        cache = QuoteCache(ttl_seconds=10, max_entries=2, clock=clock)
        cache.put("old", 1)
        clock.advance(5)
        cache.put("live", 2)
        clock.advance(6)
        cache.put("new", 3)

        assert len(cache) == 2
        assert cache.get("live") == 2
        assert cache.get("new") == 3

    def test_invalid_capacity_rejected(self) -> None:
        """A cache must hold at least one entry."""
        with pytest.raises(ValueError):
            QuoteCache(max_entries=0)

    def test_failed_fetches_do_not_accumulate_locks(self, clock) -> None:
        """Keys whose fetch raised leave no per-key lock behind."""
        cache = QuoteCache(ttl_seconds=60, max_entries=2, clock=clock)

        def boom():
            raise RuntimeError("upstream down")

        for index in range(100):
            with pytest.raises(RuntimeError):
                cache.get_or_fetch(f"k{index}", boom)

        assert len(cache) == 0
        assert cache._key_locks == {}

    def test_clear(self, clock) -> None:
        """clear drops every entry."""
        cache = QuoteCache(clock=clock)
        cache.put("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestConcurrency:
    """Tests for per-key serialization."""

    def test_concurrent_identical_lookups_fetch_once(self) -> None:
        """Threads racing on one key share a single upstream call."""
        cache = QuoteCache(ttl_seconds=60)
        started = threading.Event()
        release = threading.Event()
        calls = []

        def slow_fetch():
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return "value"

        results = []
        threads = [
            threading.Thread(target=lambda: results.append(cache.get_or_fetch("k", slow_fetch)))
            for _ in range(4)
        ]
        threads[0].start()
        started.wait(timeout=5)
        for thread in threads[1:]:
            thread.start()
        release.set()
        for thread in threads:
            thread.join(timeout=5)

        assert len(calls) == 1
        assert results == ["value"] * 4
