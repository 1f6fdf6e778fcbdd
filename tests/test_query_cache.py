"""Tests for the query cache."""

import asyncio

import pytest

from siteboard.api import RequestError
from siteboard.cache import QueryCache, QueryKey


class CountingFetcher:
    """Fetcher returning queued results, optionally held until a gate opens."""

    def __init__(self, *results, gate: asyncio.Event | None = None):
        self.results = list(results)
        self.calls = 0
        self.gate = gate

    async def __call__(self):
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        result = self.results[min(self.calls, len(self.results)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache(clock=lambda: 100.0)


@pytest.fixture
def key() -> QueryKey:
    return QueryKey.of("allTasks", "ws1")


class TestQueryKey:
    """Tests for QueryKey identity and prefix matching."""

    def test_equal_keys(self):
        """Test that keys with equal components are equal."""
        assert QueryKey.of("expenses", "ws1", month=3, year=2025) == QueryKey.of(
            "expenses", "ws1", month=3, year=2025
        )

    def test_distinct_filters_never_collide(self):
        """Test that different filter values give different keys."""
        a = QueryKey.of("expenses", "ws1", month=3, year=2025)
        b = QueryKey.of("expenses", "ws1", month=2025, year=3)
        c = QueryKey.of("expenses", "ws2", month=3, year=2025)

        assert len({a, b, c}) == 3

    def test_prefix(self):
        """Test prefix matching on type, workspace and leading filters."""
        prefix = QueryKey.of("expenses", "ws1")

        assert prefix.is_prefix_of(QueryKey.of("expenses", "ws1", month=3, year=2025))
        assert prefix.is_prefix_of(prefix)
        assert not prefix.is_prefix_of(QueryKey.of("expenses", "ws2", month=3))
        assert not prefix.is_prefix_of(QueryKey.of("expenses-analytics", "ws1"))
        assert not QueryKey.of("expenses", "ws1", month=3).is_prefix_of(prefix)

    def test_str(self):
        """Test the readable form used in logs."""
        assert str(QueryKey.of("expenses", "ws1", month=3)) == "expenses/ws1/month=3"


class TestResolve:
    """Tests for QueryCache.resolve."""

    @pytest.mark.asyncio
    async def test_first_resolve_fetches(self, cache, key):
        """Test that a missing entry is fetched and stored."""
        fetcher = CountingFetcher(["a"])

        data = await cache.resolve(key, fetcher)

        assert data == ["a"]
        assert fetcher.calls == 1
        entry = cache.get_entry(key)
        assert entry.is_fresh
        assert entry.updated_at == 100.0

    @pytest.mark.asyncio
    async def test_fresh_entry_served_from_cache(self, cache, key):
        """Test that a fresh entry is not refetched."""
        fetcher = CountingFetcher(["a"], ["b"])

        await cache.resolve(key, fetcher)
        data = await cache.resolve(key, fetcher)

        assert data == ["a"]
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_disabled_does_not_fetch(self, cache, key):
        """Test that a disabled query issues no fetch and leaves no entry."""
        fetcher = CountingFetcher(["a"])

        data = await cache.resolve(key, fetcher, enabled=False)

        assert data is None
        assert fetcher.calls == 0
        assert cache.get_entry(key) is None

    @pytest.mark.asyncio
    async def test_concurrent_resolves_share_fetch(self, cache, key):
        """Test that identical keys in flight share a single fetch."""
        gate = asyncio.Event()
        fetcher = CountingFetcher(["a"], gate=gate)

        first = asyncio.create_task(cache.resolve(key, fetcher))
        second = asyncio.create_task(cache.resolve(key, fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert fetcher.calls == 1

        gate.set()
        results = await asyncio.gather(first, second)

        assert results == [["a"], ["a"]]
        assert fetcher.calls == 1

    @pytest.mark.asyncio
    async def test_distinct_keys_fetch_independently(self, cache):
        """Test that different keys do not share fetches."""
        first = CountingFetcher(["march"])
        second = CountingFetcher(["april"])

        results = await asyncio.gather(
            cache.resolve(QueryKey.of("expenses", "ws1", month=3), first),
            cache.resolve(QueryKey.of("expenses", "ws1", month=4), second),
        )

        assert results == [["march"], ["april"]]
        assert first.calls == 1
        assert second.calls == 1

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_snapshot(self, cache, key):
        """Test that a failed refetch leaves the old snapshot in place."""
        error = RequestError("nope", error_code="BAD")
        fetcher = CountingFetcher(["a"], error)

        await cache.resolve(key, fetcher)
        cache.invalidate(key)
        with pytest.raises(RequestError):
            await cache.resolve(key, fetcher)

        assert cache.peek(key) == ["a"]
        assert cache.get_entry(key).error is error
        assert cache.get_entry(key).in_flight is None

    @pytest.mark.asyncio
    async def test_failure_then_success(self, cache, key):
        """Test that a failed first fetch is retried on the next resolve."""
        fetcher = CountingFetcher(RequestError("nope"), ["a"])

        with pytest.raises(RequestError):
            await cache.resolve(key, fetcher)
        data = await cache.resolve(key, fetcher)

        assert data == ["a"]
        assert fetcher.calls == 2

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_abort_fetch(self, cache, key):
        """Test that tearing down a caller leaves the fetch running."""
        gate = asyncio.Event()
        fetcher = CountingFetcher(["a"], gate=gate)

        caller = asyncio.create_task(cache.resolve(key, fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        gate.set()
        data = await cache.resolve(key, fetcher)

        assert data == ["a"]
        assert fetcher.calls == 1


class TestInvalidate:
    """Tests for invalidation."""

    @pytest.mark.asyncio
    async def test_invalidate_then_resolve_refetches_once(self, cache, key):
        """Test that an invalidated entry is replaced by exactly one new fetch."""
        fetcher = CountingFetcher(["old"], ["new"])
        await cache.resolve(key, fetcher)

        cache.invalidate(key)
        assert cache.get_entry(key).is_stale
        assert fetcher.calls == 1

        data = await cache.resolve(key, fetcher)
        again = await cache.resolve(key, fetcher)

        assert data == ["new"]
        assert again == ["new"]
        assert fetcher.calls == 2
        assert cache.get_entry(key).is_fresh

    @pytest.mark.asyncio
    async def test_prefix_invalidation(self, cache):
        """Test that a short key invalidates every longer key under it."""
        march = QueryKey.of("expenses", "ws1", month=3, year=2025)
        april = QueryKey.of("expenses", "ws1", month=4, year=2025)
        other = QueryKey.of("expenses", "ws2", month=3, year=2025)
        for k in (march, april, other):
            await cache.resolve(k, CountingFetcher([]))

        matched = cache.invalidate(QueryKey.of("expenses", "ws1"))

        assert set(matched) == {march, april}
        assert cache.get_entry(other).is_fresh

    @pytest.mark.asyncio
    async def test_predicate_invalidation(self, cache):
        """Test invalidation with a predicate over keys."""
        tasks = QueryKey.of("allTasks", "ws1")
        rooms = QueryKey.of("chat-rooms", "ws1")
        await cache.resolve(tasks, CountingFetcher([]))
        await cache.resolve(rooms, CountingFetcher([]))

        matched = cache.invalidate(lambda k: k.resource.startswith("chat"))

        assert matched == [rooms]
        assert cache.get_entry(tasks).is_fresh

    @pytest.mark.asyncio
    async def test_invalidate_during_fetch_leaves_entry_stale(self, cache, key):
        """Test that a result fetched before an invalidation is not trusted."""
        gate = asyncio.Event()
        fetcher = CountingFetcher(["before"], ["after"], gate=gate)

        pending = asyncio.create_task(cache.resolve(key, fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        cache.invalidate(key)
        gate.set()
        assert await pending == ["before"]

        assert cache.get_entry(key).is_stale
        assert await cache.resolve(key, fetcher) == ["after"]

    @pytest.mark.asyncio
    async def test_remove_discards_late_result(self, cache, key):
        """Test that a removed entry is not resurrected by its in-flight fetch."""
        gate = asyncio.Event()
        fetcher = CountingFetcher(["late"], gate=gate)

        pending = asyncio.create_task(cache.resolve(key, fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        cache.remove(key)
        gate.set()
        await pending

        assert cache.get_entry(key) is None

    @pytest.mark.asyncio
    async def test_clear(self, cache, key):
        """Test dropping every entry."""
        await cache.resolve(key, CountingFetcher([]))

        cache.clear()

        assert len(cache) == 0
        assert cache.peek(key) is None


class TestSubscriptions:
    """Tests for subscriptions and eager refetch."""

    @pytest.mark.asyncio
    async def test_subscribers_notified(self, cache, key):
        """Test that a new snapshot reaches subscribers."""
        received = []
        fetcher = CountingFetcher(["a"])
        cache.subscribe(key, fetcher, received.append)

        await cache.resolve(key, fetcher)

        assert received == [["a"]]

    @pytest.mark.asyncio
    async def test_subscribed_entry_refetches_eagerly(self, cache, key):
        """Test that invalidating a watched key refetches without a resolve."""
        received = []
        fetcher = CountingFetcher(["a"], ["b"])
        cache.subscribe(key, fetcher, received.append)
        await cache.resolve(key, fetcher)

        cache.invalidate(key)
        await cache.drain()

        assert fetcher.calls == 2
        assert received == [["a"], ["b"]]
        assert cache.peek(key) == ["b"]
        assert cache.get_entry(key).is_fresh

    @pytest.mark.asyncio
    async def test_unsubscribed_entry_refetches_lazily(self, cache, key):
        """Test that without subscribers invalidation waits for the next resolve."""
        received = []
        fetcher = CountingFetcher(["a"], ["b"])
        subscription = cache.subscribe(key, fetcher, received.append)
        await cache.resolve(key, fetcher)

        subscription.unsubscribe()
        cache.invalidate(key)
        await cache.drain()

        assert fetcher.calls == 1
        await cache.resolve(key, fetcher)
        assert fetcher.calls == 2
        assert received == [["a"]]

    @pytest.mark.asyncio
    async def test_late_result_not_delivered_after_unsubscribe(self, cache, key):
        """Test that a torn-down view does not receive a result still in flight."""
        gate = asyncio.Event()
        received = []
        fetcher = CountingFetcher(["a"], gate=gate)
        subscription = cache.subscribe(key, fetcher, received.append)

        pending = asyncio.create_task(cache.resolve(key, fetcher))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        subscription.unsubscribe()
        gate.set()
        await pending

        assert received == []
        assert cache.peek(key) == ["a"]

    @pytest.mark.asyncio
    async def test_background_failure_is_logged(self, cache, key, caplog):
        """Test that a failed eager refetch is reported, not raised."""
        fetcher = CountingFetcher(["a"], RequestError("gone", error_code="GONE"))
        cache.subscribe(key, fetcher, lambda data: None)
        await cache.resolve(key, fetcher)

        cache.invalidate(key)
        await cache.drain()

        assert "Background refetch failed" in caplog.text
        assert cache.peek(key) == ["a"]
