"""Tests for the mutation coordinator."""

import pytest

from siteboard.api import RequestError
from siteboard.cache import MutationCoordinator, QueryCache, QueryKey


async def load_nothing():
    return []


@pytest.fixture
def cache() -> QueryCache:
    return QueryCache()


class TestMutationCoordinator:
    """Tests for MutationCoordinator.execute."""

    @pytest.mark.asyncio
    async def test_success_invalidates_targets(self, cache):
        """Test that a successful write marks every target stale."""
        march = QueryKey.of("expenses", "ws1", month=3, year=2025)
        analytics = QueryKey.of("expenses-analytics", "ws1")
        rooms = QueryKey.of("chat-rooms", "ws1")
        for key in (march, analytics, rooms):
            await cache.resolve(key, load_nothing)

        async def write():
            return {"expense": {"_id": "e1"}}

        result = await MutationCoordinator(cache).execute(
            write,
            invalidates=[QueryKey.of("expenses", "ws1"), analytics],
        )

        assert result == {"expense": {"_id": "e1"}}
        assert cache.get_entry(march).is_stale
        assert cache.get_entry(analytics).is_stale
        assert cache.get_entry(rooms).is_fresh

    @pytest.mark.asyncio
    async def test_failure_leaves_cache_untouched(self, cache):
        """Test that a failed write invalidates nothing and re-raises."""
        key = QueryKey.of("expenses", "ws1")
        await cache.resolve(key, load_nothing)
        errors = []

        async def write():
            raise RequestError("Invalid amount", error_code="INVALID_AMOUNT", status=400)

        with pytest.raises(RequestError) as exc_info:
            await MutationCoordinator(cache).execute(
                write, invalidates=[key], on_error=errors.append
            )

        assert exc_info.value.error_code == "INVALID_AMOUNT"
        assert errors == [exc_info.value]
        assert cache.get_entry(key).is_fresh

    @pytest.mark.asyncio
    async def test_mutation_runs_once(self, cache):
        """Test that a failed write is not retried."""
        calls = []

        async def write():
            calls.append(1)
            raise RequestError("boom")

        with pytest.raises(RequestError):
            await MutationCoordinator(cache).execute(write)

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_on_result_sees_invalidated_cache(self, cache):
        """Test that on_result runs after invalidation with the raw response."""
        key = QueryKey.of("chat-rooms", "ws1")
        await cache.resolve(key, load_nothing)
        seen = []

        async def write():
            return {"chatRoom": {"_id": "r9"}}

        def on_result(result):
            seen.append((result, cache.get_entry(key).is_stale))

        await MutationCoordinator(cache).execute(
            write, invalidates=[key], on_result=on_result
        )

        assert seen == [({"chatRoom": {"_id": "r9"}}, True)]

    @pytest.mark.asyncio
    async def test_async_hooks_are_awaited(self, cache):
        """Test that coroutine hooks are awaited."""
        seen = []

        async def write():
            return "ok"

        async def on_result(result):
            seen.append(result)

        await MutationCoordinator(cache).execute(write, on_result=on_result)

        assert seen == ["ok"]
