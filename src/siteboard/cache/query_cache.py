"""Keyed query cache with in-flight deduplication and invalidation."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Hashable

logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[Any]]
Listener = Callable[[Any], None]


@dataclass(frozen=True)
class QueryKey:
    """Identity of a cached resource: (type, workspace, ordered filters).

    Filters are kept as an ordered tuple of ``(name, value)`` pairs, so two
    keys are equal only if every component is equal.
    """

    resource: str
    workspace_id: str | None = None
    params: tuple[tuple[str, Hashable], ...] = ()

    @classmethod
    def of(
        cls, resource: str, workspace_id: str | None = None, **params: Hashable
    ) -> "QueryKey":
        """Build a key; keyword order is the filter order."""
        return cls(resource, workspace_id, tuple(params.items()))

    def is_prefix_of(self, other: "QueryKey") -> bool:
        """True if ``other`` has this key's type and workspace and starts with its filters."""
        return (
            self.resource == other.resource
            and self.workspace_id == other.workspace_id
            and other.params[: len(self.params)] == self.params
        )

    def __str__(self) -> str:
        parts = [self.resource, str(self.workspace_id)]
        parts.extend(f"{name}={value}" for name, value in self.params)
        return "/".join(parts)


KeyMatcher = QueryKey | Callable[[QueryKey], bool]


@dataclass
class CacheEntry:
    """Cached snapshot for one key."""

    key: QueryKey
    data: Any = None
    has_data: bool = False
    is_stale: bool = False
    updated_at: float | None = None
    error: Exception | None = None
    in_flight: asyncio.Task | None = field(default=None, repr=False)
    invalidated_in_flight: bool = False

    @property
    def is_fresh(self) -> bool:
        return self.has_data and not self.is_stale


class Subscription:
    """A view's interest in a key. Dropping it stops delivery, not the fetch."""

    def __init__(self, cache: "QueryCache", key: QueryKey, listener: Listener):
        self._cache = cache
        self.key = key
        self.listener = listener
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._cache._drop_subscription(self)


class QueryCache:
    """Cache of fetched collections, one independent entry per key.

    At most one fetch per key is in flight; concurrent resolutions share it.
    A successful fetch replaces the entry wholesale. Invalidation marks
    entries stale: they refetch on the next resolve, or straight away when a
    view is subscribed to them.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize the cache.

        Args:
            clock: Source of ``updated_at`` timestamps
        """
        self.clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}
        self._subscriptions: dict[QueryKey, list[Subscription]] = {}
        self._fetchers: dict[QueryKey, Fetcher] = {}
        self._background: set[asyncio.Task] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list[QueryKey]:
        return list(self._entries)

    def get_entry(self, key: QueryKey) -> CacheEntry | None:
        return self._entries.get(key)

    def peek(self, key: QueryKey) -> Any:
        """Return the cached snapshot for a key without fetching (None if absent)."""
        entry = self._entries.get(key)
        if entry is None or not entry.has_data:
            return None
        return entry.data

    async def resolve(self, key: QueryKey, fetcher: Fetcher, enabled: bool = True) -> Any:
        """Return the snapshot for a key, fetching it if absent or stale.

        Args:
            key: Resource key
            fetcher: Coroutine function producing the snapshot
            enabled: When False nothing is fetched and None is returned

        Raises:
            CustomError: Whatever the fetch raised; the previous snapshot, if
                any, stays in place.
        """
        if not enabled:
            return None

        entry = self._entries.get(key)
        if entry is not None and entry.in_flight is None and entry.is_fresh:
            return entry.data

        # Shielded so a cancelled caller never aborts the shared fetch.
        return await asyncio.shield(self._start_fetch(key, fetcher))

    def _start_fetch(self, key: QueryKey, fetcher: Fetcher) -> asyncio.Task:
        entry = self._entries.get(key)
        if entry is None:
            entry = CacheEntry(key)
            self._entries[key] = entry
        if entry.in_flight is None:
            entry.invalidated_in_flight = False
            entry.in_flight = asyncio.ensure_future(self._run_fetch(entry, fetcher))
        return entry.in_flight

    async def _run_fetch(self, entry: CacheEntry, fetcher: Fetcher) -> Any:
        key = entry.key
        logger.debug("Fetching %s", key)
        try:
            data = await fetcher()
        except Exception as exc:
            entry.error = exc
            logger.debug("Fetch failed for %s: %r", key, exc)
            raise
        finally:
            entry.in_flight = None

        if self._entries.get(key) is not entry:
            logger.debug("Discarding late result for removed key %s", key)
            return data

        fresh = CacheEntry(
            key,
            data=data,
            has_data=True,
            is_stale=entry.invalidated_in_flight,
            updated_at=self.clock(),
        )
        self._entries[key] = fresh
        self._notify(key, data)
        if fresh.is_stale and self._subscriptions.get(key):
            self._schedule_refetch(key)
        return data

    def invalidate(self, target: KeyMatcher) -> list[QueryKey]:
        """Mark matching entries stale.

        Args:
            target: A key (matching itself and every key it is a prefix of)
                or a predicate over keys

        Returns:
            The keys that were marked stale
        """
        matched = [key for key in self._entries if self._matches(target, key)]
        for key in matched:
            entry = self._entries[key]
            entry.is_stale = True
            if entry.in_flight is not None:
                entry.invalidated_in_flight = True
            elif self._subscriptions.get(key):
                self._schedule_refetch(key)
        logger.debug("Invalidated %d entr%s for %s", len(matched), "y" if len(matched) == 1 else "ies", target)
        return matched

    def remove(self, target: KeyMatcher) -> list[QueryKey]:
        """Drop matching entries. Fetches already in flight finish but are discarded."""
        matched = [key for key in self._entries if self._matches(target, key)]
        for key in matched:
            del self._entries[key]
        return matched

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def subscribe(self, key: QueryKey, fetcher: Fetcher, listener: Listener) -> Subscription:
        """Register a view's listener for a key.

        The listener receives each new snapshot. While at least one
        subscription is active, invalidating the key refetches it eagerly
        with ``fetcher``.
        """
        subscription = Subscription(self, key, listener)
        self._subscriptions.setdefault(key, []).append(subscription)
        self._fetchers[key] = fetcher
        return subscription

    def _drop_subscription(self, subscription: Subscription) -> None:
        subscriptions = self._subscriptions.get(subscription.key, [])
        if subscription in subscriptions:
            subscriptions.remove(subscription)
        if not subscriptions:
            self._subscriptions.pop(subscription.key, None)
            self._fetchers.pop(subscription.key, None)

    def _notify(self, key: QueryKey, data: Any) -> None:
        for subscription in list(self._subscriptions.get(key, [])):
            if subscription.active:
                subscription.listener(data)

    def _schedule_refetch(self, key: QueryKey) -> None:
        fetcher = self._fetchers.get(key)
        if fetcher is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop to run on; the entry refetches on its next resolve.
            return
        task = self._start_fetch(key, fetcher)
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("Background refetch failed: %s", exc)

    async def drain(self) -> None:
        """Wait for every eager refetch scheduled so far to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    @staticmethod
    def _matches(target: KeyMatcher, key: QueryKey) -> bool:
        if isinstance(target, QueryKey):
            return target.is_prefix_of(key)
        return bool(target(key))
