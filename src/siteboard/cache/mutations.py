"""Write coordination: run a mutation once, then invalidate what it touched."""

import inspect
import logging
from typing import Any, Awaitable, Callable, Iterable

from ..api.errors import CustomError
from .query_cache import KeyMatcher, QueryCache

logger = logging.getLogger(__name__)

MutationFn = Callable[[], Awaitable[Any]]
ResultHook = Callable[[Any], Any]
ErrorHook = Callable[[CustomError], Any]


async def _call_hook(hook: Callable[[Any], Any], value: Any) -> None:
    outcome = hook(value)
    if inspect.isawaitable(outcome):
        await outcome


class MutationCoordinator:
    """Executes writes and keeps the query cache honest afterwards.

    Mutations are neither retried nor serialized. A failed mutation leaves
    the cache untouched; nothing speculative was written, so nothing needs
    rolling back.
    """

    def __init__(self, cache: QueryCache):
        self.cache = cache

    async def execute(
        self,
        mutation_fn: MutationFn,
        invalidates: Iterable[KeyMatcher] = (),
        on_result: ResultHook | None = None,
        on_error: ErrorHook | None = None,
    ) -> Any:
        """Run a mutation exactly once.

        Args:
            mutation_fn: Coroutine function performing the write
            invalidates: Keys (prefix match) or predicates to mark stale on success
            on_result: Called with the raw response after invalidation, e.g. to
                select a just-created item
            on_error: Called with the error before it is re-raised

        Returns:
            The mutation's response

        Raises:
            CustomError: If the mutation failed
        """
        try:
            result = await mutation_fn()
        except CustomError as e:
            logger.warning("Mutation failed: %s (errorCode=%s)", e, e.error_code)
            if on_error is not None:
                await _call_hook(on_error, e)
            raise

        for target in invalidates:
            self.cache.invalidate(target)

        if on_result is not None:
            await _call_hook(on_result, result)
        return result
