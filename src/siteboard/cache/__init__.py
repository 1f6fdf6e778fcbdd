"""Query cache and mutation coordination."""

from .query_cache import CacheEntry, QueryCache, QueryKey, Subscription
from .mutations import MutationCoordinator

__all__ = [
    "CacheEntry",
    "QueryCache",
    "QueryKey",
    "Subscription",
    "MutationCoordinator",
]
