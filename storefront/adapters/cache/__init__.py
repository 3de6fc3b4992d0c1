"""Cache adapters.

The storefront starts with a per-process in-memory TTL cache; the abstract
interface keeps room for a shared store later.
"""

from storefront.adapters.cache.base import AbstractCache
from storefront.adapters.cache.in_memory import CacheEntry, InMemoryTTLCache

__all__ = [
    "AbstractCache",
    "CacheEntry",
    "InMemoryTTLCache",
]
