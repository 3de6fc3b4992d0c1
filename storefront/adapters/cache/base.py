"""Cache interfaces.

Callers depend on this abstraction rather than the in-memory implementation
so the backing store can change without touching cart/catalog code.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from storefront.schemas.cache import CacheStats


class AbstractCache(ABC):
    """Interface for TTL key/value caches.

    Lookups never update the hit/miss counters; callers report the outcome of
    their own lookups through ``record_hit``/``record_miss``.
    """

    @abstractmethod
    def set(self, key: str, value: Any, ttl_ms: float | None = None) -> None:
        """Insert or overwrite ``key``; ``ttl_ms=None`` uses the cache default."""
        raise NotImplementedError

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the live value for ``key`` or None."""
        raise NotImplementedError

    @abstractmethod
    def has(self, key: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove ``key``; return whether it was present."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def size(self) -> int:
        raise NotImplementedError

    @abstractmethod
    def keys(self) -> list[str]:
        raise NotImplementedError

    @abstractmethod
    def cleanup(self) -> int:
        """Purge every expired entry and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def record_hit(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def record_miss(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_stats(self) -> CacheStats:
        raise NotImplementedError
