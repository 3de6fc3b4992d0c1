"""Read-through caching for storefront data loaders.

Catalog, review, inventory and shipping lookups go through ``fetch``: a live
cache entry is returned directly, otherwise the caller's fetcher runs and its
result is stored. This is the component that reports hits and misses, since
the cache's own lookups leave the counters alone.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from storefront.adapters.cache.base import AbstractCache
from storefront.core.logging import mask_cache_key
from storefront.utils.cache_keys import CacheKeys, CacheTTL

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReadThroughCache:
    """Cache-aside helper bound to one cache instance."""

    def __init__(self, cache: AbstractCache) -> None:
        self.cache = cache

    def fetch(
        self,
        key: str,
        fetcher: Callable[[], T],
        *,
        ttl_ms: float | None = CacheTTL.MEDIUM,
    ) -> T:
        """Return the cached value for ``key`` or load and store it.

        A cached ``None`` is indistinguishable from a miss, so loaders that
        return None are called again on every fetch.

        Args:
            key: Cache key, usually built with CacheKeys.
            fetcher: Zero-argument loader called on a miss.
            ttl_ms: TTL for the stored result (None uses the cache default).

        Returns:
            The cached or freshly loaded value.

        Raises:
            Exception: Whatever the fetcher raises; nothing is cached then.
        """

        cached = self.cache.get(key)
        if cached is not None:
            self.cache.record_hit()
            logger.debug("cache.hit", extra={"cache_key": mask_cache_key(key)})
            return cached

        self.cache.record_miss()
        logger.debug("cache.miss", extra={"cache_key": mask_cache_key(key)})

        result = fetcher()
        self.cache.set(key, result, ttl_ms)
        return result

    def invalidate(self, key: str) -> bool:
        return self.cache.delete(key)

    def refresh(
        self,
        key: str,
        fetcher: Callable[[], T],
        *,
        ttl_ms: float | None = CacheTTL.MEDIUM,
    ) -> T:
        """Drop ``key`` and load it again through the fetcher."""
        self.invalidate(key)
        return self.fetch(key, fetcher, ttl_ms=ttl_ms)

    # Named loaders with the TTL each kind of data is cached for.

    def products(self, fetcher: Callable[[], list[Any]]) -> list[Any]:
        return self.fetch(CacheKeys.products, fetcher, ttl_ms=CacheTTL.LONG)

    def product(self, product_id: str, fetcher: Callable[[], Any]) -> Any:
        return self.fetch(CacheKeys.product(product_id), fetcher, ttl_ms=CacheTTL.MEDIUM)

    def reviews(self, product_id: str, fetcher: Callable[[], list[Any]]) -> list[Any]:
        return self.fetch(CacheKeys.reviews(product_id), fetcher, ttl_ms=CacheTTL.MEDIUM)

    def inventory(self, fetcher: Callable[[], list[Any]]) -> list[Any]:
        return self.fetch(CacheKeys.inventory, fetcher, ttl_ms=CacheTTL.SHORT)

    def low_stock(self, fetcher: Callable[[], list[Any]]) -> list[Any]:
        return self.fetch(CacheKeys.low_stock, fetcher, ttl_ms=CacheTTL.SHORT)

    def shipping(self, province: str, weight: float, fetcher: Callable[[], Any]) -> Any:
        return self.fetch(CacheKeys.shipping(province, weight), fetcher, ttl_ms=CacheTTL.LONG)
