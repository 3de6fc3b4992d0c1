"""In-memory TTL cache with oldest-entry eviction.

Notes:
- Per-process only: nothing is shared between workers or survives a restart.
- Thread-safe: a lock guards every read-check-then-write sequence.
- Expiry is lazy on get()/has() and proactive through cleanup(), which the
  core context runs on a timer.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any

from storefront.adapters.cache.base import AbstractCache
from storefront.core.errors import ValidationAppError
from storefront.core.logging import mask_cache_key
from storefront.schemas.cache import CacheStats
from storefront.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)

DEFAULT_TTL_MS = 5 * 60 * 1000
DEFAULT_MAX_SIZE = 1000


@dataclass
class CacheEntry:
    """Stored value with its insertion time and lifetime."""

    key: str
    value: Any
    created_at: float
    ttl_ms: float

    def is_live(self, now: float) -> bool:
        return now - self.created_at <= self.ttl_ms


def _serialized_size(value: Any) -> int:
    """Length of the compact JSON form of ``value``.

    Values JSON cannot represent (non-string dict keys, cycles) are measured
    by their repr instead, so stats never fail on a storable value.
    """
    try:
        return len(json.dumps(value, default=str, separators=(",", ":"), ensure_ascii=False))
    except (TypeError, ValueError):
        return len(repr(value))


class InMemoryTTLCache(AbstractCache):
    """Bounded key/value store where every entry carries its own TTL.

    When a new key is inserted at capacity, the entry with the oldest
    ``created_at`` is evicted first. Overwriting a key resets its
    ``created_at`` and moves it to the end of the insertion order, which is
    also the tie-break between equal timestamps.

    Attributes:
        default_ttl_ms: TTL used when ``set`` gets no explicit ttl.
        max_size: Maximum number of stored entries.
    """

    def __init__(
        self,
        *,
        default_ttl_ms: float = DEFAULT_TTL_MS,
        max_size: int = DEFAULT_MAX_SIZE,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the cache.

        Args:
            default_ttl_ms: TTL in milliseconds for entries stored without one.
            max_size: Capacity of the table.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValidationAppError: If max_size or default_ttl_ms are invalid.
        """
        if max_size < 1:
            raise ValidationAppError(code="invalid_cache_config", message="max_size must be >= 1")
        if default_ttl_ms <= 0:
            raise ValidationAppError(code="invalid_cache_config", message="default_ttl_ms must be > 0")

        self.default_ttl_ms = default_ttl_ms
        self.max_size = max_size
        self._clock = clock
        self._store: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryTTLCache(default_ttl_ms={self.default_ttl_ms}, max_size={self.max_size}, "
            f"size={len(self._store)}, hits={self._hits}, misses={self._misses})"
        )

    def set(self, key: str, value: Any, ttl_ms: float | None = None) -> None:
        """Store a value with its own TTL, evicting the oldest entry if full.

        Overwriting an existing key never evicts; it resets the entry's
        ``created_at`` and TTL instead.

        Args:
            key: Cache key.
            value: Any payload; it is stored by reference, not copied.
            ttl_ms: Lifetime in milliseconds; None uses ``default_ttl_ms``.
        """

        entry_ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms

        with self._lock:
            now = self._clock()
            if key in self._store:
                # Re-inserting keeps dict order aligned with created_at.
                del self._store[key]
            elif len(self._store) >= self.max_size:
                self._evict_oldest_locked()

            self._store[key] = CacheEntry(key=key, value=value, created_at=now, ttl_ms=entry_ttl)

            logger.debug(
                "cache.set",
                extra={
                    "cache_key": mask_cache_key(key),
                    "size": len(self._store),
                    "ttl_ms": entry_ttl,
                },
            )

    def get(self, key: str) -> Any | None:
        """Retrieve a cached value if it exists and is not expired.

        An expired entry is deleted as a side effect. Hit/miss counters are
        left alone.

        Args:
            key: Cache key.

        Returns:
            Cached value or None if not found/expired.
        """

        with self._lock:
            entry = self._live_entry_locked(key)
            return entry.value if entry is not None else None

    def has(self, key: str) -> bool:
        """Check whether ``key`` holds a live entry.

        Same liveness rule as get(), including deleting an expired entry.
        """

        with self._lock:
            return self._live_entry_locked(key) is not None

    def delete(self, key: str) -> bool:
        """Remove ``key`` regardless of expiry.

        Returns:
            True if the key was stored, False otherwise.
        """

        with self._lock:
            return self._store.pop(key, None) is not None

    def clear(self) -> None:
        """Remove all entries. Hit/miss counters are kept."""

        with self._lock:
            self._store.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._store)

    def cleanup(self) -> int:
        """Delete every expired entry.

        Returns:
            Number of entries removed.
        """

        with self._lock:
            now = self._clock()
            expired_keys = [k for k, entry in self._store.items() if not entry.is_live(now)]
            for key in expired_keys:
                del self._store[key]
            remaining = len(self._store)

        if expired_keys:
            logger.debug(
                "cache.cleanup",
                extra={"removed": len(expired_keys), "size": remaining},
            )
        return len(expired_keys)

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def get_stats(self) -> CacheStats:
        """Return cache metrics. Expired entries are counted, not purged."""

        with self._lock:
            now = self._clock()
            expired = sum(1 for entry in self._store.values() if not entry.is_live(now))
            total_data_size = sum(_serialized_size(entry.value) for entry in self._store.values())
            lookups = self._hits + self._misses
            hit_rate = (self._hits / lookups) * 100 if lookups else 0.0

            return CacheStats(
                size=len(self._store),
                max_size=self.max_size,
                expired_entries=expired,
                total_data_size=total_data_size,
                hit_rate=hit_rate,
            )

    def _live_entry_locked(self, key: str) -> CacheEntry | None:
        entry = self._store.get(key)
        if entry is None:
            return None

        if not entry.is_live(self._clock()):
            del self._store[key]
            logger.debug(
                "cache.expired",
                extra={"cache_key": mask_cache_key(key)},
            )
            return None

        return entry

    def _evict_oldest_locked(self) -> None:
        # min() returns the first minimum, so equal timestamps fall back to insertion order.
        oldest = min(self._store.values(), key=lambda entry: entry.created_at)
        del self._store[oldest.key]
        logger.debug(
            "cache.evict",
            extra={
                "cache_key": mask_cache_key(oldest.key),
                "reason": "capacity",
                "max_size": self.max_size,
            },
        )
