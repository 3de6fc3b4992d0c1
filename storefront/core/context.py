"""Composition root for the storefront core.

Owns the cache and the rate limiter for one process (or one test) and the
background sweeps that keep both tables bounded. Callers receive the context,
or the components it holds, by injection instead of reaching for globals.
"""

from __future__ import annotations

import logging
from types import TracebackType

from storefront.adapters.cache.base import AbstractCache
from storefront.adapters.cache.in_memory import InMemoryTTLCache
from storefront.adapters.rate_limit.base import AbstractRateLimiter
from storefront.adapters.rate_limit.in_memory import InMemoryRateLimiter
from storefront.core.config import Settings, settings as default_settings
from storefront.services.rate_limit_guard import RateLimitGuard
from storefront.services.read_through import ReadThroughCache
from storefront.utils.cache_keys import Endpoint
from storefront.utils.clock import Clock, now_ms
from storefront.utils.periodic import PeriodicTask, schedule_periodic

logger = logging.getLogger(__name__)


class CoreContext:
    """Cache + rate limiter pair with an explicit lifecycle.

    ``initialize()`` may be called any number of times: existing sweep
    handles are cancelled before new ones are scheduled. ``destroy()`` stops
    the sweeps and empties the cache.
    """

    def __init__(
        self,
        cache: AbstractCache,
        limiter: AbstractRateLimiter,
        *,
        cache_cleanup_interval_ms: int | None = None,
        rate_limit_cleanup_interval_ms: int | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self.cache = cache
        self.limiter = limiter
        self.read_through = ReadThroughCache(cache)
        self._cache_cleanup_interval_ms = cache_cleanup_interval_ms
        self._rate_limit_cleanup_interval_ms = rate_limit_cleanup_interval_ms
        self._clock = clock
        self._cache_sweep: PeriodicTask | None = None
        self._rate_limit_sweep: PeriodicTask | None = None

    def __enter__(self) -> CoreContext:
        return self.initialize()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.destroy()

    @property
    def initialized(self) -> bool:
        return self._cache_sweep is not None or self._rate_limit_sweep is not None

    def initialize(self) -> CoreContext:
        """Schedule the background sweeps, replacing any running ones."""

        self._cancel_sweeps()

        if self._cache_cleanup_interval_ms:
            self._cache_sweep = schedule_periodic(
                self.cache.cleanup,
                interval_ms=self._cache_cleanup_interval_ms,
                name="cache-cleanup",
            )
        if self._rate_limit_cleanup_interval_ms:
            self._rate_limit_sweep = schedule_periodic(
                self.limiter.cleanup,
                interval_ms=self._rate_limit_cleanup_interval_ms,
                name="rate-limit-cleanup",
            )

        logger.info(
            "core.initialized",
            extra={
                "cache_cleanup_interval_ms": self._cache_cleanup_interval_ms,
                "rate_limit_cleanup_interval_ms": self._rate_limit_cleanup_interval_ms,
            },
        )
        return self

    def destroy(self) -> None:
        """Stop the sweeps and drop every cached entry."""

        self._cancel_sweeps()
        self.cache.clear()
        logger.info("core.destroyed")

    def guard(
        self,
        endpoint: str | Endpoint = Endpoint.GENERAL,
        identifier: str | None = None,
        **kwargs,
    ) -> RateLimitGuard:
        """Build a RateLimitGuard bound to this context's limiter."""
        kwargs.setdefault("clock", self._clock)
        return RateLimitGuard(self.limiter, endpoint, identifier, **kwargs)

    def _cancel_sweeps(self) -> None:
        for task in (self._cache_sweep, self._rate_limit_sweep):
            if task is not None:
                task.cancel()
        self._cache_sweep = None
        self._rate_limit_sweep = None


def create_context(settings: Settings | None = None, *, clock: Clock | None = None) -> CoreContext:
    """Create a CoreContext from settings.

    The context is returned uninitialized; call ``initialize()`` (or use it
    as a context manager) to start the sweeps.

    Args:
        settings: Settings to build from; defaults to the global settings.
        clock: Optional time source (epoch milliseconds) shared by both components.

    Returns:
        Configured CoreContext.
    """

    cfg = settings or default_settings
    time_source = clock or now_ms

    cache = InMemoryTTLCache(
        default_ttl_ms=cfg.cache.default_ttl_ms,
        max_size=cfg.cache.max_size,
        clock=time_source,
    )
    limiter = InMemoryRateLimiter(policies=cfg.rate_limit.policies, clock=time_source)

    return CoreContext(
        cache,
        limiter,
        cache_cleanup_interval_ms=cfg.cache.cleanup_interval_ms if cfg.cache.cleanup_enabled else None,
        rate_limit_cleanup_interval_ms=(
            cfg.rate_limit.cleanup_interval_ms if cfg.rate_limit.cleanup_enabled else None
        ),
        clock=time_source,
    )
