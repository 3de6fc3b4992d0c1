"""Tests for the CoreContext composition root."""

import threading
import time

import pytest

from storefront.core.config import CacheSettings, RateLimitSettings, Settings
from storefront.core.context import CoreContext, create_context
from storefront.schemas.rate_limit import RateLimitPolicy
from storefront.utils.cache_keys import Endpoint


def _settings() -> Settings:
    cache = CacheSettings(default_ttl_ms=1_000, max_size=2, cleanup_interval_ms=60_000)
    rate_limit = RateLimitSettings(
        cleanup_interval_ms=300_000,
        policies={"login": RateLimitPolicy(window_ms=60_000, max_requests=1, message="No")},
    )
    return Settings(cache=cache, rate_limit=rate_limit)


def test_create_context_applies_settings(clock) -> None:
    ctx = create_context(_settings(), clock=clock)

    ctx.cache.set("a", 1)
    clock.advance(1_001)
    assert ctx.cache.get("a") is None

    assert ctx.limiter.get_config("login").max_requests == 1
    assert ctx.limiter.get_config("register").max_requests == 3
    assert ctx.initialized is False


def test_contexts_are_independent(clock) -> None:
    first = create_context(_settings(), clock=clock)
    second = create_context(_settings(), clock=clock)

    first.cache.set("k", "v")
    first.limiter.check_rate_limit("u", "login")

    assert second.cache.has("k") is False
    assert second.limiter.get_stats("u", "login").count == 0


def test_initialize_is_idempotent_and_replaces_sweeps(clock) -> None:
    ctx = create_context(_settings(), clock=clock)

    ctx.initialize()
    first_cache_sweep = ctx._cache_sweep
    ctx.initialize()

    try:
        assert first_cache_sweep is not None
        assert first_cache_sweep.running is False
        assert ctx._cache_sweep is not first_cache_sweep
        assert ctx._cache_sweep.running is True
        sweeps = [t for t in threading.enumerate() if t.name.startswith("periodic-")]
        assert len([t for t in sweeps if t.name == "periodic-cache-cleanup"]) == 1
    finally:
        ctx.destroy()


def test_destroy_stops_sweeps_and_clears_cache(clock) -> None:
    ctx = create_context(_settings(), clock=clock).initialize()
    ctx.cache.set("k", "v")

    ctx.destroy()

    assert ctx.initialized is False
    assert ctx.cache.size() == 0


def test_disabled_cleanup_schedules_nothing(clock) -> None:
    settings = Settings(
        cache=CacheSettings(cleanup_enabled=False),
        rate_limit=RateLimitSettings(cleanup_enabled=False),
    )

    with create_context(settings, clock=clock) as ctx:
        assert ctx.initialized is False


def test_sweeps_purge_expired_entries(clock) -> None:
    settings = Settings(
        cache=CacheSettings(default_ttl_ms=10, cleanup_interval_ms=5),
        rate_limit=RateLimitSettings(cleanup_enabled=False),
    )
    ctx = create_context(settings, clock=clock)
    ctx.cache.set("k", "v")
    clock.advance(100)

    purged = threading.Event()
    original_cleanup = ctx.cache.cleanup

    def _cleanup() -> int:
        removed = original_cleanup()
        if ctx.cache.size() == 0:
            purged.set()
        return removed

    ctx.cache.cleanup = _cleanup
    with ctx:
        assert purged.wait(timeout=2.0)


def test_guard_uses_context_limiter(clock) -> None:
    with create_context(_settings(), clock=clock) as ctx:
        guard = ctx.guard(Endpoint.LOGIN, "a@b.com", on_exceeded=lambda message: None)

        assert guard.check() is True
        assert guard.check() is False
        assert ctx.limiter.get_stats("a@b.com", "login").count == 2


def test_read_through_shares_cache(clock) -> None:
    ctx = create_context(_settings(), clock=clock)

    ctx.read_through.fetch("k", lambda: "v")

    assert ctx.cache.get("k") == "v"
    assert isinstance(ctx, CoreContext)


@pytest.mark.parametrize("field", ["max_size", "default_ttl_ms", "cleanup_interval_ms"])
def test_cache_settings_reject_non_positive(field: str) -> None:
    with pytest.raises(ValueError):
        CacheSettings(**{field: 0})


def test_reinitialize_waits_for_running_sweep(clock) -> None:
    settings = Settings(
        cache=CacheSettings(cleanup_interval_ms=5),
        rate_limit=RateLimitSettings(cleanup_enabled=False),
    )
    ctx = create_context(settings, clock=clock)
    started = threading.Event()
    active = []
    overlaps = []

    def _slow_cleanup() -> int:
        if active:
            overlaps.append(1)
        active.append(1)
        started.set()
        time.sleep(0.1)
        active.pop()
        return 0

    ctx.cache.cleanup = _slow_cleanup
    ctx.initialize()
    try:
        assert started.wait(timeout=2.0)
        ctx.initialize()
        time.sleep(0.05)
    finally:
        ctx.destroy()

    assert overlaps == []
