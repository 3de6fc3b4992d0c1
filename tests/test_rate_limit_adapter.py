"""Unit tests for the in-memory rate limiter adapter."""

import logging
from unittest.mock import Mock

import pytest
from pydantic import ValidationError

from storefront.adapters.rate_limit.in_memory import DEFAULT_POLICIES, InMemoryRateLimiter
from storefront.schemas.rate_limit import RateLimitPolicy

LOGIN_MESSAGE = "Too many login attempts. Please try again later."


def _limiter(**policies: RateLimitPolicy) -> tuple[InMemoryRateLimiter, Mock]:
    clock = Mock(return_value=1_000_000.0)
    return InMemoryRateLimiter(policies=policies, clock=clock), clock


def test_login_scenario_counts_down_then_denies() -> None:
    limiter, _ = _limiter()

    remaining = [limiter.check_rate_limit("a@b.com", "login").remaining for _ in range(5)]
    assert remaining == [4, 3, 2, 1, 0]

    blocked = limiter.check_rate_limit("a@b.com", "login")
    assert blocked.allowed is False
    assert blocked.remaining == 0
    assert blocked.message == LOGIN_MESSAGE


def test_allowed_result_has_no_message_and_window_end() -> None:
    limiter, _ = _limiter()

    result = limiter.check_rate_limit("u1", "login")

    assert result.allowed is True
    assert result.message is None
    assert result.reset_time == 1_000_000.0 + 15 * 60 * 1000


def test_window_rolls_over_after_reset_time() -> None:
    limiter, clock = _limiter(tight=RateLimitPolicy(window_ms=10_000, max_requests=2))

    assert limiter.check_rate_limit("k", "tight").allowed is True
    assert limiter.check_rate_limit("k", "tight").allowed is True
    assert limiter.check_rate_limit("k", "tight").allowed is False

    # Still inside the window at exactly reset_time.
    clock.return_value = 1_010_000.0
    assert limiter.check_rate_limit("k", "tight").allowed is False

    clock.return_value = 1_010_001.0
    result = limiter.check_rate_limit("k", "tight")
    assert result.allowed is True
    assert result.remaining == 1
    assert result.reset_time == 1_020_001.0


def test_denied_requests_are_still_counted() -> None:
    limiter, _ = _limiter(tight=RateLimitPolicy(window_ms=10_000, max_requests=1))

    for _ in range(4):
        limiter.check_rate_limit("k", "tight")

    assert limiter.get_stats("k", "tight").count == 4
    assert limiter.get_remaining_requests("k", "tight") == 0


def test_isolated_by_identifier_and_endpoint() -> None:
    limiter, _ = _limiter(tight=RateLimitPolicy(window_ms=60_000, max_requests=1))

    assert limiter.check_rate_limit("k1", "tight").allowed is True
    assert limiter.check_rate_limit("k1", "tight").allowed is False

    assert limiter.check_rate_limit("k2", "tight").allowed is True
    assert limiter.check_rate_limit("k1", "login").allowed is True


def test_unknown_endpoint_falls_back_to_general(caplog: pytest.LogCaptureFixture) -> None:
    limiter, _ = _limiter()

    with caplog.at_level(logging.WARNING):
        result = limiter.check_rate_limit("k", "checkout-typo")
        limiter.check_rate_limit("k", "checkout-typo")

    assert result.allowed is True
    assert result.remaining == DEFAULT_POLICIES["general"].max_requests - 1
    assert limiter.get_config("checkout-typo") == DEFAULT_POLICIES["general"]
    warnings = [r for r in caplog.records if r.getMessage() == "rate_limit.unknown_endpoint"]
    assert len(warnings) == 1


def test_default_endpoint_is_general() -> None:
    limiter, _ = _limiter()

    limiter.check_rate_limit("k")

    assert limiter.get_stats("k", "general").count == 1


def test_queries_do_not_mutate_state() -> None:
    limiter, clock = _limiter()

    assert limiter.get_remaining_requests("k", "login") == 5
    assert limiter.get_reset_time("k", "login") == 1_000_000.0 + 15 * 60 * 1000
    stats = limiter.get_stats("k", "login")
    assert stats.count == 0
    assert stats.limit == 5
    assert stats.remaining == 5

    limiter.check_rate_limit("k", "login")
    clock.return_value = 1_000_500.0

    assert limiter.get_remaining_requests("k", "login") == 4
    assert limiter.get_reset_time("k", "login") == 1_000_000.0 + 15 * 60 * 1000
    assert limiter.get_stats("k", "login").count == 1


def test_stats_for_expired_window_look_fresh() -> None:
    limiter, clock = _limiter(tight=RateLimitPolicy(window_ms=1_000, max_requests=3))
    limiter.check_rate_limit("k", "tight")

    clock.return_value = 1_005_000.0
    stats = limiter.get_stats("k", "tight")

    assert stats.count == 0
    assert stats.remaining == 3
    assert stats.reset_time == 1_006_000.0


def test_reset_single_endpoint_behaves_like_first_call() -> None:
    limiter, _ = _limiter()
    for _ in range(6):
        limiter.check_rate_limit("a@b.com", "login")
    limiter.check_rate_limit("a@b.com", "register")

    limiter.reset("a@b.com", "login")

    result = limiter.check_rate_limit("a@b.com", "login")
    assert result.allowed is True
    assert result.remaining == 4
    assert limiter.get_stats("a@b.com", "register").count == 1


def test_reset_without_endpoint_clears_every_window_of_identifier() -> None:
    limiter, _ = _limiter()
    limiter.check_rate_limit("user", "login")
    limiter.check_rate_limit("user", "register")
    limiter.check_rate_limit("user:2", "login")

    limiter.reset("user")

    assert limiter.get_stats("user", "login").count == 0
    assert limiter.get_stats("user", "register").count == 0
    assert limiter.get_stats("user:2", "login").count == 1


def test_cleanup_removes_only_expired_windows() -> None:
    limiter, clock = _limiter(short=RateLimitPolicy(window_ms=1_000, max_requests=3))
    limiter.check_rate_limit("a", "short")
    limiter.check_rate_limit("b", "login")

    clock.return_value = 1_002_000.0

    assert limiter.cleanup() == 1
    assert limiter.cleanup() == 0
    assert limiter.get_stats("b", "login").count == 1


def test_set_config_applies_from_next_window() -> None:
    limiter, clock = _limiter()
    limiter.check_rate_limit("k", "login")

    limiter.set_config("login", RateLimitPolicy(window_ms=1_000, max_requests=1, message="slow"))

    # The open window keeps the quota it was opened with.
    second = limiter.check_rate_limit("k", "login")
    assert second.allowed is True
    assert second.remaining == 3

    clock.return_value = 1_000_000.0 + 15 * 60 * 1000 + 1
    assert limiter.check_rate_limit("k", "login").allowed is True
    blocked = limiter.check_rate_limit("k", "login")
    assert blocked.allowed is False
    assert blocked.message == "slow"


def test_constructor_policies_override_defaults() -> None:
    limiter, _ = _limiter(login=RateLimitPolicy(window_ms=1_000, max_requests=1))

    assert limiter.get_config("login").max_requests == 1
    assert limiter.get_config("register") == DEFAULT_POLICIES["register"]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"window_ms": 0, "max_requests": 1},
        {"window_ms": 1_000, "max_requests": -1},
    ],
)
def test_invalid_policy_args(kwargs: dict) -> None:
    with pytest.raises(ValidationError):
        RateLimitPolicy(**kwargs)


def test_zero_quota_policy_denies_first_call() -> None:
    limiter, _ = _limiter()
    limiter.set_config("placeOrder", RateLimitPolicy(window_ms=1_000, max_requests=0, message="Orders paused"))

    result = limiter.check_rate_limit("user-1", "placeOrder")

    assert result.allowed is False
    assert result.remaining == 0
    assert result.message == "Orders paused"
    stats = limiter.get_stats("user-1", "placeOrder")
    assert stats.limit == 0
    assert stats.remaining == 0
