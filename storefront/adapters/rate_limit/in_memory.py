"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Windows are opened by the first request and reset wholesale once they
  elapse, so they are not aligned to wall-clock boundaries.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Mapping

from storefront.adapters.rate_limit.base import (
    GENERAL_ENDPOINT,
    AbstractRateLimiter,
    RateLimitResult,
)
from storefront.schemas.rate_limit import RateLimitPolicy, RateLimitStats
from storefront.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)

_MINUTE_MS = 60 * 1000
_HOUR_MS = 60 * _MINUTE_MS

DEFAULT_POLICIES: dict[str, RateLimitPolicy] = {
    "login": RateLimitPolicy(
        window_ms=15 * _MINUTE_MS,
        max_requests=5,
        message="Too many login attempts. Please try again later.",
    ),
    "register": RateLimitPolicy(
        window_ms=_HOUR_MS,
        max_requests=3,
        message="Too many registration attempts. Please try again later.",
    ),
    "addToCart": RateLimitPolicy(
        window_ms=_MINUTE_MS,
        max_requests=20,
        message="Too many cart operations. Please slow down.",
    ),
    "placeOrder": RateLimitPolicy(
        window_ms=5 * _MINUTE_MS,
        max_requests=3,
        message="Too many order attempts. Please try again later.",
    ),
    "addReview": RateLimitPolicy(
        window_ms=_HOUR_MS,
        max_requests=5,
        message="Too many review submissions. Please try again later.",
    ),
    "applyCoupon": RateLimitPolicy(
        window_ms=_MINUTE_MS,
        max_requests=10,
        message="Too many coupon attempts. Please slow down.",
    ),
    GENERAL_ENDPOINT: RateLimitPolicy(
        window_ms=_MINUTE_MS,
        max_requests=100,
        message="Too many requests. Please slow down.",
    ),
}


@dataclass
class _WindowState:
    count: int
    reset_at: float
    # Policy that opened the window; a replaced policy applies from the next window.
    policy: RateLimitPolicy

    def is_expired(self, now: float) -> bool:
        return now > self.reset_at


class InMemoryRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed window per (identifier, endpoint).

    Each endpoint name maps to a RateLimitPolicy; endpoints without a policy
    use the ``general`` one. A warning is logged the first time an unknown
    endpoint is seen, since that usually means a typo at the call site.

    Important:
        This limiter is per-process only. Each worker enforces its own
        independent limits.
    """

    def __init__(
        self,
        *,
        policies: Mapping[str, RateLimitPolicy] | None = None,
        clock: Clock = now_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            policies: Endpoint policies layered over DEFAULT_POLICIES.
            clock: Time source returning UNIX time in milliseconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._configs: dict[str, RateLimitPolicy] = dict(DEFAULT_POLICIES)
        if policies:
            self._configs.update(policies)
        self._windows: dict[tuple[str, str], _WindowState] = {}
        self._unknown_endpoints: set[str] = set()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryRateLimiter(endpoints={sorted(self._configs)}, windows={len(self._windows)})"

    def set_config(self, endpoint: str, policy: RateLimitPolicy) -> None:
        with self._lock:
            self._configs[endpoint] = policy
            self._unknown_endpoints.discard(endpoint)

        logger.info(
            "rate_limit.policy_set",
            extra={
                "endpoint": endpoint,
                "window_ms": policy.window_ms,
                "max_requests": policy.max_requests,
            },
        )

    def get_config(self, endpoint: str) -> RateLimitPolicy:
        with self._lock:
            return self._policy_for_locked(endpoint)

    def check_rate_limit(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> RateLimitResult:
        """Consume one request from the (identifier, endpoint) window.

        This method both checks the current window usage and mutates the
        state; denied requests are counted too, so callers must not call it
        speculatively.

        Args:
            identifier: Who is making the request.
            endpoint: Named policy to apply.

        Returns:
            RateLimitResult with allowance decision and metadata.
        """

        with self._lock:
            now = self._clock()
            state = self._get_or_reset_state_locked(identifier, endpoint, now)
            state.count += 1
            policy = state.policy

            if state.count > policy.max_requests:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_time=state.reset_at,
                    message=policy.message,
                )

            return RateLimitResult(
                allowed=True,
                remaining=policy.max_requests - state.count,
                reset_time=state.reset_at,
            )

    def get_remaining_requests(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> int:
        return self.get_stats(identifier, endpoint).remaining

    def get_reset_time(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> float:
        return self.get_stats(identifier, endpoint).reset_time

    def get_stats(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> RateLimitStats:
        """Snapshot the window without counting a request or rolling it over.

        A missing or expired window is reported as a fresh one that would
        start now.
        """

        with self._lock:
            now = self._clock()
            state = self._windows.get((identifier, endpoint))

            if state is None or state.is_expired(now):
                policy = self._policy_for_locked(endpoint)
                return RateLimitStats(
                    count=0,
                    limit=policy.max_requests,
                    remaining=policy.max_requests,
                    reset_time=now + policy.window_ms,
                )

            return RateLimitStats(
                count=state.count,
                limit=state.policy.max_requests,
                remaining=max(0, state.policy.max_requests - state.count),
                reset_time=state.reset_at,
            )

    def reset(self, identifier: str, endpoint: str | None = None) -> None:
        with self._lock:
            if endpoint is not None:
                self._windows.pop((identifier, endpoint), None)
                return

            for key in [k for k in self._windows if k[0] == identifier]:
                del self._windows[key]

    def cleanup(self) -> int:
        """Delete every window whose reset time has passed.

        Returns:
            Number of windows removed.
        """

        with self._lock:
            now = self._clock()
            expired = [key for key, state in self._windows.items() if state.is_expired(now)]
            for key in expired:
                del self._windows[key]
            remaining = len(self._windows)

        if expired:
            logger.debug(
                "rate_limit.cleanup",
                extra={"removed": len(expired), "windows": remaining},
            )
        return len(expired)

    def _policy_for_locked(self, endpoint: str) -> RateLimitPolicy:
        policy = self._configs.get(endpoint)
        if policy is not None:
            return policy

        if endpoint not in self._unknown_endpoints:
            self._unknown_endpoints.add(endpoint)
            logger.warning(
                "rate_limit.unknown_endpoint",
                extra={"endpoint": endpoint, "fallback": GENERAL_ENDPOINT},
            )
        return self._configs.get(GENERAL_ENDPOINT, DEFAULT_POLICIES[GENERAL_ENDPOINT])

    def _get_or_reset_state_locked(self, identifier: str, endpoint: str, now: float) -> _WindowState:
        """Get the current window for the pair, or open a fresh one.

        Args:
            identifier: Who is making the request.
            endpoint: Named policy to apply.
            now: Current time in epoch milliseconds.

        Returns:
            The live window state for this pair.
        """
        key = (identifier, endpoint)
        state = self._windows.get(key)
        if state is None or state.is_expired(now):
            policy = self._policy_for_locked(endpoint)
            state = _WindowState(count=0, reset_at=now + policy.window_ms, policy=policy)
            self._windows[key] = state
        return state
