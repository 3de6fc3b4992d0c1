"""Rate limit guard for storefront actions.

Binds a limiter to one (identifier, endpoint) pair so login, cart, order,
review and coupon flows can ask a single question before acting.

Strategy:
- Anonymous callers share the "anonymous" identifier.
- ``check()`` never raises; a denied request calls ``on_exceeded`` with the
  policy message, or logs a warning when no callback is set.
- ``enforce()`` turns a denial into RateLimitAppError for flows that prefer
  exceptions.
"""

from __future__ import annotations

import logging
import math
from typing import Callable

from storefront.adapters.rate_limit.base import GENERAL_ENDPOINT, AbstractRateLimiter, RateLimitResult
from storefront.core.errors import RateLimitAppError
from storefront.core.logging import hash_identifier
from storefront.schemas.rate_limit import RateLimitStats
from storefront.utils.cache_keys import Endpoint
from storefront.utils.clock import Clock, now_ms

logger = logging.getLogger(__name__)

ANONYMOUS_IDENTIFIER = "anonymous"
DEFAULT_DENIAL_MESSAGE = "Rate limit exceeded"


class RateLimitGuard:
    """Admission checks for one identifier on one endpoint.

    Attributes:
        identifier: Who is acting (email, user id, or "anonymous").
        endpoint: Rate-limit endpoint name.
        is_rate_limited: Outcome of the most recent check.
    """

    def __init__(
        self,
        limiter: AbstractRateLimiter,
        endpoint: str | Endpoint = GENERAL_ENDPOINT,
        identifier: str | None = None,
        *,
        on_exceeded: Callable[[str], None] | None = None,
        clock: Clock = now_ms,
    ) -> None:
        self.limiter = limiter
        self.endpoint = endpoint.value if isinstance(endpoint, Endpoint) else endpoint
        self.identifier = identifier or ANONYMOUS_IDENTIFIER
        self.is_rate_limited = False
        self._on_exceeded = on_exceeded
        self._clock = clock

    def _consume(self) -> RateLimitResult:
        result = self.limiter.check_rate_limit(self.identifier, self.endpoint)
        self.is_rate_limited = not result.allowed
        return result

    def check(self) -> bool:
        """Count one request and report whether it may proceed."""

        result = self._consume()
        if result.allowed:
            return True

        message = result.message or DEFAULT_DENIAL_MESSAGE
        if self._on_exceeded is not None:
            self._on_exceeded(message)
        else:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "endpoint": self.endpoint,
                    "identifier_hash": hash_identifier(self.identifier),
                    "reset_time": result.reset_time,
                    "denial": message,
                },
            )
        return False

    def enforce(self) -> RateLimitResult:
        """Count one request and raise when it is denied.

        Returns:
            The allowing RateLimitResult.

        Raises:
            RateLimitAppError: When the window's quota is exhausted.
        """

        result = self._consume()
        if result.allowed:
            return result

        retry_after = max(0.0, math.ceil(result.reset_time - self._clock()) / 1000.0)
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "endpoint": self.endpoint,
                "identifier_hash": hash_identifier(self.identifier),
                "reset_time": result.reset_time,
                "retry_after_s": retry_after,
            },
        )
        raise RateLimitAppError(
            code="rate_limited",
            message=result.message or DEFAULT_DENIAL_MESSAGE,
            details={
                "endpoint": self.endpoint,
                "remaining": result.remaining,
                "reset_time": result.reset_time,
                "retry_after": retry_after,
            },
        )

    def remaining(self) -> int:
        return self.limiter.get_remaining_requests(self.identifier, self.endpoint)

    def reset_time(self) -> float:
        return self.limiter.get_reset_time(self.identifier, self.endpoint)

    def stats(self) -> RateLimitStats:
        return self.limiter.get_stats(self.identifier, self.endpoint)

    def reset(self) -> None:
        self.limiter.reset(self.identifier, self.endpoint)
        self.is_rate_limited = False
