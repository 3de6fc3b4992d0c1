"""Rate limiter interfaces.

Callers should depend on this abstraction (not the concrete implementation)
so the storage backend can change later with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from storefront.schemas.rate_limit import RateLimitPolicy, RateLimitStats

GENERAL_ENDPOINT = "general"


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_time: Epoch milliseconds when the current window ends.
        message: Policy message when blocked, otherwise None.
    """

    allowed: bool
    remaining: int
    reset_time: float
    message: str | None = None


class AbstractRateLimiter(ABC):
    """Interface for per-(identifier, endpoint) rate limiters."""

    @abstractmethod
    def check_rate_limit(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> RateLimitResult:
        """Count one request for ``identifier`` on ``endpoint`` and decide on it.

        The request is counted even when it ends up denied.

        Args:
            identifier: Who is making the request (e.g., email, user id).
            endpoint: Named policy to apply.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def get_remaining_requests(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> int:
        raise NotImplementedError

    @abstractmethod
    def get_reset_time(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> float:
        raise NotImplementedError

    @abstractmethod
    def get_stats(self, identifier: str, endpoint: str = GENERAL_ENDPOINT) -> RateLimitStats:
        raise NotImplementedError

    @abstractmethod
    def reset(self, identifier: str, endpoint: str | None = None) -> None:
        """Forget one window, or every window of ``identifier`` when endpoint is None."""
        raise NotImplementedError

    @abstractmethod
    def cleanup(self) -> int:
        """Drop expired windows and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def set_config(self, endpoint: str, policy: RateLimitPolicy) -> None:
        raise NotImplementedError

    @abstractmethod
    def get_config(self, endpoint: str) -> RateLimitPolicy:
        """Return the policy applied to ``endpoint`` after fallback."""
        raise NotImplementedError
