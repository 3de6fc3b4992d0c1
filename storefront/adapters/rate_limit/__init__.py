"""Rate limiting adapters.

This package provides a small abstraction layer so the storefront can start
with an in-memory limiter and later migrate to a shared store without
changing its callers.
"""

from storefront.adapters.rate_limit.base import GENERAL_ENDPOINT, AbstractRateLimiter, RateLimitResult
from storefront.adapters.rate_limit.in_memory import DEFAULT_POLICIES, InMemoryRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "DEFAULT_POLICIES",
    "GENERAL_ENDPOINT",
    "InMemoryRateLimiter",
    "RateLimitResult",
]
