"""Application-level exception types.

The cache and the rate limiter never raise during normal operation; these
errors cover invalid configuration and the opt-in caller helpers that turn a
denied admission into an exception.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and callers."""

    code: str
    message: str
    hint: str
    endpoint: str
    limit: int
    remaining: int
    reset_time: float
    retry_after: float
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input/config validation fails."""


class RateLimitAppError(AppError):
    """Raised by callers that opt into exceptions for denied requests."""
