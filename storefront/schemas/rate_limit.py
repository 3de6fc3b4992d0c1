"""Pydantic schemas for rate limit policies and snapshots."""

from pydantic import BaseModel, ConfigDict, Field


class RateLimitPolicy(BaseModel):
    """Quota applied to one named endpoint.

    Windows are fixed: the first request opens a window of ``window_ms`` and
    the count resets wholesale once it elapses.
    """

    model_config = ConfigDict(frozen=True)

    window_ms: int = Field(
        ...,
        ge=1,
        description="Window duration in milliseconds.",
    )
    max_requests: int = Field(
        ...,
        ge=0,
        description="Requests allowed per window; 0 blocks every request.",
    )
    message: str = Field(
        "Too many requests. Please slow down.",
        description="Human-readable reason returned when a request is denied.",
    )


class RateLimitStats(BaseModel):
    """Non-mutating snapshot of one (identifier, endpoint) window."""

    count: int = Field(..., ge=0)
    limit: int = Field(..., ge=0)
    remaining: int = Field(..., ge=0)
    reset_time: float = Field(
        ...,
        description="Epoch milliseconds at which the window ends.",
    )
