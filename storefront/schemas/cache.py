"""Pydantic schemas for cache reporting."""

from pydantic import BaseModel, Field


class CacheStats(BaseModel):
    """Point-in-time cache metrics. Values themselves are never exposed."""

    size: int = Field(..., ge=0, description="Entries currently stored, stale ones included.")
    max_size: int = Field(..., ge=1)
    expired_entries: int = Field(
        ...,
        ge=0,
        description="Entries past their TTL that have not been purged yet.",
    )
    total_data_size: int = Field(
        ...,
        ge=0,
        description="Sum of the JSON-serialized lengths of all stored values.",
    )
    hit_rate: float = Field(
        ...,
        ge=0,
        le=100,
        description="Recorded hits as a percentage of recorded lookups (0 when none).",
    )
