"""Response models for rate limit introspection."""

from __future__ import annotations

from pydantic import BaseModel, Field


class LimiterStats(BaseModel):
    """Configuration and store metrics for one limiter."""

    limit: int = Field(..., description="Max admitted requests per window")
    window_seconds: int = Field(..., description="Window length in seconds")
    cleanup_sample_rate: float = Field(
        ..., description="Probability that a check also sweeps expired records"
    )
    tracked_keys: int = Field(..., description="Client records currently stored")
    sweeps: int = Field(..., description="Cleanup sweeps run since startup")


class LimitsResponse(BaseModel):
    """Rate limits applied to each channel."""

    enabled: bool = Field(..., description="Whether rate limiting is enforced on both channels")
    http: LimiterStats
    websocket: LimiterStats
