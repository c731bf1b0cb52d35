"""Rate limiting adapters.

This package keeps the limiter behind a small interface so the service can
start with an in-memory store and later move to a shared one (e.g. Redis)
without touching the HTTP or websocket layers.
"""

from placement_gateway.adapters.rate_limit.base import (
    UNKNOWN_CLIENT_KEY,
    AbstractRateLimiter,
    Allowed,
    Denied,
    RateLimitDecision,
)
from placement_gateway.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = [
    "UNKNOWN_CLIENT_KEY",
    "AbstractRateLimiter",
    "Allowed",
    "Denied",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitDecision",
]
