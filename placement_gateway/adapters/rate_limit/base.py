"""Rate limiter interfaces and decision types.

Hosts (HTTP dependencies, websocket gates) depend on this abstraction rather
than on a concrete store, so the in-memory limiter can later be replaced by a
shared store without changing the ``check`` contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

UNKNOWN_CLIENT_KEY = "unknown"


@dataclass(frozen=True)
class _DecisionFields:
    """Counters shared by both outcomes of a ``check`` call.

    Attributes:
        count: Requests observed for the key in the current window,
            including this one.
        limit: Max admitted requests per window.
        window_seconds: Window length in seconds.
        reset_at: Epoch seconds at which the key's current window ends.
    """

    count: int
    limit: int
    window_seconds: int
    reset_at: float

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


@dataclass(frozen=True)
class Allowed(_DecisionFields):
    """The request is within budget."""

    allowed: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Denied(_DecisionFields):
    """The request exceeded the budget for the current window.

    Attributes:
        retry_after_seconds: Whole seconds until the window resets (>= 0).
    """

    retry_after_seconds: int = 0
    allowed: bool = field(default=False, init=False)


RateLimitDecision = Allowed | Denied


class AbstractRateLimiter(ABC):
    """Interface for client-scoped rate limiters."""

    limit: int
    window_seconds: int

    @abstractmethod
    def check(self, key: str | None, now: float | None = None) -> RateLimitDecision:
        """Record one request for ``key`` and decide whether it is admitted.

        Args:
            key: Client key (IP address, connection id, ...). Empty keys fall
                into the shared ``"unknown"`` bucket.
            now: Current time in epoch seconds; the limiter clock when omitted.

        Returns:
            ``Allowed`` or ``Denied``. Exceeding the limit is never an error.
        """
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now: float | None = None) -> int:
        """Drop records whose window has ended. Returns how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int | float]:
        """Return store metrics without exposing client keys."""
        raise NotImplementedError
