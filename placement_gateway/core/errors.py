"""Application-level exception types.

Domain errors shared by adapters, dependencies and handlers so that failures
are logged and rendered consistently.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict

TOO_MANY_REQUESTS = "TOO_MANY_REQUESTS"


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    actual_value: int | float
    limit: int
    window_seconds: int
    count: int
    retry_after_seconds: int


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
    """Raised when input validation fails."""


class ConfigurationAppError(ValidationAppError, ValueError):
    """Raised at construction time when limiter settings are out of range."""


@dataclass
class RateLimitAppError(AppError):
    """Raised by HTTP hosts to turn a ``Denied`` decision into a 429.

    Attributes:
        headers: Response headers (``Retry-After``, ``X-RateLimit-*``).
    """

    headers: dict[str, str] | None = None
