"""In-memory fixed-window rate limiter with lazy cleanup.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the lookup/increment/sweep sequence.
- Windows are aligned to each key's first request, not to the epoch.
"""

from __future__ import annotations

import logging
import math
import random
import threading
import time
from dataclasses import dataclass
from typing import Callable

from placement_gateway.adapters.rate_limit.base import (
    UNKNOWN_CLIENT_KEY,
    AbstractRateLimiter,
    Allowed,
    Denied,
    RateLimitDecision,
)
from placement_gateway.core.errors import ConfigurationAppError

logger = logging.getLogger(__name__)


@dataclass
class _RateRecord:
    count: int
    window_reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Per-key fixed-window counter.

    A key's window starts at its first request and lasts ``window_seconds``.
    Once ``now`` reaches the end of the window the next request starts a fresh
    counter. Expired records are reclaimed by a sweep that runs on a random
    sample of calls instead of on a timer.

    Important:
        Bursts straddling a window boundary may admit up to ``2 * limit``
        requests in quick succession.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        cleanup_sample_rate: float = 0.01,
        clock: Callable[[], float] = time.time,
        random_source: Callable[[], float] = random.random,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum admitted requests per window.
            window_seconds: Window length in seconds.
            cleanup_sample_rate: Probability that a ``check`` also sweeps
                expired records.
            clock: Time source returning UNIX time in seconds.
            random_source: Returns floats in ``[0, 1)``; drives sweep sampling.

        Raises:
            ConfigurationAppError: If any setting is out of range.
        """
        if limit < 1:
            raise ConfigurationAppError(
                code="invalid_rate_limit_config",
                message="limit must be >= 1",
                details={"actual_value": limit},
            )
        if window_seconds < 1:
            raise ConfigurationAppError(
                code="invalid_rate_limit_config",
                message="window_seconds must be >= 1",
                details={"actual_value": window_seconds},
            )
        if not 0.0 <= cleanup_sample_rate <= 1.0:
            raise ConfigurationAppError(
                code="invalid_rate_limit_config",
                message="cleanup_sample_rate must be between 0 and 1",
            )

        self.limit = limit
        self.window_seconds = window_seconds
        self._cleanup_sample_rate = cleanup_sample_rate
        self._clock = clock
        self._random = random_source
        self._lock = threading.RLock()
        self._records: dict[str, _RateRecord] = {}
        self._sweeps = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryFixedWindowRateLimiter(limit={self.limit}, "
            f"window_seconds={self.window_seconds}, tracked_keys={len(self._records)})"
        )

    def check(self, key: str | None, now: float | None = None) -> RateLimitDecision:
        """Count one request for ``key`` and return the decision.

        Args:
            key: Client key. ``None`` or ``""`` share the ``"unknown"`` bucket.
            now: Epoch seconds; defaults to the configured clock.

        Returns:
            ``Denied`` once the key's count exceeds ``limit`` in the current
            window, otherwise ``Allowed``.
        """
        key = key or UNKNOWN_CLIENT_KEY
        if now is None:
            now = self._clock()

        with self._lock:
            record = self._records.get(key)
            if record is None or now >= record.window_reset_at:
                record = _RateRecord(count=0, window_reset_at=now + self.window_seconds)
                self._records[key] = record

            record.count += 1
            count = record.count
            reset_at = record.window_reset_at

            if self._random() < self._cleanup_sample_rate:
                self._sweep_locked(now)

        if count > self.limit:
            return Denied(
                count=count,
                limit=self.limit,
                window_seconds=self.window_seconds,
                reset_at=reset_at,
                retry_after_seconds=max(0, math.ceil(reset_at - now)),
            )
        return Allowed(
            count=count,
            limit=self.limit,
            window_seconds=self.window_seconds,
            reset_at=reset_at,
        )

    def purge_expired(self, now: float | None = None) -> int:
        if now is None:
            now = self._clock()
        with self._lock:
            return self._sweep_locked(now)

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._records)

    def stats(self) -> dict[str, int | float]:
        with self._lock:
            return {
                "limit": self.limit,
                "window_seconds": self.window_seconds,
                "cleanup_sample_rate": self._cleanup_sample_rate,
                "tracked_keys": len(self._records),
                "sweeps": self._sweeps,
            }

    def reset(self) -> None:
        """Remove all records and reset counters."""
        with self._lock:
            self._records.clear()
            self._sweeps = 0

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, rec in self._records.items() if rec.window_reset_at < now]
        for key in expired:
            del self._records[key]
        self._sweeps += 1

        if expired:
            logger.debug(
                "rate_limit.sweep",
                extra={"removed": len(expired), "tracked_keys": len(self._records)},
            )
        return len(expired)
