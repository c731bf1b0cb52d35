"""Unit tests for the in-memory fixed-window rate limiter."""

import math
import threading
from unittest.mock import Mock

import pytest

from placement_gateway.adapters.rate_limit import (
    UNKNOWN_CLIENT_KEY,
    Allowed,
    Denied,
    InMemoryFixedWindowRateLimiter,
)
from placement_gateway.core.errors import ConfigurationAppError


def _limiter(limit: int = 10, window_seconds: int = 60, **kwargs) -> InMemoryFixedWindowRateLimiter:
    kwargs.setdefault("random_source", Mock(return_value=0.99))
    return InMemoryFixedWindowRateLimiter(limit=limit, window_seconds=window_seconds, **kwargs)


def test_allows_up_to_limit_then_denies_within_window() -> None:
    limiter = _limiter(limit=10, window_seconds=60)

    decisions = [limiter.check("k1", now=0.0) for _ in range(10)]
    assert all(isinstance(d, Allowed) for d in decisions)
    assert [d.count for d in decisions] == list(range(1, 11))

    denied = limiter.check("k1", now=5.0)
    assert isinstance(denied, Denied)
    assert denied.allowed is False
    assert denied.count == 11
    assert denied.limit == 10
    assert denied.window_seconds == 60
    assert denied.retry_after_seconds == 55
    assert denied.remaining == 0


def test_first_request_after_window_gets_fresh_counter() -> None:
    limiter = _limiter(limit=10, window_seconds=60)
    for _ in range(10):
        assert limiter.check("k1", now=0.0).allowed

    decision = limiter.check("k1", now=61.0)
    assert isinstance(decision, Allowed)
    assert decision.count == 1
    assert decision.reset_at == 121.0


def test_denied_key_is_allowed_again_at_window_boundary() -> None:
    limiter = _limiter(limit=1, window_seconds=10)
    assert limiter.check("k", now=100.0).allowed
    assert not limiter.check("k", now=105.0).allowed

    decision = limiter.check("k", now=110.0)
    assert decision.allowed
    assert decision.count == 1


def test_window_is_not_extended_by_later_requests() -> None:
    limiter = _limiter(limit=5, window_seconds=60)
    first = limiter.check("k", now=0.0)
    later = limiter.check("k", now=30.0)

    assert first.reset_at == later.reset_at == 60.0


def test_keys_are_independent() -> None:
    limiter = _limiter(limit=1, window_seconds=60)

    assert limiter.check("a", now=0.0).allowed
    assert limiter.check("b", now=0.0).allowed
    assert not limiter.check("a", now=1.0).allowed

    # "b" was untouched by "a"'s denial: its next call is its second.
    second_b = limiter.check("b", now=1.0)
    assert second_b.count == 2


@pytest.mark.parametrize("key", ["", None])
def test_unresolvable_keys_share_unknown_bucket(key) -> None:
    limiter = _limiter(limit=1, window_seconds=60)

    assert limiter.check(key, now=0.0).allowed
    # A second unidentifiable caller is throttled by the first one.
    assert not limiter.check("", now=1.0).allowed
    assert not limiter.check(UNKNOWN_CLIENT_KEY, now=2.0).allowed


@pytest.mark.parametrize("now", [0.0, 0.4, 12.5, 59.1, 59.999])
def test_retry_after_is_ceiling_of_time_left(now: float) -> None:
    limiter = _limiter(limit=1, window_seconds=60)
    limiter.check("k", now=0.0)

    denied = limiter.check("k", now=now)
    assert isinstance(denied, Denied)
    assert denied.retry_after_seconds >= 0
    assert denied.retry_after_seconds == math.ceil(60.0 - now)


def test_uses_clock_when_now_is_omitted() -> None:
    clock = Mock(return_value=1000.0)
    limiter = _limiter(limit=1, window_seconds=10, clock=clock)

    assert limiter.check("k").reset_at == 1010.0
    assert not limiter.check("k").allowed

    clock.return_value = 1010.0
    assert limiter.check("k").allowed


def test_sweep_removes_only_expired_records() -> None:
    limiter = _limiter(limit=5, window_seconds=10)
    limiter.check("old", now=0.0)
    limiter.check("boundary", now=5.0)
    limiter.check("fresh", now=14.0)

    removed = limiter.purge_expired(now=15.0)

    assert removed == 1
    assert limiter.tracked_keys() == 2
    # "boundary" (reset_at == 15) survived with its count intact.
    assert limiter.check("boundary", now=14.9).count == 2


def test_sampled_sweep_runs_during_check() -> None:
    random_source = Mock(return_value=0.99)
    limiter = _limiter(limit=5, window_seconds=10, cleanup_sample_rate=0.5, random_source=random_source)
    limiter.check("a", now=0.0)
    limiter.check("b", now=0.0)
    assert limiter.tracked_keys() == 2
    assert limiter.stats()["sweeps"] == 0

    random_source.return_value = 0.1
    decision = limiter.check("c", now=20.0)

    assert decision.allowed
    assert limiter.tracked_keys() == 1
    assert limiter.stats()["sweeps"] == 1


def test_sweep_never_drops_record_written_in_same_call() -> None:
    limiter = _limiter(limit=1, window_seconds=10, cleanup_sample_rate=1.0, random_source=Mock(return_value=0.0))
    assert limiter.check("k", now=0.0).allowed
    assert not limiter.check("k", now=9.0).allowed
    assert limiter.tracked_keys() == 1


def test_zero_sample_rate_never_sweeps() -> None:
    limiter = _limiter(limit=5, window_seconds=1, cleanup_sample_rate=0.0, random_source=Mock(return_value=0.0))
    for i in range(5):
        limiter.check(f"k{i}", now=float(i * 10))

    assert limiter.tracked_keys() == 5
    assert limiter.stats()["sweeps"] == 0


def test_reset_clears_state() -> None:
    limiter = _limiter(limit=1)
    limiter.check("k", now=0.0)
    limiter.purge_expired(now=0.0)

    limiter.reset()

    assert limiter.stats()["tracked_keys"] == 0
    assert limiter.stats()["sweeps"] == 0
    assert limiter.check("k", now=1.0).count == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"limit": 0, "window_seconds": 60},
        {"limit": -1, "window_seconds": 60},
        {"limit": 1, "window_seconds": 0},
        {"limit": 1, "window_seconds": 60, "cleanup_sample_rate": -0.1},
        {"limit": 1, "window_seconds": 60, "cleanup_sample_rate": 1.5},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ConfigurationAppError) as exc_info:
        InMemoryFixedWindowRateLimiter(**kwargs)

    assert isinstance(exc_info.value, ValueError)
    assert exc_info.value.code == "invalid_rate_limit_config"


def test_concurrent_checks_admit_exactly_limit() -> None:
    limiter = _limiter(limit=50, window_seconds=60)
    results: list[bool] = []
    results_lock = threading.Lock()

    def _worker() -> None:
        for _ in range(10):
            allowed = limiter.check("shared", now=0.0).allowed
            with results_lock:
                results.append(allowed)

    threads = [threading.Thread(target=_worker) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(results) == 200
    assert results.count(True) == 50


def test_decision_outcome_is_fixed_by_type() -> None:
    allowed = Allowed(count=1, limit=1, window_seconds=60, reset_at=60.0)
    denied = Denied(count=2, limit=1, window_seconds=60, reset_at=60.0, retry_after_seconds=30)

    assert allowed.allowed is True
    assert denied.allowed is False
    assert denied.remaining == 0

    with pytest.raises(TypeError):
        Allowed(count=1, limit=1, window_seconds=60, reset_at=60.0, allowed=False)
