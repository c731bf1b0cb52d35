"""Rate limiting wiring for the HTTP layer.

Limiters are built once per application in ``create_app`` and stored on
``app.state``; this module only reads them from there, so every app instance
(and every test) owns its own store.

Strategy:
- Fixed window per client, keyed ``http:<client>``.
- Client resolved via the extractor chain in ``client_identity``.
- Denials become ``RateLimitAppError`` (rendered as HTTP 429).
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from fastapi import Request

from placement_gateway.adapters.rate_limit.base import AbstractRateLimiter, Denied
from placement_gateway.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from placement_gateway.core.client_identity import (
    default_extractors,
    namespaced_key,
    resolve_client_key,
)
from placement_gateway.core.config import AppSettings
from placement_gateway.core.errors import TOO_MANY_REQUESTS, RateLimitAppError

logger = logging.getLogger(__name__)


def build_http_rate_limiter(app_settings: AppSettings) -> AbstractRateLimiter:
    return InMemoryFixedWindowRateLimiter(
        limit=app_settings.rate_limit_requests,
        window_seconds=app_settings.rate_limit_window_seconds,
        cleanup_sample_rate=app_settings.rate_limit_cleanup_sample_rate,
    )


def build_ws_rate_limiter(app_settings: AppSettings) -> AbstractRateLimiter:
    return InMemoryFixedWindowRateLimiter(
        limit=app_settings.ws_rate_limit_requests,
        window_seconds=app_settings.ws_rate_limit_window_seconds,
        cleanup_sample_rate=app_settings.rate_limit_cleanup_sample_rate,
    )


def hash_limiter_key(key: str) -> str:
    """Hash the rate limit key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def throttle_message(decision: Denied) -> str:
    return f"Rate limit exceeded. Try again in {decision.retry_after_seconds} seconds."


def build_throttle_payload(decision: Denied) -> dict[str, Any]:
    """Machine-readable rejection body shared by HTTP and websocket hosts."""
    return {
        "code": TOO_MANY_REQUESTS,
        "message": throttle_message(decision),
        "meta": {
            "limit": decision.limit,
            "window_seconds": decision.window_seconds,
            "count": decision.count,
            "retry_after_seconds": decision.retry_after_seconds,
        },
    }


def build_rate_limit_headers(decision: Denied) -> dict[str, str]:
    return {
        "Retry-After": str(decision.retry_after_seconds),
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
        "X-RateLimit-Reset": str(int(decision.reset_at)),
    }


async def enforce_rate_limit(request: Request) -> None:
    """FastAPI dependency enforcing the per-client HTTP rate limit.

    When enabled, counts one request against the caller's budget. Once the
    caller exceeds the configured rate the request is rejected.

    Args:
        request: FastAPI request.

    Raises:
        RateLimitAppError: Rendered as 429 Too Many Requests.
    """

    app_settings: AppSettings = request.app.state.app_settings
    if not app_settings.rate_limit_enabled:
        return

    limiter: AbstractRateLimiter = request.app.state.http_rate_limiter
    extractors = default_extractors(
        trust_proxy_headers=app_settings.trust_proxy_headers,
        session_cookie_name=app_settings.session_cookie_name,
    )
    key = namespaced_key("http", resolve_client_key(request, extractors))

    decision = limiter.check(key)
    if not isinstance(decision, Denied):
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": hash_limiter_key(key),
                "count": decision.count,
                "limit": decision.limit,
                "remaining": decision.remaining,
            },
        )
        return

    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": hash_limiter_key(key),
            "count": decision.count,
            "limit": decision.limit,
            "window_s": decision.window_seconds,
            "retry_after_s": decision.retry_after_seconds,
        },
    )

    payload = build_throttle_payload(decision)
    raise RateLimitAppError(
        code=payload["code"],
        message=payload["message"],
        details=payload["meta"],
        headers=build_rate_limit_headers(decision) if app_settings.rate_limit_include_headers else None,
    )
