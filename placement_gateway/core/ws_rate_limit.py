"""Per-message rate limiting for websocket channels.

Every inbound message is counted against the sender's budget. A denied
message is dropped and answered with an ``error`` event carrying the retry
hint; the channel itself stays open.
"""

from __future__ import annotations

import logging
from typing import Sequence

from fastapi import WebSocket

from placement_gateway.adapters.rate_limit.base import AbstractRateLimiter, Denied
from placement_gateway.core.client_identity import (
    ClientKeyExtractor,
    namespaced_key,
    resolve_client_key,
)
from placement_gateway.core.rate_limit import build_throttle_payload, hash_limiter_key

logger = logging.getLogger(__name__)


class WebSocketThrottle:
    """Gate websocket messages through a rate limiter."""

    def __init__(
        self,
        limiter: AbstractRateLimiter,
        extractors: Sequence[ClientKeyExtractor],
        *,
        namespace: str = "ws",
        enabled: bool = True,
    ) -> None:
        self._limiter = limiter
        self._enabled = enabled
        self._extractors = list(extractors)
        self._namespace = namespace

    def client_key(self, websocket: WebSocket) -> str:
        return namespaced_key(self._namespace, resolve_client_key(websocket, self._extractors))

    async def admit(self, websocket: WebSocket) -> bool:
        """Count one message; on denial send an error event and return False."""
        if not self._enabled:
            return True

        key = self.client_key(websocket)
        decision = self._limiter.check(key)
        if not isinstance(decision, Denied):
            return True

        logger.warning(
            "ws.message_denied",
            extra={
                "key_hash": hash_limiter_key(key),
                "count": decision.count,
                "limit": decision.limit,
                "retry_after_s": decision.retry_after_seconds,
            },
        )
        await websocket.send_json({"event": "error", "data": build_throttle_payload(decision)})
        return False
