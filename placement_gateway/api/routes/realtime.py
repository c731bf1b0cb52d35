"""Realtime event channel used by interview and drive sessions."""

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from placement_gateway.core.rate_limit import hash_limiter_key
from placement_gateway.core.ws_rate_limit import WebSocketThrottle

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


def _invalid_message(reason: str) -> dict:
    return {
        "event": "error",
        "data": {"code": "INVALID_MESSAGE", "message": reason},
    }


@router.websocket("/ws/events")
async def events_channel(websocket: WebSocket) -> None:
    """Accept JSON ``{"event": ..., "data": ...}`` messages and acknowledge them.

    Each message is rate limited per client. Throttled messages are answered
    with a ``TOO_MANY_REQUESTS`` error event and otherwise ignored.
    """

    throttle: WebSocketThrottle = websocket.app.state.ws_throttle
    await websocket.accept()
    key_hash = hash_limiter_key(throttle.client_key(websocket))
    logger.info("ws.connected", extra={"key_hash": key_hash})

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                logger.info("ws.disconnected", extra={"key_hash": key_hash, "close_code": frame.get("code")})
                return

            # Every frame counts against the budget, whatever its payload.
            if not await throttle.admit(websocket):
                continue

            raw = frame.get("text")
            if raw is None:
                await websocket.send_json(_invalid_message("Message must be a text frame."))
                continue

            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json(_invalid_message("Message must be valid JSON."))
                continue
            if not isinstance(message, dict) or not isinstance(message.get("event"), str):
                await websocket.send_json(_invalid_message("Message must be an object with an 'event' string."))
                continue

            await websocket.send_json({"event": "ack", "data": {"received": message["event"]}})
    except WebSocketDisconnect as exc:
        logger.info("ws.disconnected", extra={"key_hash": key_hash, "close_code": exc.code})
