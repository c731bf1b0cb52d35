"""Client key derivation for rate limiting.

A client key is resolved by trying an ordered list of extractors against the
connection object (a Starlette ``Request`` or ``WebSocket``, or anything that
looks like one). Each extractor probes a single capability and returns
``None`` when the connection lacks it, so the chain degrades from network
addresses to connection/session ids and finally to the shared ``"unknown"``
bucket. Clients nobody can identify therefore throttle each other.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable

from placement_gateway.adapters.rate_limit.base import UNKNOWN_CLIENT_KEY

ClientKeyExtractor = Callable[[Any], str | None]


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def handshake_address(connection: Any) -> str | None:
    """First hop of ``X-Forwarded-For`` sent with the request/handshake."""
    headers = getattr(connection, "headers", None)
    if headers is None:
        return None
    forwarded = headers.get("x-forwarded-for")
    if not forwarded:
        return None
    return _clean(forwarded.split(",")[0])


def transport_address(connection: Any) -> str | None:
    """Peer host reported by the server transport (``connection.client.host``)."""
    client = getattr(connection, "client", None)
    return _clean(getattr(client, "host", None))


def socket_address(connection: Any) -> str | None:
    """Host from the raw ASGI ``scope["client"]`` tuple."""
    scope = getattr(connection, "scope", None)
    if not isinstance(scope, dict):
        return None
    client = scope.get("client")
    if not client:
        return None
    return _clean(client[0])


def connection_id(connection: Any) -> str | None:
    """Websocket handshake key, unique per protocol-level connection."""
    headers = getattr(connection, "headers", None)
    if headers is None:
        return None
    return _clean(headers.get("sec-websocket-key"))


def session_id_extractor(cookie_name: str) -> ClientKeyExtractor:
    """Build an extractor reading the session identifier cookie."""

    def session_id(connection: Any) -> str | None:
        cookies = getattr(connection, "cookies", None)
        if not cookies:
            return None
        return _clean(cookies.get(cookie_name))

    return session_id


def default_extractors(
    *,
    trust_proxy_headers: bool = False,
    session_cookie_name: str = "session_id",
) -> list[ClientKeyExtractor]:
    """Return the standard extractor chain.

    ``X-Forwarded-For`` is client-controlled, so it is only consulted when the
    service sits behind a proxy that overwrites it.
    """
    extractors: list[ClientKeyExtractor] = []
    if trust_proxy_headers:
        extractors.append(handshake_address)
    extractors.extend(
        [
            transport_address,
            socket_address,
            connection_id,
            session_id_extractor(session_cookie_name),
        ]
    )
    return extractors


def resolve_client_key(connection: Any, extractors: Iterable[ClientKeyExtractor]) -> str:
    """Return the first non-empty key produced by ``extractors``, else ``"unknown"``."""
    for extractor in extractors:
        key = extractor(connection)
        if key:
            return key
    return UNKNOWN_CLIENT_KEY


def namespaced_key(namespace: str, client_key: str) -> str:
    """Prefix a client key so separate channels never share counters."""
    return f"{namespace}:{client_key}"
