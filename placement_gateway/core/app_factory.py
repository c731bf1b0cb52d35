"""Application factory for the gateway.

Centralizes app construction (settings, limiters, middleware, handlers,
routers) so tests can build isolated instances with their own settings.
"""

from __future__ import annotations

from fastapi import FastAPI

from placement_gateway.api.routes import health_router, limits_router, realtime_router
from placement_gateway.core.client_identity import default_extractors
from placement_gateway.core.config import AppSettings, settings
from placement_gateway.core.exception_handlers import setup_exception_handlers
from placement_gateway.core.logging import configure_logging
from placement_gateway.core.middleware import request_id_middleware
from placement_gateway.core.rate_limit import build_http_rate_limiter, build_ws_rate_limiter
from placement_gateway.core.ws_rate_limit import WebSocketThrottle


def create_app(app_settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Optional override of ``settings.app`` (used by tests).

    Returns:
        Configured FastAPI app.

    Raises:
        ConfigurationAppError: If the rate limit settings are invalid.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    cfg = app_settings or settings.app

    app = FastAPI(
        title="Placement Gateway",
        description=(
            "Edge service for the placement-preparation platform. Applies "
            "per-client fixed-window rate limits to the HTTP API and to the "
            "realtime websocket channel."
        ),
        version="0.1.0",
        debug=cfg.debug,
    )

    # Limiters are owned by this app instance and built eagerly so bad
    # settings fail at startup rather than on the first request.
    app.state.app_settings = cfg
    app.state.http_rate_limiter = build_http_rate_limiter(cfg)
    app.state.ws_rate_limiter = build_ws_rate_limiter(cfg)
    app.state.ws_throttle = WebSocketThrottle(
        app.state.ws_rate_limiter,
        default_extractors(
            trust_proxy_headers=cfg.trust_proxy_headers,
            session_cookie_name=cfg.session_cookie_name,
        ),
        enabled=cfg.rate_limit_enabled,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(limits_router, prefix="/v1")
    app.include_router(realtime_router)
    app.include_router(health_router)

    return app
