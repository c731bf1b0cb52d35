from __future__ import annotations

from placement_gateway.api.routes.health import router as health_router
from placement_gateway.api.routes.limits import router as limits_router
from placement_gateway.api.routes.realtime import router as realtime_router

__all__ = ["health_router", "limits_router", "realtime_router"]
