from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from placement_gateway.core.rate_limit import enforce_rate_limit
from placement_gateway.schemas.limits import LimiterStats, LimitsResponse

router = APIRouter(tags=["Limits"])


@router.get(
    "/limits",
    response_model=LimitsResponse,
    dependencies=[Depends(enforce_rate_limit)],
)
def get_limits(request: Request) -> LimitsResponse:
    """Report the configured limits and store metrics for both channels.

    Counts against the caller's HTTP budget like any other API route.
    """

    state = request.app.state
    return LimitsResponse(
        enabled=state.app_settings.rate_limit_enabled,
        http=LimiterStats(**state.http_rate_limiter.stats()),
        websocket=LimiterStats(**state.ws_rate_limiter.stats()),
    )
