from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers.

    Not rate limited, so monitoring never sees a 429.
    """

    return {"status": "ok", "service": "placement-gateway"}
