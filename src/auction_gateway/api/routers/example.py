"""
auction_gateway.api.routers.example

Placeholder business route.

Responsibilities:
- Show the minimal wiring for a rate-limited, unauthenticated endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from auction_gateway.observability.logging import get_logger
from auction_gateway.ratelimit.deps import rate_limit
from auction_gateway.ratelimit.policies import Tier

log = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["example"])


@router.post("/example", dependencies=[Depends(rate_limit(Tier.CRITICAL))])
async def example() -> dict[str, bool]:
    # Rate-limited only; no bearer token required.
    log.debug("example_called")
    return {"ok": True}


# --- Module Notes -----------------------------------------------------------
# Critical tier: 20 requests per client address per hour.
