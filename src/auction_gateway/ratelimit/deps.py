"""
auction_gateway.ratelimit.deps

FastAPI dependency factory applying an admission tier to a route.

Usage:
    @router.post("/example", dependencies=[Depends(rate_limit(Tier.CRITICAL))])
"""

from __future__ import annotations

from fastapi import Depends, Request, Response

from auction_gateway.api.deps import admission_dep, settings_dep
from auction_gateway.ratelimit.policies import AdmissionController, Tier
from auction_gateway.settings import Settings


def client_address(request: Request, *, trust_proxy: bool) -> str:
    """
    Left-most X-Forwarded-For hop when running behind a trusted proxy,
    otherwise the socket peer.
    """

    if trust_proxy:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit(tier: Tier):
    def _dep(
        request: Request,
        response: Response,
        admission: AdmissionController = Depends(admission_dep),
        settings: Settings = Depends(settings_dep),
    ) -> None:
        address = client_address(request, trust_proxy=settings.trust_proxy)
        result = admission.admit(tier, address)
        if result is None:
            return
        # IETF draft RateLimit-* headers (rejections get them from `api.errors`).
        response.headers["RateLimit-Limit"] = str(result.limit)
        response.headers["RateLimit-Remaining"] = str(result.remaining)
        response.headers["RateLimit-Reset"] = str(result.reset_after)

    return _dep
