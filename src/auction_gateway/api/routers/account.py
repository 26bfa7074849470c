"""
auction_gateway.api.routers.account

Routes that consume the verified principal.

Responsibilities:
- Confirm a Quick Auth token for the front-end (`/api/auth/verify`).
- Echo the caller's identity (`/api/me`).
- Admin-only probe (`/api/admin/ping`).
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from auction_gateway.auth.deps import declared_identity, get_principal, require_admin_principal
from auction_gateway.auth.models import DeclaredIdentity, Principal
from auction_gateway.ratelimit.deps import rate_limit
from auction_gateway.ratelimit.policies import Tier

router = APIRouter(prefix="/api", tags=["account"])


@router.post("/auth/verify", dependencies=[Depends(rate_limit(Tier.AUTH))])
async def verify_token(principal: Principal = Depends(get_principal)) -> dict[str, int]:
    return {"fid": principal.id}


@router.get("/me", dependencies=[Depends(rate_limit(Tier.GENERAL))])
async def me(
    principal: Principal = Depends(get_principal),
    declared: DeclaredIdentity = Depends(declared_identity),
) -> dict[str, Any]:
    # Declared headers are returned for display next to the verified fid, never trusted.
    return {
        "fid": principal.id,
        "declared": {
            "fid": declared.fid,
            "username": declared.username,
            "pfp": declared.pfp,
        },
    }


@router.get("/admin/ping", dependencies=[Depends(rate_limit(Tier.STRICT))])
async def admin_ping(principal: Principal = Depends(require_admin_principal)) -> dict[str, Any]:
    return {"ok": True, "fid": principal.id}


# --- Module Notes -----------------------------------------------------------
# Dependency order is admission -> verification -> admin gate: route-level
# `dependencies` resolve before the endpoint's own parameters.
