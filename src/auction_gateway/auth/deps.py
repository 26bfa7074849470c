"""
auction_gateway.auth.deps

FastAPI dependency functions for authentication and authorization.

Responsibilities:
- Convert a bearer token into a typed `Principal`.
- Enforce the admin allow-list on top of a verified principal.
- Expose the untrusted, client-declared identity for display purposes.
"""

from __future__ import annotations

from fastapi import Depends, Request

from auction_gateway.api.deps import settings_dep, verifier_dep
from auction_gateway.auth.admin import require_admin
from auction_gateway.auth.models import DeclaredIdentity, Principal
from auction_gateway.auth.quick_auth import QuickAuthVerifier
from auction_gateway.settings import Settings


async def get_principal(
    request: Request,
    verifier: QuickAuthVerifier = Depends(verifier_dep),
) -> Principal:
    # Authn: errors propagate as GatewayError subclasses (mapped in `api.errors`).
    return await verifier.verify(request.headers.get("Authorization"))


def require_admin_principal(
    principal: Principal = Depends(get_principal),
    settings: Settings = Depends(settings_dep),
) -> Principal:
    # Authz: only reachable after get_principal succeeded.
    require_admin(principal, settings.admin_fids)
    return principal


def declared_identity(request: Request) -> DeclaredIdentity:
    return DeclaredIdentity.from_headers(request.headers)


# --- Module Notes -----------------------------------------------------------
# FastAPI caches `get_principal` per request, so routes that also depend on
# `require_admin_principal` verify the token once.
