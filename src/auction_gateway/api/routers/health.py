"""
auction_gateway.api.routers.health

Health and readiness endpoints.

Responsibilities:
- Provide liveness probe (`/api/health`), no auth and no rate limit.
- Provide readiness probe (`/api/ready`) validating both stores.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection

from auction_gateway.api.deps import db_connection, kv_client

router = APIRouter(prefix="/api")


@router.get("/health")
async def health() -> dict[str, bool]:
    # Liveness: process is up and serving HTTP.
    return {"ok": True}


@router.get("/ready")
async def ready(
    conn: AsyncConnection = Depends(db_connection),
    client: Any = Depends(kv_client),
) -> dict[str, bool]:
    # Readiness: a pooled connection answers and the shared Redis client is open.
    await conn.execute(text("select 1"))
    await client.ping()
    return {"ok": True}


# --- Module Notes -----------------------------------------------------------
# Store failures on /api/ready fall through to the catch-all handler (generic 500).
