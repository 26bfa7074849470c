"""
auction_gateway.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings and the supervised stores.
- Encapsulate app.state access patterns (settings/supervisor/verifier/admission).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncConnection

from auction_gateway.auth.quick_auth import QuickAuthVerifier
from auction_gateway.db.supervisor import ConnectionSupervisor
from auction_gateway.ratelimit.policies import AdmissionController
from auction_gateway.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Settings are fixed at app creation (see `api.app.create_app`).
    return request.app.state.settings  # type: ignore[attr-defined]


def supervisor_dep(request: Request) -> ConnectionSupervisor:
    return request.app.state.supervisor  # type: ignore[attr-defined]


def verifier_dep(request: Request) -> QuickAuthVerifier:
    return request.app.state.verifier  # type: ignore[attr-defined]


def admission_dep(request: Request) -> AdmissionController:
    return request.app.state.admission  # type: ignore[attr-defined]


async def db_connection(
    supervisor: ConnectionSupervisor = Depends(supervisor_dep),
) -> AsyncIterator[AsyncConnection]:
    # Request-scoped pool checkout; returned to the pool when the request ends.
    async with supervisor.engine.connect() as conn:
        yield conn


async def kv_client(supervisor: ConnectionSupervisor = Depends(supervisor_dep)) -> Any:
    return await supervisor.get_kv_client()


# --- Module Notes -----------------------------------------------------------
# Handlers never touch app.state directly; everything flows through these functions
# so tests can swap services via `app.dependency_overrides`.
