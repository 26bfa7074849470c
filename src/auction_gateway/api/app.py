"""
auction_gateway.api.app

FastAPI app factory for the auction gateway.

Responsibilities:
- Build the FastAPI application and register routers/middleware/handlers.
- Construct the process-wide services (supervisor, verifier, admission) once.
- Start and drain shared infrastructure through the application lifespan.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from auction_gateway import __version__
from auction_gateway.api.errors import install_error_handlers
from auction_gateway.api.routers.account import router as account_router
from auction_gateway.api.routers.example import router as example_router
from auction_gateway.api.routers.health import router as health_router
from auction_gateway.auth.models import FID_HEADER, PFP_HEADER, USERNAME_HEADER
from auction_gateway.auth.quick_auth import QuickAuthVerifier, trust_domain
from auction_gateway.db.supervisor import ConnectionSupervisor
from auction_gateway.observability.logging import configure_logging, get_logger
from auction_gateway.observability.middleware import RequestContextMiddleware
from auction_gateway.ratelimit.policies import AdmissionController
from auction_gateway.settings import Settings

log = get_logger(__name__)

CORS_HEADERS = [
    "Content-Type",
    "Authorization",
    FID_HEADER,
    "x-fid",
    "x-user-fid",
    USERNAME_HEADER,
    PFP_HEADER,
]


def create_app(
    *,
    settings: Settings,
    supervisor: ConnectionSupervisor | None = None,
    verifier: QuickAuthVerifier | None = None,
    admission: AdmissionController | None = None,
) -> FastAPI:
    # Configure structured logging once at process startup (before app serves requests).
    configure_logging(service_name=settings.service_name, level=settings.log_level, env=settings.env)

    supervisor = supervisor or ConnectionSupervisor(settings)
    verifier = verifier or QuickAuthVerifier(
        domain=trust_domain(settings.cors_origin),
        origin=settings.quick_auth_origin,
        timeout_seconds=settings.quick_auth_timeout_seconds,
        jwks_cache_seconds=settings.jwks_cache_seconds,
    )
    admission = admission or AdmissionController(enabled=settings.rate_limit_enabled)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info(
            "startup",
            env=settings.env,
            log_level=settings.log_level,
            port=settings.port,
            trust_domain=verifier.domain,
        )
        if not settings.admin_fids:
            # Admin routes will answer 500 until ADMINS is set.
            log.warning("admin_allow_list_empty")
        try:
            await supervisor.start()
            yield
        finally:
            await supervisor.stop()
            await verifier.aclose()
            log.info("shutdown")

    app = FastAPI(
        title="Auction Gateway",
        version=__version__,
        lifespan=lifespan,
    )

    # Services live on app.state; routers reach them via `api.deps`.
    app.state.settings = settings
    app.state.supervisor = supervisor
    app.state.verifier = verifier
    app.state.admission = admission

    app.add_middleware(RequestContextMiddleware, trust_proxy=settings.trust_proxy)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.cors_origin == "*" else [settings.cors_origin],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=CORS_HEADERS,
        allow_credentials=False,
    )
    install_error_handlers(app)

    app.include_router(health_router, tags=["health"])
    app.include_router(example_router)
    app.include_router(account_router)

    # Images; mounted last so API routes always win.
    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir), name="static")

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; request-admission and auth policy live in their
# own packages and are attached per route.
