"""
auction_gateway.observability.middleware

Per-request log context for the gateway.

Responsibilities:
- Carry an `x-request-id` through the request and echo it on the response.
- Bind request metadata (id, method, path, client address) into structlog contextvars.
- Emit "incoming_request" on arrival and "request_completed" with status and latency.
"""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from auction_gateway.observability.logging import get_logger
from auction_gateway.ratelimit.deps import client_address

log = get_logger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: ASGIApp, *, trust_proxy: bool = False) -> None:
        super().__init__(app)
        self._trust_proxy = trust_proxy

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        started = time.perf_counter()

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client=client_address(request, trust_proxy=self._trust_proxy),
        )
        log.info(
            "incoming_request",
            query=dict(request.query_params) or None,
            origin=request.headers.get("origin") or request.headers.get("referer"),
        )
        try:
            response = await call_next(request)
            log.info(
                "request_completed",
                status=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        finally:
            structlog.contextvars.clear_contextvars()

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


# --- Module Notes -----------------------------------------------------------
# The client address bound here is the same key the admission controller counts
# against, so rate-limit warnings and request lines correlate.
