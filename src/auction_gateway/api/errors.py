"""
auction_gateway.api.errors

Exception handlers mapping the error taxonomy onto HTTP responses.

Responsibilities:
- Turn `GatewayError` subclasses into `{"error": <public message>}` with their status.
- Answer anything unexpected with a generic 500 while logging full context.
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from auction_gateway.errors import ConfigurationError, GatewayError, RateLimited
from auction_gateway.observability.logging import get_logger

log = get_logger(__name__)


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    headers: dict[str, str] = {}
    if isinstance(exc, RateLimited):
        headers = {
            "Retry-After": str(exc.retry_after),
            "RateLimit-Limit": str(exc.limit),
            "RateLimit-Remaining": "0",
            "RateLimit-Reset": str(exc.reset_after),
        }
    elif isinstance(exc, ConfigurationError):
        # Operator mistake: surface loudly in logs, stay generic on the wire.
        log.error("configuration_error", error=str(exc), path=request.url.path)
    else:
        log.info("request_rejected", status=exc.status_code, error_type=type(exc).__name__)

    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.public_message},
        headers=headers or None,
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.error(
        "request_handler_error",
        error_type=type(exc).__name__,
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(GatewayError, gateway_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)


# --- Module Notes -----------------------------------------------------------
# Starlette routes `Exception` handlers through ServerErrorMiddleware, which still
# re-raises after responding; uvicorn logs that traceback separately.
