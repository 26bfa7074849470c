"""
auction_gateway.api.__main__

Entrypoint for running the gateway via `python -m auction_gateway.api`.

Responsibilities:
- Load settings and create the app.
- Run uvicorn, which owns SIGINT/SIGTERM: stop accepting, then lifespan shutdown.
- Exit 1 when bootstrap fails before the listener is serving.
"""

from __future__ import annotations

import sys

import uvicorn
from pydantic import ValidationError

from auction_gateway.api.app import create_app
from auction_gateway.observability.logging import get_logger
from auction_gateway.settings import get_settings

log = get_logger(__name__)

EXIT_OK = 0
EXIT_BOOTSTRAP_FAILURE = 1


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as e:
        # Logging is not configured yet; structlog's defaults still print to stderr.
        log.error("invalid_configuration", errors=e.errors(include_url=False))
        sys.exit(EXIT_BOOTSTRAP_FAILURE)

    try:
        app = create_app(settings=settings)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=settings.host,
                port=settings.port,
                log_config=None,  # structlog
                lifespan="on",
                proxy_headers=settings.trust_proxy,
                forwarded_allow_ips="*" if settings.trust_proxy else None,
            )
        )
        server.run()
    except Exception:
        log.exception("fatal_bootstrap_error")
        sys.exit(EXIT_BOOTSTRAP_FAILURE)

    # Lifespan startup failures (e.g. warm-up exhausted) return without serving.
    sys.exit(EXIT_OK if server.started else EXIT_BOOTSTRAP_FAILURE)


if __name__ == "__main__":
    main()


# --- Module Notes -----------------------------------------------------------
# A second SIGINT/SIGTERM makes uvicorn force-exit; teardown itself is one-shot in
# `ConnectionSupervisor.stop()`.
