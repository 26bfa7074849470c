"""
auction_gateway.observability.logging

Structured logging configuration for the service.

Responsibilities:
- Configure `structlog` (JSON in production, console renderer elsewhere).
- Redact credentials before any renderer sees them.
- Provide a small wrapper for obtaining bound loggers.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping
from typing import Any

import structlog

# pino level names are what operators already put in LOG_LEVEL.
_LEVELS: dict[str, int] = {
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
    "silent": logging.CRITICAL + 10,
}

REDACTED_KEYS: frozenset[str] = frozenset(
    {"password", "token", "api_key", "apikey", "private_key", "privatekey", "authorization", "cookie"}
)
REDACTED = "[REDACTED]"


def resolve_level(level: str) -> int:
    return _LEVELS.get(level.strip().lower(), logging.INFO)


def configure_logging(*, service_name: str, level: str, env: str) -> None:
    """
    JSON logs in production, human-readable console output everywhere else.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=resolve_level(level),
        force=True,
    )

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_static_fields(service=service_name, env=env),
        redact_sensitive,
    ]
    renderers: list[Any]
    if env.lower() in ("production", "prod"):
        # dict_tracebacks yields a structured list; only the JSON renderer accepts it.
        renderers = [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        # ConsoleRenderer formats exc_info itself.
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    # structlog processors run on each log event; keep this list focused and stable.
    structlog.configure(
        processors=shared + renderers,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _add_static_fields(**fields: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in fields.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def _redact(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: REDACTED if str(k).lower() in REDACTED_KEYS else _redact(v) for k, v in value.items()}
    return value


def redact_sensitive(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    # Nested mappings (e.g. headers) are redacted too.
    return {k: REDACTED if k.lower() in REDACTED_KEYS else _redact(v) for k, v in event_dict.items()}


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


# --- Module Notes -----------------------------------------------------------
# Request-scoped metadata is bound via contextvars in `observability.middleware`.
