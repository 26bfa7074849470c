"""
auction_gateway.db.session

Async SQLAlchemy engine (relational pool) helpers.

Responsibilities:
- Create the bounded async engine from settings.
- Warm the pool up with a trivial round-trip under a retry policy.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from auction_gateway.db.retry import RetryPolicy, retry_with_backoff
from auction_gateway.errors import FatalStoreError, TransientStoreError
from auction_gateway.observability.logging import get_logger
from auction_gateway.settings import Settings

log = get_logger(__name__)

POOL_MAX_SIZE = 5
POOL_IDLE_TIMEOUT_S = 30
POOL_CONNECT_TIMEOUT_S = 10

WARMUP_POLICY = RetryPolicy(max_attempts=5, base_delay=0.3, max_delay=2.0)


def create_engine(settings: Settings) -> AsyncEngine:
    # No I/O happens here; connections are opened on first checkout.
    return create_async_engine(
        settings.postgres_url,
        pool_size=POOL_MAX_SIZE,
        max_overflow=0,
        pool_timeout=POOL_CONNECT_TIMEOUT_S,
        pool_recycle=POOL_IDLE_TIMEOUT_S,
        # pool_pre_ping stands in for TCP keepalive: dead sockets are replaced on checkout.
        pool_pre_ping=True,
        connect_args={"timeout": POOL_CONNECT_TIMEOUT_S},
    )


async def ping(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("select 1"))


async def warm_up(
    engine: AsyncEngine,
    *,
    policy: RetryPolicy = WARMUP_POLICY,
    sleep: Callable[[float], Awaitable[None]] | None = None,
) -> None:
    """
    Round-trip `select 1`, retrying transient connect failures.
    Raises TransientStoreError once retries run out, FatalStoreError otherwise.
    """

    kwargs = {} if sleep is None else {"sleep": sleep}
    try:
        await retry_with_backoff(lambda: ping(engine), policy, label="postgres.warm_up", **kwargs)
    except Exception as e:
        if policy.is_retriable(e):
            raise TransientStoreError(f"PostgreSQL unreachable after {policy.max_attempts} attempts: {e}") from e
        raise FatalStoreError(f"PostgreSQL warm-up failed: {e}") from e
    log.info("postgres_warm_up_ok")


# --- Module Notes -----------------------------------------------------------
# Request handlers should use `engine.connect()` / `engine.begin()` in an
# `async with` block so connections always go back to the pool.
