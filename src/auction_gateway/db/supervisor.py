"""
auction_gateway.db.supervisor

Connection Supervisor: the single owner of the PostgreSQL pool and Redis handle.

Responsibilities:
- Build the pool eagerly at start; optionally warm it up (retrying, single-flight).
- Hand out the shared Redis client lazily.
- Tear both resources down exactly once, attempting each even if the other fails.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine

from auction_gateway.db.kv import Connector, KeyValueHandle, redis_connector, redis_is_open
from auction_gateway.db.retry import RetryPolicy
from auction_gateway.db.session import WARMUP_POLICY, create_engine, warm_up
from auction_gateway.observability.logging import get_logger
from auction_gateway.settings import Settings

log = get_logger(__name__)


class ConnectionSupervisor:
    """
    Lifecycle: `start()` -> ready, `stop()` -> drained.
    Constructed once per process by the app factory and stored on `app.state`.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        engine_factory: Callable[[Settings], AsyncEngine] = create_engine,
        kv_connector: Connector | None = None,
        kv_is_open: Callable[[Any], bool] = redis_is_open,
        warmup_policy: RetryPolicy = WARMUP_POLICY,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._settings = settings
        self._engine_factory = engine_factory
        self._warmup_policy = warmup_policy
        self._sleep = sleep
        self._engine: AsyncEngine | None = None
        self._kv = KeyValueHandle(
            kv_connector or redis_connector(settings.redis_url),
            is_open=kv_is_open,
        )
        self._warmup_lock = asyncio.Lock()
        self._warmup_task: asyncio.Task[None] | None = None
        self._stopped = False
        self._stop_lock = asyncio.Lock()

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("ConnectionSupervisor.start() has not been called")
        return self._engine

    @property
    def kv(self) -> KeyValueHandle:
        return self._kv

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def start(self) -> None:
        if self._engine is None:
            self._engine = self._engine_factory(self._settings)
            log.info("postgres_pool_created")
        if self._settings.db_warmup_on_start:
            timeout = self._settings.db_warmup_timeout_seconds
            try:
                await asyncio.wait_for(self.ensure_ready(), timeout=timeout)
            except TimeoutError:
                # The shielded attempt outlives wait_for; stop it and collect its outcome.
                task = self._warmup_task
                if task is not None:
                    task.cancel()
                    await asyncio.gather(task, return_exceptions=True)
                log.error("postgres_warmup_timeout", timeout_s=timeout)
                raise

    async def ensure_ready(self) -> None:
        """
        Warm the pool up. Safe to call any number of times; concurrent callers
        share one in-flight attempt and observe the same outcome.
        """

        async with self._warmup_lock:
            if self._warmup_task is None:
                self._warmup_task = asyncio.ensure_future(self._run_warm_up())
            task = self._warmup_task
        await asyncio.shield(task)

    async def _run_warm_up(self) -> None:
        try:
            await warm_up(self.engine, policy=self._warmup_policy, sleep=self._sleep)
        finally:
            # Next call runs a fresh probe.
            self._warmup_task = None

    async def get_kv_client(self) -> Any:
        return await self._kv.get()

    async def stop(self) -> None:
        """
        Close the pool, then the Redis client. Failures are logged, never fatal
        to the other close. Later calls are no-ops.
        """

        async with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True

        log.info("shutting_down_connections")
        if self._engine is not None:
            try:
                # dispose() closes checked-in connections; checked-out ones close on return.
                await self._engine.dispose()
                log.info("postgres_pool_closed")
            except Exception:
                log.exception("postgres_pool_close_failed")

        try:
            await self._kv.close()
        except Exception:
            log.exception("redis_close_failed")


# --- Module Notes -----------------------------------------------------------
# Tests inject `engine_factory`, `kv_connector` and `sleep` instead of talking to
# live stores.
