"""
auction_gateway.db.kv

Shared Redis client with single-flight connects.

Responsibilities:
- Track the handle as an explicit state machine (idle/connecting/open/failed/closed).
- Guarantee at most one connect attempt in flight; every waiter sees its outcome.
- Reconnect on next use once the open connection reports itself closed.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis

from auction_gateway.errors import FatalStoreError
from auction_gateway.observability.logging import get_logger

log = get_logger(__name__)

REDIS_SOCKET_TIMEOUT_S = 5.0

Connector = Callable[[], Awaitable[Any]]


class KvState(str, enum.Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    FAILED = "failed"
    CLOSED = "closed"


def redis_connector(url: str) -> Connector:
    """
    Build a connect coroutine factory for one dedicated Redis connection.
    """

    async def connect() -> redis.Redis:
        client = redis.from_url(
            url,
            decode_responses=True,
            single_connection_client=True,
            socket_connect_timeout=REDIS_SOCKET_TIMEOUT_S,
            socket_timeout=REDIS_SOCKET_TIMEOUT_S,
        )
        try:
            # initialize() checks out (and opens) the dedicated connection.
            await client.initialize()
            await client.ping()
        except Exception:
            await client.aclose()
            raise
        return client

    return connect


def redis_is_open(client: Any) -> bool:
    conn = getattr(client, "connection", None)
    return conn is not None and bool(getattr(conn, "is_connected", False))


class KeyValueHandle:
    """
    Idle -> Connecting(shared task) -> Open(client) | Failed(error).
    Failed and stale-Open go back through Connecting on the next `get()`.
    """

    def __init__(
        self,
        connect: Connector,
        *,
        is_open: Callable[[Any], bool] = redis_is_open,
        label: str = "redis",
    ) -> None:
        self._connect = connect
        self._is_open = is_open
        self._label = label
        self._lock = asyncio.Lock()
        self._state = KvState.IDLE
        self._client: Any | None = None
        self._pending: asyncio.Task[Any] | None = None
        self._last_error: BaseException | None = None

    @property
    def state(self) -> KvState:
        return self._state

    @property
    def last_error(self) -> BaseException | None:
        return self._last_error

    def _open_client(self) -> Any | None:
        client = self._client
        if self._state is KvState.OPEN and client is not None and self._is_open(client):
            return client
        return None

    async def get(self) -> Any:
        # Fast path: no suspension when a live connection exists.
        client = self._open_client()
        if client is not None:
            return client

        async with self._lock:
            client = self._open_client()
            if client is not None:
                return client
            if self._state is KvState.CLOSED:
                raise FatalStoreError(f"{self._label} client has been shut down")
            if self._pending is None:
                stale, self._client = self._client, None
                self._state = KvState.CONNECTING
                self._pending = asyncio.ensure_future(self._run_connect(stale))
                # Mark the outcome as retrieved even if every waiter was cancelled.
                self._pending.add_done_callback(_consume_outcome)
            pending = self._pending

        # shield: a cancelled waiter must not cancel the attempt others share.
        return await asyncio.shield(pending)

    async def _run_connect(self, stale: Any | None) -> Any:
        if stale is not None:
            await self._close_quietly(stale, reason="stale")
        try:
            client = await self._connect()
        except BaseException as e:
            if self._state is not KvState.CLOSED:
                self._state = KvState.FAILED
            self._last_error = e
            self._pending = None
            log.error("kv_connect_failed", store=self._label, error=str(e))
            raise

        self._pending = None
        if self._state is KvState.CLOSED:
            # Shut down while connecting; do not resurrect the handle.
            await self._close_quietly(client, reason="closed_during_connect")
            raise FatalStoreError(f"{self._label} client has been shut down")

        self._client = client
        self._state = KvState.OPEN
        self._last_error = None
        log.info("kv_connected", store=self._label)
        return client

    async def _close_quietly(self, client: Any, *, reason: str) -> None:
        try:
            await client.aclose()
        except Exception:
            log.exception("kv_close_failed", store=self._label, reason=reason)

    async def close(self) -> None:
        """
        Gracefully close the connection (if any). A connect still in flight is
        awaited; it sees the closed state and releases its own client.
        Repeated calls are no-ops.
        """

        async with self._lock:
            if self._state is KvState.CLOSED:
                return
            # Stale clients are closed too; only the reference matters here.
            client, self._client = self._client, None
            pending = self._pending
            self._state = KvState.CLOSED

        if pending is not None:
            await asyncio.gather(pending, return_exceptions=True)

        if client is not None:
            await client.aclose()
            log.info("kv_closed", store=self._label)


def _consume_outcome(task: asyncio.Task[Any]) -> None:
    if not task.cancelled():
        task.exception()


# --- Module Notes -----------------------------------------------------------
# Only `db.supervisor.ConnectionSupervisor` constructs this handle; request code
# reaches it through the `kv_client` dependency in `api.deps`.
