"""
auction_gateway.db.retry

Retry policy + exponential backoff combinator.

Responsibilities:
- Describe retry behaviour as data (`RetryPolicy`).
- Run any awaitable factory under that policy, independent of what is retried.
- Classify transport-level connect failures as retriable.
"""

from __future__ import annotations

import asyncio
import errno
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from typing import TypeVar

from auction_gateway.observability.logging import get_logger

T = TypeVar("T")

log = get_logger(__name__)

TRANSIENT_ERRNOS: frozenset[int] = frozenset({errno.ECONNREFUSED, errno.ETIMEDOUT, errno.ECONNRESET})


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    stack: list[BaseException | None] = [exc]
    while stack:
        current = stack.pop()
        if current is None or id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        # SQLAlchemy keeps the DBAPI error on `.orig`.
        orig = getattr(current, "orig", None)
        if isinstance(orig, BaseException):
            stack.append(orig)
        stack.append(current.__cause__)
        stack.append(current.__context__)


def is_transient_connect_error(exc: BaseException) -> bool:
    """
    True for connection-refused / timed-out / connection-reset, wherever they
    sit on the exception's cause chain.
    """

    for err in _exception_chain(exc):
        if isinstance(err, (ConnectionRefusedError, ConnectionResetError, TimeoutError)):
            return True
        if isinstance(err, OSError) and err.errno in TRANSIENT_ERRNOS:
            return True
    return False


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    max_attempts: int = 5
    base_delay: float = 0.3
    max_delay: float = 2.0
    is_retriable: Callable[[BaseException], bool] = field(default=is_transient_connect_error)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be >= 0")

    def delays(self) -> Iterator[float]:
        # One delay between each pair of attempts: base, 2*base, 4*base, ... capped.
        delay = self.base_delay
        for _ in range(self.max_attempts - 1):
            yield min(delay, self.max_delay)
            delay = min(delay * 2, self.max_delay)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    label: str = "operation",
) -> T:
    """
    Await `operation()` until it succeeds, a non-retriable error occurs, or the
    attempt budget is spent. The last error is re-raised unchanged.
    """

    delays = policy.delays()
    attempt = 0
    while True:
        attempt += 1
        try:
            result = await operation()
        except Exception as e:
            if not policy.is_retriable(e):
                raise
            delay = next(delays, None)
            if delay is None:
                log.error("retry_exhausted", label=label, attempts=attempt, error=str(e))
                raise
            log.warning("retry_scheduled", label=label, attempt=attempt, delay_s=delay, error=str(e))
            await sleep(delay)
            continue

        if attempt > 1:
            log.info("retry_succeeded", label=label, attempt=attempt)
        return result


# --- Module Notes -----------------------------------------------------------
# `sleep` is injectable so tests can record delays without waiting on the clock.
