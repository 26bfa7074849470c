"""
tests.test_retry

Retry policy, backoff combinator and transient-error classification.
"""

from __future__ import annotations

import errno

import pytest
from sqlalchemy.exc import OperationalError

from auction_gateway.db.retry import RetryPolicy, is_transient_connect_error, retry_with_backoff


class Recorder:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def failing(times: int, exc_factory):
    calls = {"n": 0}

    async def op() -> str:
        calls["n"] += 1
        if calls["n"] <= times:
            raise exc_factory()
        return "ok"

    return op, calls


def test_delay_schedule_doubles_and_caps() -> None:
    policy = RetryPolicy(max_attempts=5, base_delay=0.3, max_delay=2.0)
    assert list(policy.delays()) == pytest.approx([0.3, 0.6, 1.2, 2.0])


@pytest.mark.parametrize("kwargs", [{"max_attempts": 0}, {"base_delay": -1.0}])
def test_invalid_policy(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


@pytest.mark.parametrize(
    "exc",
    [
        ConnectionRefusedError(errno.ECONNREFUSED, "refused"),
        ConnectionResetError(errno.ECONNRESET, "reset"),
        TimeoutError(),
        OSError(errno.ETIMEDOUT, "timed out"),
        OSError(errno.ECONNREFUSED, "refused"),
    ],
)
def test_transient_errors(exc: BaseException) -> None:
    assert is_transient_connect_error(exc) is True


def test_transient_error_found_on_sqlalchemy_orig() -> None:
    wrapped = OperationalError("select 1", {}, ConnectionRefusedError(errno.ECONNREFUSED, "refused"))
    assert is_transient_connect_error(wrapped) is True


def test_transient_error_found_on_cause_chain() -> None:
    try:
        try:
            raise ConnectionResetError(errno.ECONNRESET, "reset")
        except ConnectionResetError as inner:
            raise RuntimeError("driver failed") from inner
    except RuntimeError as outer:
        assert is_transient_connect_error(outer) is True


@pytest.mark.parametrize("exc", [ValueError("bad"), PermissionError(errno.EACCES, "denied")])
def test_non_transient_errors(exc: BaseException) -> None:
    assert is_transient_connect_error(exc) is False


@pytest.mark.asyncio
async def test_succeeds_after_two_refusals_with_non_decreasing_delays() -> None:
    op, calls = failing(2, lambda: ConnectionRefusedError(errno.ECONNREFUSED, "refused"))
    sleep = Recorder()

    result = await retry_with_backoff(op, RetryPolicy(), sleep=sleep)

    assert result == "ok"
    assert calls["n"] == 3
    assert len(sleep.delays) == 2
    assert sleep.delays[1] >= sleep.delays[0]


@pytest.mark.asyncio
async def test_exhaustion_reraises_last_error() -> None:
    op, calls = failing(10, lambda: ConnectionRefusedError(errno.ECONNREFUSED, "refused"))
    sleep = Recorder()

    with pytest.raises(ConnectionRefusedError):
        await retry_with_backoff(op, RetryPolicy(max_attempts=5), sleep=sleep)

    assert calls["n"] == 5
    assert sleep.delays == pytest.approx([0.3, 0.6, 1.2, 2.0])


@pytest.mark.asyncio
async def test_non_retriable_error_is_not_retried() -> None:
    op, calls = failing(1, lambda: ValueError("syntax error"))
    sleep = Recorder()

    with pytest.raises(ValueError):
        await retry_with_backoff(op, RetryPolicy(), sleep=sleep)

    assert calls["n"] == 1
    assert sleep.delays == []


@pytest.mark.asyncio
async def test_custom_retriable_predicate() -> None:
    op, calls = failing(1, lambda: KeyError("flaky"))
    policy = RetryPolicy(max_attempts=2, base_delay=0.0, is_retriable=lambda e: isinstance(e, KeyError))

    assert await retry_with_backoff(op, policy, sleep=Recorder()) == "ok"
    assert calls["n"] == 2
