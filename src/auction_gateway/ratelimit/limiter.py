"""
auction_gateway.ratelimit.limiter

In-memory fixed-window counter, one instance per policy.

Notes:
- A window starts at a key's first request, not on a clock boundary.
- Per-process only: several workers multiply the effective limit.
- Thread-safe: a lock guards the window map.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    """
    allowed: whether the request may proceed.
    limit: max requests per window.
    remaining: requests left in the current window (0 once blocked).
    reset_after: seconds until the current window ends.
    retry_after: seconds to wait when blocked, else None.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_after: int
    retry_after: int | None


@dataclass
class _WindowState:
    window_start: float
    count: int


class FixedWindowRateLimiter:
    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._state_by_key: dict[str, _WindowState] = {}
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._state_by_key)

    def _expired(self, state: _WindowState, now: float) -> bool:
        return now - state.window_start > self.window_seconds

    def _sweep(self, now: float) -> None:
        # Drop finished windows at most once per window length.
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for key in [k for k, s in self._state_by_key.items() if self._expired(s, now)]:
            del self._state_by_key[key]

    def consume(self, key: str) -> RateLimitResult:
        """
        Count one hit for `key`. Hits past the limit are still counted.
        """

        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()
        with self._lock:
            self._sweep(now)
            state = self._state_by_key.get(key)
            if state is None or self._expired(state, now):
                state = _WindowState(window_start=now, count=0)
                self._state_by_key[key] = state
            state.count += 1
            count, window_start = state.count, state.window_start

        reset_after = max(1, int(math.ceil(window_start + self.window_seconds - now)))
        if count <= self.limit:
            return RateLimitResult(
                allowed=True,
                limit=self.limit,
                remaining=self.limit - count,
                reset_after=reset_after,
                retry_after=None,
            )
        return RateLimitResult(
            allowed=False,
            limit=self.limit,
            remaining=0,
            reset_after=reset_after,
            retry_after=reset_after,
        )

    def reset(self, key: str | None = None) -> None:
        with self._lock:
            if key is None:
                self._state_by_key.clear()
            else:
                self._state_by_key.pop(key, None)
