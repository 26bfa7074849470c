"""
auction_gateway.ratelimit.policies

The four admission tiers and the controller that owns one limiter per tier.

Responsibilities:
- Name each tier with its window, limit and client-facing message.
- Admit or reject a (tier, client address) pair, raising `RateLimited`.
"""

from __future__ import annotations

import enum
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from auction_gateway.errors import RateLimited
from auction_gateway.observability.logging import get_logger
from auction_gateway.ratelimit.limiter import FixedWindowRateLimiter, RateLimitResult

log = get_logger(__name__)


class Tier(str, enum.Enum):
    GENERAL = "general"
    STRICT = "strict"
    CRITICAL = "critical"
    AUTH = "auth"


@dataclass(frozen=True, slots=True)
class RateLimitPolicy:
    tier: Tier
    window_seconds: int
    limit: int
    message: str


DEFAULT_POLICIES: tuple[RateLimitPolicy, ...] = (
    # Default/public routes.
    RateLimitPolicy(
        Tier.GENERAL,
        window_seconds=15 * 60,
        limit=500,
        message="Too many requests from this IP, please try again later.",
    ),
    # Expensive reads.
    RateLimitPolicy(
        Tier.STRICT,
        window_seconds=15 * 60,
        limit=50,
        message="Too many requests for this resource, please try again later.",
    ),
    # State-mutating or cost-incurring operations; successful requests count too.
    RateLimitPolicy(
        Tier.CRITICAL,
        window_seconds=60 * 60,
        limit=20,
        message="This endpoint is rate-limited. Please contact admin if you need access.",
    ),
    # Brute-force protection for authentication attempts.
    RateLimitPolicy(
        Tier.AUTH,
        window_seconds=15 * 60,
        limit=10,
        message="Too many authentication attempts, please try again later.",
    ),
)


class AdmissionController:
    """
    One independent fixed-window limiter per tier; exhausting one tier leaves
    the others untouched.
    """

    def __init__(
        self,
        policies: Iterable[RateLimitPolicy] = DEFAULT_POLICIES,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.enabled = enabled
        self._policies: dict[Tier, RateLimitPolicy] = {}
        self._limiters: dict[Tier, FixedWindowRateLimiter] = {}
        for policy in policies:
            self._policies[policy.tier] = policy
            self._limiters[policy.tier] = FixedWindowRateLimiter(
                limit=policy.limit,
                window_seconds=policy.window_seconds,
                clock=clock,
            )

    def policy(self, tier: Tier) -> RateLimitPolicy:
        return self._policies[tier]

    def limiter(self, tier: Tier) -> FixedWindowRateLimiter:
        return self._limiters[tier]

    def admit(self, tier: Tier, client_address: str) -> RateLimitResult | None:
        """
        Returns the counter snapshot for an admitted request (None when disabled).
        Raises RateLimited once the client is over the tier's limit.
        """

        if not self.enabled:
            return None

        policy = self._policies[tier]
        result = self._limiters[tier].consume(client_address)
        if result.allowed:
            return result

        log.warning(
            "rate_limit_exceeded",
            tier=tier.value,
            ip=client_address,
            limit=result.limit,
            retry_after_s=result.retry_after,
        )
        raise RateLimited(
            policy.message,
            policy=tier.value,
            limit=result.limit,
            retry_after=result.retry_after or result.reset_after,
            reset_after=result.reset_after,
        )

    def reset(self) -> None:
        for limiter in self._limiters.values():
            limiter.reset()
