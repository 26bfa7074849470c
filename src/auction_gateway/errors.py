"""
auction_gateway.errors

Error taxonomy shared by the auth, admission and store layers.

Responsibilities:
- Give every expected failure a type and an HTTP status.
- Carry a public message that is safe to return to clients.
"""

from __future__ import annotations


class GatewayError(Exception):
    """
    Base for failures that map onto an HTTP response.
    `public_message` is what the client sees; `str(exc)` may hold internal detail.
    """

    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, detail: str | None = None, *, public_message: str | None = None) -> None:
        if public_message is not None:
            self.public_message = public_message
        super().__init__(detail or self.public_message)


class AuthError(GatewayError):
    status_code = 401
    public_message = "Authentication failed"


class MissingCredential(AuthError):
    public_message = "Missing or invalid authorization header"


class InvalidCredential(AuthError):
    public_message = "Invalid token"


class VerificationError(AuthError):
    public_message = "Authentication failed"


class Forbidden(GatewayError):
    status_code = 403
    public_message = "Admin access required"


class ConfigurationError(GatewayError):
    # Operator mistake, not a client fault.
    status_code = 500
    public_message = "Admin configuration missing"


class RateLimited(GatewayError):
    status_code = 429
    public_message = "Too many requests, please try again later."

    def __init__(
        self,
        message: str,
        *,
        policy: str,
        limit: int,
        retry_after: int,
        reset_after: int,
    ) -> None:
        super().__init__(f"rate limit exceeded for policy {policy}", public_message=message)
        self.policy = policy
        self.limit = limit
        self.retry_after = retry_after
        self.reset_after = reset_after


class StoreError(GatewayError):
    pass


class TransientStoreError(StoreError):
    """Retriable connection failure that outlived the retry budget."""


class FatalStoreError(StoreError):
    """Non-retriable store failure."""


# --- Module Notes -----------------------------------------------------------
# HTTP mapping lives in `api.errors`; these classes stay framework-free so the
# verifier/gate/limiter can be unit tested without FastAPI.
