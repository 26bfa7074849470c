"""
auction_gateway.auth.quick_auth

Token Verifier for Farcaster Quick Auth JWTs.

Responsibilities:
- Extract the bearer token from an Authorization header.
- Validate signature and registered claims (iss/aud/exp/iat) against the
  identity service's JWKS, bounded by a timeout.
- Convert the subject claim into a typed `Principal`.

Note:
- Only the signing key set is cached; tokens and principals never are.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Callable
from typing import Any

import httpx
import jwt
from jwt import InvalidTokenError, PyJWK, PyJWKSet

from auction_gateway.auth.models import Principal
from auction_gateway.errors import InvalidCredential, MissingCredential, VerificationError
from auction_gateway.observability.logging import get_logger

log = get_logger(__name__)

DEFAULT_ORIGIN = "https://auth.farcaster.xyz"
ALLOWED_ALGORITHMS = ["EdDSA", "ES256", "RS256"]
BEARER_PREFIX = "Bearer "


def trust_domain(origin: str) -> str:
    """
    "https://app.example.com/" -> "app.example.com"; "*" -> "localhost:3000".
    """

    domain = "localhost:3000" if origin == "*" else origin
    domain = re.sub(r"^https?://", "", domain)
    return re.sub(r"/$", "", domain)


def parse_bearer(authorization: str | None) -> str:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise MissingCredential("Authorization header missing or not a bearer token")
    token = authorization[len(BEARER_PREFIX) :].strip()
    if not token or " " in token:
        raise MissingCredential("Malformed bearer token")
    return token


class QuickAuthVerifier:
    def __init__(
        self,
        *,
        domain: str,
        origin: str = DEFAULT_ORIGIN,
        timeout_seconds: float = 5.0,
        jwks_cache_seconds: int = 3600,
        http: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.domain = domain
        self.origin = origin.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._jwks_cache_seconds = jwks_cache_seconds
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout_seconds)
        self._clock = clock
        self._keys: PyJWKSet | None = None
        self._fetched_at = 0.0
        self._refresh_lock = asyncio.Lock()

    @property
    def jwks_url(self) -> str:
        return f"{self.origin}/.well-known/jwks.json"

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def verify(self, authorization: str | None) -> Principal:
        """
        MissingCredential -> no/invalid header (no network call made).
        InvalidCredential -> token rejected. VerificationError -> anything else.
        """

        token = parse_bearer(authorization)
        log.debug("verifying_token", domain=self.domain)
        try:
            claims = await asyncio.wait_for(self._decode(token), timeout=self.timeout_seconds)
        except InvalidCredential:
            raise
        except InvalidTokenError as e:
            log.warning("invalid_token", error=str(e))
            raise InvalidCredential(str(e)) from e
        except TimeoutError as e:
            log.error("token_verification_timeout", timeout_s=self.timeout_seconds)
            raise VerificationError("token verification timed out") from e
        except Exception as e:
            log.exception("token_verification_failed")
            raise VerificationError(f"token verification failed: {e}") from e

        principal = Principal(id=_subject_fid(claims.get("sub")))
        log.debug("token_verified", fid=principal.id)
        return principal

    async def _decode(self, token: str) -> dict[str, Any]:
        header = jwt.get_unverified_header(token)
        key = await self._signing_key(header.get("kid"))
        return jwt.decode(
            token,
            key.key,
            algorithms=ALLOWED_ALGORITHMS,
            audience=self.domain,
            issuer=self.origin,
            leeway=5,
            options={
                "require": ["exp", "iat", "iss", "aud", "sub"],
                # Quick Auth subjects are numeric fids; checked in _subject_fid.
                "verify_sub": False,
            },
        )

    async def _signing_key(self, kid: str | None) -> PyJWK:
        keys = await self._key_set(force=False)
        key = _find_key(keys, kid)
        if key is None:
            # Key rotation: refetch once before giving up on the kid.
            keys = await self._key_set(force=True)
            key = _find_key(keys, kid)
        if key is None:
            raise InvalidCredential(f"no signing key matches kid {kid!r}")
        return key

    async def _key_set(self, *, force: bool) -> PyJWKSet:
        async with self._refresh_lock:
            fresh = self._keys is not None and self._clock() - self._fetched_at < self._jwks_cache_seconds
            if fresh and not force:
                return self._keys  # type: ignore[return-value]
            response = await self._http.get(self.jwks_url)
            response.raise_for_status()
            self._keys = PyJWKSet.from_dict(response.json())
            self._fetched_at = self._clock()
            log.info("jwks_refreshed", url=self.jwks_url, keys=len(self._keys.keys))
            return self._keys


def _find_key(keys: PyJWKSet, kid: str | None) -> PyJWK | None:
    if kid is None:
        return keys.keys[0] if len(keys.keys) == 1 else None
    for key in keys.keys:
        if key.key_id == kid:
            return key
    return None


def _subject_fid(sub: Any) -> int:
    if isinstance(sub, bool):
        raise InvalidCredential("token subject is not a fid")
    if isinstance(sub, int):
        fid = sub
    elif isinstance(sub, str) and sub.isdigit():
        fid = int(sub)
    else:
        raise InvalidCredential("token subject is not a fid")
    if fid <= 0:
        raise InvalidCredential("token subject is not a fid")
    return fid


# --- Module Notes -----------------------------------------------------------
# One verifier per process, created by the app factory; the trust domain is
# derived from CORS_ORIGIN so tokens minted for another mini app are rejected.
