"""
tests.conftest

Shared fakes and builders.

Responsibilities:
- Stand in for PostgreSQL/Redis/the identity service without live services.
- Mint Quick Auth style EdDSA tokens against an in-memory JWKS.
"""

from __future__ import annotations

import json
import time
from contextlib import asynccontextmanager
from typing import Any

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from jwt.algorithms import OKPAlgorithm

from auction_gateway.api.app import create_app
from auction_gateway.auth.quick_auth import QuickAuthVerifier
from auction_gateway.db.retry import RetryPolicy
from auction_gateway.db.supervisor import ConnectionSupervisor
from auction_gateway.ratelimit.policies import AdmissionController
from auction_gateway.settings import Settings

ORIGIN = "https://auth.farcaster.xyz"
DOMAIN = "miniapp.example.com"
KID = "test-key"


class FakeConnection:
    async def execute(self, statement: Any) -> None:
        return None


class FakeEngine:
    """
    `connect()` raises the queued errors in order, then succeeds.
    """

    def __init__(self, failures: list[BaseException] | None = None) -> None:
        self.failures = list(failures or [])
        self.connect_calls = 0
        self.dispose_calls = 0
        self.dispose_error: BaseException | None = None

    @asynccontextmanager
    async def connect(self):
        self.connect_calls += 1
        if self.failures:
            raise self.failures.pop(0)
        yield FakeConnection()

    async def dispose(self) -> None:
        self.dispose_calls += 1
        if self.dispose_error is not None:
            raise self.dispose_error


class FakeRedis:
    def __init__(self) -> None:
        self.open = True
        self.close_calls = 0
        self.close_error: BaseException | None = None

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.close_calls += 1
        self.open = False
        if self.close_error is not None:
            raise self.close_error


def fake_is_open(client: FakeRedis) -> bool:
    return client.open


async def no_sleep(_: float) -> None:
    return None


def make_settings(**overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "env": "test",
        "log_level": "warning",
        "cors_origin": f"https://{DOMAIN}/",
        "admins": "1768",
        "static_dir": "__no_static_dir__",
        "trust_proxy": True,
    }
    values.update(overrides)
    return Settings(**values)


def make_supervisor(
    settings: Settings,
    *,
    engine: FakeEngine | None = None,
    redis: FakeRedis | None = None,
) -> ConnectionSupervisor:
    engine = engine or FakeEngine()
    redis = redis or FakeRedis()

    async def connect() -> FakeRedis:
        return redis

    return ConnectionSupervisor(
        settings,
        engine_factory=lambda _: engine,  # type: ignore[arg-type,return-value]
        kv_connector=connect,
        kv_is_open=fake_is_open,
        warmup_policy=RetryPolicy(max_attempts=5, base_delay=0.3, max_delay=2.0),
        sleep=no_sleep,
    )


class TokenFactory:
    def __init__(self) -> None:
        self.private_key = Ed25519PrivateKey.generate()
        jwk = json.loads(OKPAlgorithm.to_jwk(self.private_key.public_key()))
        jwk.update({"kid": KID, "alg": "EdDSA", "use": "sig"})
        self.jwks = {"keys": [jwk]}
        self.jwks_requests = 0

    def mint(self, sub: Any = 1768, *, ttl: int = 3600, **claims: Any) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "iss": ORIGIN,
            "aud": DOMAIN,
            "sub": sub,
            "iat": now,
            "exp": now + ttl,
        }
        payload.update(claims)
        return jwt.encode(payload, self.private_key, algorithm="EdDSA", headers={"kid": KID})

    def transport(self) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            self.jwks_requests += 1
            assert request.url.path == "/.well-known/jwks.json"
            return httpx.Response(200, json=self.jwks)

        return httpx.MockTransport(handler)

    def verifier(self, **kwargs: Any) -> QuickAuthVerifier:
        http = httpx.AsyncClient(transport=self.transport(), base_url=ORIGIN)
        return QuickAuthVerifier(domain=DOMAIN, origin=ORIGIN, http=http, **kwargs)


@pytest.fixture
def tokens() -> TokenFactory:
    return TokenFactory()


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def app(settings: Settings, tokens: TokenFactory, fake_engine: FakeEngine, fake_redis: FakeRedis):
    return create_app(
        settings=settings,
        supervisor=make_supervisor(settings, engine=fake_engine, redis=fake_redis),
        verifier=tokens.verifier(),
        admission=AdmissionController(),
    )


@asynccontextmanager
async def running(app, *, raise_app_exceptions: bool = True):
    """
    Drive the lifespan explicitly (httpx's ASGITransport does not) and yield a client.
    """

    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client
