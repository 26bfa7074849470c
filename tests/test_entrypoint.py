"""
tests.test_entrypoint

Process exit codes of `python -m auction_gateway.api`.
"""

from __future__ import annotations

import asyncio
import errno

import pytest
from conftest import FakeEngine, FakeRedis, make_settings

from auction_gateway.api import __main__ as entrypoint
from auction_gateway.api.app import create_app
from auction_gateway.db.supervisor import ConnectionSupervisor
from auction_gateway.settings import Settings


class FakeServer:
    started_on_run = True
    runs = 0

    def __init__(self, config) -> None:
        self.config = config
        self.started = False

    def run(self) -> None:
        FakeServer.runs += 1
        self.started = FakeServer.started_on_run


@pytest.fixture(autouse=True)
def fake_uvicorn(monkeypatch: pytest.MonkeyPatch):
    FakeServer.runs = 0
    monkeypatch.setattr(entrypoint.uvicorn, "Server", FakeServer)
    return FakeServer


def test_graceful_run_exits_zero(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(entrypoint, "get_settings", make_settings)
    FakeServer.started_on_run = True

    with pytest.raises(SystemExit) as exc_info:
        entrypoint.main()
    assert exc_info.value.code == 0
    assert FakeServer.runs == 1


def test_failed_startup_exits_one(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(entrypoint, "get_settings", make_settings)
    FakeServer.started_on_run = False

    with pytest.raises(SystemExit) as exc_info:
        entrypoint.main()
    assert exc_info.value.code == 1


def test_invalid_configuration_exits_one(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(entrypoint, "get_settings", lambda: Settings(_env_file=None, admins="1768,alice"))

    with pytest.raises(SystemExit) as exc_info:
        entrypoint.main()
    assert exc_info.value.code == 1
    assert FakeServer.runs == 0


class LifespanServer:
    """
    Runs the app's lifespan like uvicorn: a startup failure leaves `started` False.
    """

    def __init__(self, config) -> None:
        self.config = config
        self.started = False
        self.startup_error: BaseException | None = None

    def run(self) -> None:
        asyncio.run(self._serve())

    async def _serve(self) -> None:
        app = self.config.app
        try:
            async with app.router.lifespan_context(app):
                self.started = True
        except Exception as e:
            self.startup_error = e


def test_warm_up_timeout_exits_one(monkeypatch: pytest.MonkeyPatch) -> None:
    settings = make_settings(db_warmup_on_start=True, db_warmup_timeout_seconds=0.05)
    engine = FakeEngine(failures=[ConnectionRefusedError(errno.ECONNREFUSED, "refused") for _ in range(5)])
    servers: list[LifespanServer] = []

    async def hang(_: float) -> None:
        await asyncio.Event().wait()

    def build_app(*, settings: Settings):
        supervisor = ConnectionSupervisor(
            settings,
            engine_factory=lambda _: engine,  # type: ignore[arg-type,return-value]
            kv_connector=FakeRedis,  # type: ignore[arg-type]
            sleep=hang,
        )
        return create_app(settings=settings, supervisor=supervisor)

    def make_server(config) -> LifespanServer:
        servers.append(LifespanServer(config))
        return servers[-1]

    monkeypatch.setattr(entrypoint, "get_settings", lambda: settings)
    monkeypatch.setattr(entrypoint, "create_app", build_app)
    monkeypatch.setattr(entrypoint.uvicorn, "Server", make_server)

    with pytest.raises(SystemExit) as exc_info:
        entrypoint.main()

    assert exc_info.value.code == 1
    assert isinstance(servers[0].startup_error, TimeoutError)
    assert engine.dispose_calls == 1
