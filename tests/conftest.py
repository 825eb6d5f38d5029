from __future__ import annotations

import asyncio
import hashlib
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse
from httpx import ASGITransport, AsyncClient

from vanity_fastapi.api.dashboard import router as dashboard_router
from vanity_fastapi.config import get_settings
from vanity_fastapi.context import current_context, vanity_identity
from vanity_fastapi.helpers import ab_test
from vanity_fastapi.integration import use_vanity
from vanity_fastapi.services.playground import set_playground
from vanity_fastapi.services.rendering import set_renderer


@dataclass
class FakeAlternative:
    id: int
    value: Any


class FakeExperiment:
    """In-memory A/B test: hash-bucketed choices, per-identity overrides."""

    def __init__(self, experiment_id: str, values: list[Any]) -> None:
        self.id = experiment_id
        self.name = experiment_id.replace("_", " ").title()
        self.alternatives = [FakeAlternative(i, v) for i, v in enumerate(values)]
        self.choices: dict[str, Any] = {}
        self.forced: list[tuple[str, Any]] = []
        self.fingerprint_calls = 0

    def fingerprint(self, alternative: FakeAlternative) -> str:
        self.fingerprint_calls += 1
        return hashlib.md5(f"{self.id}:{alternative.id}".encode()).hexdigest()[:10]

    def _identity(self) -> str:
        context = current_context()
        return context.identity if context is not None else "anonymous"

    def choose(self) -> Any:
        identity = self._identity()
        if identity not in self.choices:
            bucket = int(hashlib.md5(f"{self.id}:{identity}".encode()).hexdigest(), 16)
            self.choices[identity] = self.alternatives[bucket % len(self.alternatives)].value
        return self.choices[identity]

    def chooses(self, value: Any) -> None:
        identity = self._identity()
        self.choices[identity] = value
        self.forced.append((identity, value))


class FakeMetricExperiment:
    """An experiment kind without alternatives."""

    def __init__(self, experiment_id: str) -> None:
        self.id = experiment_id
        self.name = experiment_id


class FakePlayground:
    def __init__(self, experiments: list[Any]) -> None:
        self._experiments = {e.id: e for e in experiments}
        self.logger: Any = None
        self.load_path = "experiments"
        self.connected = False
        self.redis: Any = None
        self.loads = 0
        self.reloads = 0

    @property
    def experiments(self) -> dict[str, Any]:
        return self._experiments

    def experiment(self, name: str) -> Any:
        return self._experiments[name]

    def load(self) -> None:
        self.loads += 1

    def reload(self) -> None:
        self.reloads += 1


@dataclass
class User:
    id: Any


def user_from_header(request: Any) -> User | None:
    user_id = request.headers.get("x-user-id")
    return User(id=user_id) if user_id else None


def set_current_user(request: Request) -> None:
    request.state.current_user = user_from_header(request)


def build_app(accessor: Any = None, loader: Any = None) -> FastAPI:
    app = FastAPI()
    use_vanity(app, accessor, loader=loader)
    app.include_router(dashboard_router)

    @app.get("/use_vanity")
    async def index() -> dict[str, Any]:
        return {"pie_or_cake": ab_test("pie_or_cake")}

    @app.post("/use_vanity")
    async def index_post() -> dict[str, Any]:
        return {"pie_or_cake": ab_test("pie_or_cake")}

    @app.get("/use_vanity/identity", response_class=PlainTextResponse)
    async def identity(identity: str = Depends(vanity_identity)) -> str:
        return identity

    @app.get("/use_vanity/identity_twice")
    def identity_twice(request: Request) -> dict[str, str]:
        return {"first": vanity_identity(request), "second": vanity_identity(request)}

    @app.get("/use_vanity/identity_user", response_class=PlainTextResponse)
    async def identity_user(request: Request, user_id: str) -> str:
        request.state.current_user = User(id=user_id)
        return vanity_identity(request)

    @app.get("/use_vanity/project/{project_id}", response_class=PlainTextResponse)
    async def project(request: Request) -> str:
        return vanity_identity(request)

    @app.get("/use_vanity/account", dependencies=[Depends(set_current_user)])
    async def account(request: Request) -> dict[str, Any]:
        return {"pie_or_cake": ab_test("pie_or_cake"), "identity": vanity_identity(request)}

    @app.get("/use_vanity/context")
    async def context(request: Request) -> dict[str, bool]:
        return {"same": current_context() is request.state.vanity}

    @app.get("/use_vanity/slow", response_class=PlainTextResponse)
    async def slow() -> str:
        await asyncio.sleep(0.01)
        return current_context().identity

    @app.get("/use_vanity/boom")
    async def boom() -> None:
        raise RuntimeError("boom")

    return app


@pytest.fixture
def playground() -> FakePlayground:
    return FakePlayground(
        [
            FakeExperiment("pie_or_cake", ["pie", "cake"]),
            FakeMetricExperiment("sugar_high"),
            FakeExperiment("null_abc", ["a", "b", "c"]),
        ]
    )


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path, playground: FakePlayground) -> None:
    monkeypatch.setenv("VANITY_ROOT", str(tmp_path))
    monkeypatch.delenv("VANITY_RELOAD_EXPERIMENTS", raising=False)
    monkeypatch.delenv("VANITY_ENV", raising=False)
    get_settings.cache_clear()

    set_playground(playground)
    set_renderer(None)

    yield

    set_playground(None)
    set_renderer(None)
    get_settings.cache_clear()


@pytest.fixture
def make_client() -> Callable[..., Any]:
    @asynccontextmanager
    async def _make(accessor: Any = None, loader: Any = None) -> AsyncIterator[AsyncClient]:
        transport = ASGITransport(app=build_app(accessor, loader))
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client

    return _make


@pytest.fixture
async def api_client(make_client) -> AsyncIterator[AsyncClient]:
    async with make_client("current_user") as client:
        yield client
