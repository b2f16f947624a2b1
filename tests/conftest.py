"""Shared fixtures: an in-process fake backend and a controllable clock."""

import httpx
import pytest

from coursebag.api.cache import ResponseCache
from coursebag.api.client import ApiClient
from coursebag.api.token_store import TokenStore
from coursebag.config import Settings


class FakeClock:
    """A monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBackend:
    """Routes requests by method and API path, recording every call.

    A route is a function from the request to a fresh response. Unrouted
    requests get a 404 JSON error, like the real server.
    """

    def __init__(self):
        self.routes: dict = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, route) -> None:
        self.routes[(method, path)] = route

    def json(self, method: str, path: str, payload, status: int = 200) -> None:
        self.add(method, path, lambda request: httpx.Response(status, json=payload))

    def calls_to(self, path: str, method: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.calls
            if self.api_path(r) == path and (method is None or r.method == method)
        ]

    @staticmethod
    def api_path(request: httpx.Request) -> str:
        return request.url.path.removeprefix("/api/v1")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, self.api_path(request)))
        if route is None:
            return httpx.Response(404, json={"success": False, "error": "Not found"})
        return route(request)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def token_store(tmp_path):
    return TokenStore(tmp_path / "token.json")


@pytest.fixture
def navigated():
    """Login URLs the client asked to navigate to."""
    return []


@pytest.fixture
def settings(tmp_path):
    return Settings(base_url="http://lms.test", token_path=tmp_path / "token.json", current_path="/dashboard")


@pytest.fixture
def client(settings, backend, token_store, clock, navigated):
    api = ApiClient(
        settings=settings,
        token_store=token_store,
        cache=ResponseCache(clock=clock),
        transport=httpx.MockTransport(backend),
        navigate=navigated.append,
    )
    yield api
    api.close()
