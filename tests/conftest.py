"""
Shared fixtures for the HeadSpin QoE tests.

FakeHeadspinAPI answers every HeadSpin endpoint in memory and records the
requests it sees; it is served to the client through httpx.MockTransport.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from headspin_qoe.session import HeadspinSession

pytest_plugins = ["pytester"]

T0 = 1_700_000_000_000


class FakeClock:
    """Manually advanced wall clock in milliseconds."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeHeadspinAPI:
    def __init__(self, hostname: str = "dev-1", session_id: str = "s1") -> None:
        self.hostname = hostname
        self.session_id = session_id
        self.requests: List[httpx.Request] = []
        self._overrides: Dict[Tuple[str, str], Tuple[int, Dict[str, Any]]] = {}
        self._label_count = 0

    def fail(self, method: str, path: str, status_code: int, **kwargs: Any) -> None:
        """Answer ``method path`` with this status and body instead of the default."""
        self._overrides[(method, path)] = (status_code, kwargs)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[Tuple[str, str]]:
        routes = [(r.method, _route(r)) for r in self.requests]
        return [(m, p) for m, p in routes if (method is None or m == method) and (path is None or p == path)]

    def bodies(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == method and _route(r) == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = (request.method, _route(request))
        if route in self._overrides:
            status_code, kwargs = self._overrides[route]
            return httpx.Response(status_code, **kwargs)

        if route == ("POST", "/devices/lock"):
            return httpx.Response(200, json={"status_code": 200, "data": {"hostname": self.hostname}})
        if route == ("POST", "/devices/unlock"):
            return httpx.Response(200, json={"status_code": 200})
        if route == ("POST", "/sessions"):
            return httpx.Response(200, json={"data": {"session_id": self.session_id}})
        if route == ("PATCH", f"/sessions/{self.session_id}"):
            return httpx.Response(200, json={"msg": "Session stopped"})
        if route == ("POST", f"/sessions/{self.session_id}/label/add"):
            self._label_count += 1
            return httpx.Response(200, json={"label_id": f"label-{self._label_count}"})
        return httpx.Response(404, json={"message": "not found"})


def _route(request: httpx.Request) -> str:
    return request.url.path.removeprefix("/v0")


@pytest.fixture
def fake_api() -> FakeHeadspinAPI:
    return FakeHeadspinAPI()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_session(fake_api, clock):
    """Factory for sessions wired to the fake API and clock."""

    def _make(**kwargs: Any) -> HeadspinSession:
        kwargs.setdefault("transport", fake_api.transport())
        kwargs.setdefault("clock", clock)
        return HeadspinSession("secret-token", "device-42", **kwargs)

    return _make


@pytest.fixture
def session(make_session) -> HeadspinSession:
    return make_session()
