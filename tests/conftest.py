"""Shared fixtures: explicit settings and a routing httpx mock transport."""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Tuple, Union

import httpx
import pytest
from fastapi.testclient import TestClient

from lead_agent.api import app, get_http_transport, get_rate_limiter, get_settings
from lead_agent.config import Settings
from lead_agent.rate_limit import FixedWindowRateLimiter

RouteResult = Union[Tuple[int, Any], Callable[[httpx.Request], httpx.Response]]


def make_settings(**overrides: Any) -> Settings:
    """Settings with every credential unset unless given explicitly."""
    values: Dict[str, Any] = {
        "openai_api_key": None,
        "calendly_token": None,
        "resend_api_key": None,
        "static_dir": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class MockUpstream:
    """Routes requests by (method, path) and records every call."""

    def __init__(self, routes: Dict[Tuple[str, str], RouteResult] | None = None):
        self.routes: Dict[Tuple[str, str], RouteResult] = dict(routes or {})
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"message": "not found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content)


def openai_reply(text: str) -> Dict[str, Any]:
    return {
        "id": "resp_1",
        "output": [
            {
                "type": "message",
                "role": "assistant",
                "content": [{"type": "output_text", "text": text}],
            }
        ],
    }


@pytest.fixture
def upstream() -> MockUpstream:
    return MockUpstream()


@pytest.fixture
def api_client():
    """Build a TestClient wired to the given settings, transport and limiter."""

    def build(
        settings: Settings,
        upstream: MockUpstream | None = None,
        limiter: FixedWindowRateLimiter | None = None,
    ) -> TestClient:
        shared_limiter = limiter or FixedWindowRateLimiter()
        transport = upstream.transport if upstream is not None else None
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_http_transport] = lambda: transport
        app.dependency_overrides[get_rate_limiter] = lambda: shared_limiter
        return TestClient(app)

    yield build
    app.dependency_overrides.clear()
