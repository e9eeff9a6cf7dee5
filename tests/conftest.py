"""
Shared fixtures: a fake upstream behind ``httpx.MockTransport``, a store on a
controllable clock, and a TestClient wired to both.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import parse_qs

import httpx
import pytest
from fastapi.testclient import TestClient

from config.settings import config
from connectors import encryption
from core.cache import InMemoryStore

Handler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Route table keyed by (method, decoded path); records every request."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Handler] = {}
        self.calls: List[httpx.Request] = []

    def add(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        status: int = 200,
        handler: Optional[Handler] = None,
    ) -> None:
        self.routes[(method, path)] = handler or (
            lambda request: httpx.Response(status, json=json_body)
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(
                404, json={"error": {"code": "itemNotFound", "message": request.url.path}}
            )
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def count(self, method: str, path: str) -> int:
        return sum(1 for r in self.calls if r.method == method and r.url.path == path)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.calls]


def form_of(request: httpx.Request) -> Dict[str, str]:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def json_of(request: httpx.Request) -> Any:
    return json.loads(request.content.decode())


@pytest.fixture(autouse=True)
def plaintext_tokens():
    encryption.configure(None)
    yield
    encryption.configure(None)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def gateway_config(monkeypatch):
    monkeypatch.setattr(config, "clickup_base_api", "https://clickup.test")
    monkeypatch.setattr(config, "clickup_api_token", "pk_test")
    monkeypatch.setattr(config, "microsoft_graph_api", "https://graph.test")
    monkeypatch.setattr(config, "microsoft_authority", "https://login.test")
    monkeypatch.setattr(config, "microsoft_tenant", "consumers")
    monkeypatch.setattr(config, "microsoft_client_id", "client-id")
    monkeypatch.setattr(config, "microsoft_client_secret", "client-secret")
    monkeypatch.setattr(config, "microsoft_excel_sheet_path", "/Documents/Tracker.xlsx")
    monkeypatch.setattr(config, "microsoft_excel_table_name", "Tasks")
    return config


@pytest.fixture
def client(gateway_config, upstream: FakeUpstream):
    from api.dependencies import get_store, get_transport
    from main import app

    app_store = InMemoryStore()
    app.dependency_overrides[get_transport] = lambda: upstream.transport
    app.dependency_overrides[get_store] = lambda: app_store
    with TestClient(app, raise_server_exceptions=False) as test_client:
        test_client.app_store = app_store
        yield test_client
    app.dependency_overrides.clear()


TOKEN_PATH = "/consumers/oauth2/v2.0/token"


class FakeIdentity:
    """Microsoft token endpoint plus Graph ``/me``; tweak fields before signing in."""

    def __init__(self, upstream: FakeUpstream) -> None:
        self.expires_in = 3600
        self.refresh_status = 200
        self.grants: List[Dict[str, str]] = []
        upstream.add("POST", TOKEN_PATH, handler=self._token)
        upstream.add(
            "GET", "/me",
            {"id": "graph-1", "displayName": "Ada Lovelace", "mail": "ada@example.com"},
        )

    def _token(self, request: httpx.Request) -> httpx.Response:
        form = form_of(request)
        self.grants.append(form)
        if form["grant_type"] == "authorization_code":
            return httpx.Response(200, json={
                "access_token": "access-1",
                "refresh_token": "refresh-1",
                "expires_in": self.expires_in,
            })
        if self.refresh_status >= 400:
            return httpx.Response(self.refresh_status, json={
                "error": "invalid_grant",
                "error_description": "AADSTS70008: The refresh token has expired.",
            })
        return httpx.Response(200, json={
            "access_token": "access-2",
            "refresh_token": "refresh-2",
            "expires_in": 3600,
        })

    def refreshes(self) -> int:
        return sum(1 for g in self.grants if g["grant_type"] == "refresh_token")


@pytest.fixture
def identity(upstream: FakeUpstream) -> FakeIdentity:
    return FakeIdentity(upstream)


def sign_in(client: TestClient) -> httpx.Response:
    resp = client.post("/auth/token", json={"code": "auth-code", "code_verifier": "verifier"})
    assert resp.status_code == 200, resp.text
    return resp
