"""
Shared fixtures: a fake Entra ID credential and a recording fake upstream.
"""

import time
from typing import Callable, List, Optional

import httpx
import pytest
from azure.core.credentials import AccessToken
from fastapi.testclient import TestClient

from token_proxy.app.config import Settings
from token_proxy.app.main import create_app


class FakeCredential:
    """AsyncTokenCredential stand-in that counts get_token calls."""

    def __init__(self, token: str = "token-1", lifetime: int = 3600):
        self.token = token
        self.lifetime = lifetime
        self.error: Optional[Exception] = None
        self.calls = 0
        self.scopes: List[tuple] = []
        self.closed = False

    async def get_token(self, *scopes, **kwargs) -> AccessToken:
        self.calls += 1
        self.scopes.append(scopes)
        if self.error is not None:
            raise self.error
        return AccessToken(self.token, int(time.time()) + self.lifetime)

    async def close(self) -> None:
        self.closed = True


class FakeUpstream:
    """MockTransport handler that records every request it receives."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.respond: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(
            200,
            headers={"content-type": "application/json"},
            stream=httpx.ByteStream(b'{"ok":true}'),
        )

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        return self.respond(request)

    @property
    def last(self) -> httpx.Request:
        assert self.requests, "upstream was never called"
        return self.requests[-1]


@pytest.fixture
def settings():
    """Settings with authentication disabled"""
    return Settings(TARGET_URL="http://up.local", _env_file=None)


@pytest.fixture
def keyed_settings():
    """Settings requiring the shared secret "S" """
    return Settings(TARGET_URL="http://up.local", EXPECTED_KEY="S", _env_file=None)


@pytest.fixture
def credential():
    return FakeCredential()


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def make_client(credential, upstream):
    """Build a TestClient around a proxy app for the given settings."""
    clients = []

    def _make(app_settings: Settings) -> TestClient:
        app = create_app(
            app_settings,
            credential=credential,
            transport=httpx.MockTransport(upstream),
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)


@pytest.fixture
def keyed_client(make_client, keyed_settings):
    return make_client(keyed_settings)
