"""Shared fixtures: a controllable clock, in-memory fake transports and an app wired to them."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Callable

import anyio
import httpx
import pytest
from starlette.requests import Request
from starlette.responses import JSONResponse

from config import Config
from oauth.pkce import code_challenge_s256
from server import create_app

BASE_URL = "http://testserver"
REDIRECT_URI = "http://localhost:8765/callback"
VERIFIER = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
INITIALIZE = {
    "jsonrpc": "2.0",
    "id": 1,
    "method": "initialize",
    "params": {
        "protocolVersion": "2025-03-26",
        "capabilities": {},
        "clientInfo": {"name": "test-client", "version": "1.0"},
    },
}


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTransport:
    """Records requests and answers with a small JSON body carrying the session id."""

    def __init__(self, session_id: str, on_close: Callable[[str], None]):
        self.session_id = session_id
        self.on_close = on_close
        self.requests: list[tuple[str, bytes]] = []
        self.closed = False
        self.close_calls = 0
        self.hang_on_close = False
        self.fail_on_close = False
        self.status_code = 200

    async def handle_request(self, scope, receive, send) -> None:
        request = Request(scope, receive)
        body = await request.body()
        self.requests.append((request.method, body))
        if request.method == "DELETE":
            await self.close()
        response = JSONResponse(
            {"session": self.session_id, "method": request.method},
            status_code=self.status_code,
            headers={"mcp-session-id": self.session_id},
        )
        await response(scope, receive, send)

    async def close(self) -> None:
        self.close_calls += 1
        if self.hang_on_close:
            await anyio.sleep_forever()
        if self.fail_on_close:
            raise RuntimeError("transport exploded")
        if not self.closed:
            self.closed = True
            self.on_close(self.session_id)


class FakeTransportFactory:
    def __init__(self):
        self.transports: list[FakeTransport] = []
        self.fail = False
        self.running = False
        self.status_code = 200

    @asynccontextmanager
    async def run(self):
        self.running = True
        try:
            yield
        finally:
            self.running = False

    async def __call__(self, session_id: str, on_close: Callable[[str], None]) -> FakeTransport:
        # Yield so that concurrent session opens interleave
        await anyio.sleep(0)
        if self.fail:
            raise RuntimeError("transport unavailable")
        transport = FakeTransport(session_id, on_close)
        transport.status_code = self.status_code
        self.transports.append(transport)
        return transport


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def factory() -> FakeTransportFactory:
    return FakeTransportFactory()


@pytest.fixture
def config() -> Config:
    return Config({"server_url": BASE_URL, "session_close_timeout": 0.05})


@pytest.fixture
def app(config, factory, clock):
    return create_app(config, transport_factory=factory, clock=clock)


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url=BASE_URL) as ac:
        yield ac


@pytest.fixture
def authorize_params() -> dict:
    return {
        "response_type": "code",
        "client_id": "mcp-demo-client",
        "redirect_uri": REDIRECT_URI,
        "code_challenge": code_challenge_s256(VERIFIER),
        "code_challenge_method": "S256",
        "state": "xyz",
    }


@pytest.fixture
def obtain_code(client, authorize_params):
    """Approve consent and return the authorization code from the redirect."""

    async def _obtain_code(**overrides) -> str:
        form = {**authorize_params, **overrides, "action": "allow"}
        resp = await client.post("/authorize", data=form)
        assert resp.status_code == 302
        query = httpx.URL(resp.headers["location"]).params
        return query["code"]

    return _obtain_code


@pytest.fixture
def obtain_token(client, obtain_code):
    """Run the full authorize + token exchange and return the token response JSON."""

    async def _obtain_token() -> dict:
        code = await obtain_code()
        resp = await client.post(
            "/token",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": REDIRECT_URI,
                "code_verifier": VERIFIER,
                "client_id": "mcp-demo-client",
            },
        )
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _obtain_token
