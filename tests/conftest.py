"""Test fixtures — isolated relays and apps per test.

Learn: Every test builds its own ChatRelay / FastAPI app from an explicit
Settings instance, so no state (who is online, who joined what) leaks
between tests. Core tests drive the relay directly and inspect each
connection's outbound queue; API tests go through httpx's ASGITransport
and the WebSocket tests through Starlette's TestClient.
"""

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from relaychat.config import Settings
from relaychat.main import create_app
from relaychat.realtime.hub import CloseRequest, Connection
from relaychat.realtime.relay import ChatRelay

FIXED_NOW = datetime(2026, 3, 14, 15, 9, 26, 535000, tzinfo=timezone.utc)


@pytest.fixture()
def chat_settings():
    """Development settings: declared identities are trusted."""
    return Settings(
        environment="development",
        jwt_secret="test-secret",
        require_identity_token=False,
    )


@pytest.fixture()
def fixed_now():
    return FIXED_NOW


@pytest.fixture()
def relay(chat_settings, fixed_now):
    return ChatRelay(settings=chat_settings, clock=lambda: fixed_now)


@pytest.fixture()
def drain():
    """Return a helper that pops queued frames (dicts) off a connection."""

    def _drain(conn: Connection) -> list[dict]:
        return [f for f in conn.drain() if not isinstance(f, CloseRequest)]

    return _drain


@pytest.fixture()
def app(chat_settings):
    return create_app(chat_settings)


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client talking to the app in-process."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
def ws_client(app):
    """Synchronous client for WebSocket tests (runs the app lifespan)."""
    with TestClient(app) as tc:
        yield tc
