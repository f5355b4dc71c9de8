"""
tests/conftest.py -- Shared test fixtures for ProfileVault.

This module provides:
  - _patch_lifespan(): wires a test record store into app.state, bypassing real startup
  - client: TestClient over the real app with an empty in-memory store
  - registered_client: client plus a registered user with a filled-in profile
  - credentials / tokens: unit-level services over a MemoryRecordStore

Environment must be set before any auth/core import:
  DEBUG=true          -- get_settings() auto-generates SECRET_KEY instead of raising
  BCRYPT_ROUNDS=4     -- the minimum cost; keeps hashing fast in tests
  LOGIN_RATE_LIMIT    -- high enough that the login tests never trip it
  ALLOWED_HOSTS       -- TestClient sends Host: testserver
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver", "localhost"]')
os.environ.setdefault("STORE_URL", "memory://")

import pytest
from fastapi.testclient import TestClient

from api.main import app, init_app_state
from auth.credentials import CredentialStore
from auth.models import Profile
from auth.revocation import RevocationList
from auth.store import MemoryRecordStore
from auth.tokens import SessionTokens

USERNAME = "samham"
PASSWORD = "Abc12345!"

STORED_PROFILE = Profile(
    fullname="Sammy Hamdi",
    street1="9222 Memorial Dr.",
    street2="1215 Main Street",
    city="Houston",
    state="TX",
    zip="77379",
)

NEW_PROFILE = {
    "fullname": "Sam Ham",
    "street1": "123 Sesame Street",
    "street2": "APT 123",
    "city": "New York",
    "state": "NY",
    "zip": "10003",
}


class FakeClock:
    """Settable stand-in for time.time()."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _patch_lifespan(records: MemoryRecordStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown has a real
    asyncio.Task to cancel.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_app_state(app, records)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Integration fixtures -- a fresh store per test so state never leaks
# ---------------------------------------------------------------------------


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    records = MemoryRecordStore()
    app.router.lifespan_context = _patch_lifespan(records)
    with TestClient(app, raise_server_exceptions=True) as test_client:
        yield test_client


@pytest.fixture
def registered_client(client: TestClient) -> TestClient:
    """Client whose store holds USERNAME/PASSWORD with STORED_PROFILE. Not logged in."""
    credentials: CredentialStore = client.app.state.credentials
    credentials.create_user(USERNAME, PASSWORD)
    credentials.set_profile(USERNAME, STORED_PROFILE)
    return client


@pytest.fixture
def logged_in_client(registered_client: TestClient) -> TestClient:
    """registered_client after a successful POST /login; the cookie is in its jar."""
    resp = registered_client.post("/login", json={"username": USERNAME, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return registered_client


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def credentials() -> CredentialStore:
    return CredentialStore(MemoryRecordStore())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def revocations(clock: FakeClock) -> RevocationList:
    return RevocationList(clock=clock)


@pytest.fixture
def tokens(revocations: RevocationList, clock: FakeClock) -> SessionTokens:
    return SessionTokens("x" * 32 + "unit-test-secret", revocations, ttl_seconds=600, clock=clock)
