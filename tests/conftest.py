"""
tests/conftest.py -- Shared test fixtures for Storefront.

This module provides:
  - clock / keys / codec: a controllable clock and an HS256 codec built on it
  - accounts / sessions / manager: SessionManager over the in-memory stores,
    with Jane Doe seeded
  - api_client: TestClient over the real FastAPI app with a patched lifespan
    and an isolated shared-memory SQLite AuthStore

Design: Named shared-memory SQLite URIs (not plain :memory:) are required for
the API fixture because TestClient runs sync route handlers in a thread pool.
Plain :memory: DBs are per-connection and would present a blank schema to
each worker thread.

The DEBUG env var is set before any app import so get_settings() can
auto-generate SECRET_KEY if anything asks for it.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")

import pytest
from fastapi.testclient import TestClient

from api.main import app, wire_auth
from auth.credentials import PasswordVerifier, hash_password
from auth.memory import InMemoryAccountStore, InMemorySessionStore
from auth.models import Account
from auth.sessions import SessionManager
from auth.store import AuthStore
from auth.tokens import JWTCodec, TokenKeys

JANE_EMAIL = "jane.doe@example.com"
JANE_PASSWORD = "Password123"
TEST_SECRET = "test-secret-key-that-is-at-least-32-chars"
ACCESS_TTL = 15 * 60
REFRESH_TTL = 7 * 24 * 60 * 60


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Codec
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def keys() -> TokenKeys:
    return TokenKeys.shared_secret(TEST_SECRET, access_ttl=ACCESS_TTL, refresh_ttl=REFRESH_TTL)


@pytest.fixture
def codec(keys: TokenKeys, clock: FakeClock) -> JWTCodec:
    return JWTCodec(keys, clock=clock)


# ---------------------------------------------------------------------------
# In-memory auth graph
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def jane_hash() -> str:
    """bcrypt is deliberately slow; hash Jane's password once per run."""
    return hash_password(JANE_PASSWORD)


@pytest.fixture
def accounts() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def jane(accounts: InMemoryAccountStore, jane_hash: str) -> Account:
    return accounts.create_account(JANE_EMAIL, "Jane Doe", jane_hash)


def make_manager(accounts, sessions, codec: JWTCodec) -> SessionManager:
    return SessionManager(
        accounts=accounts,
        sessions=sessions,
        verifier=PasswordVerifier(accounts),
        codec=codec,
        access_ttl=ACCESS_TTL,
        refresh_ttl=REFRESH_TTL,
    )


@pytest.fixture
def build_manager(codec: JWTCodec):
    """Factory for tests that wrap the stores (e.g. in MagicMock spies)."""

    def _build(accounts, sessions) -> SessionManager:
        return make_manager(accounts, sessions, codec)

    return _build


@pytest.fixture
def manager(accounts, sessions, codec, jane) -> SessionManager:
    return make_manager(accounts, sessions, codec)


# ---------------------------------------------------------------------------
# API client
# ---------------------------------------------------------------------------


def _patch_lifespan(store: AuthStore, keys: TokenKeys):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test store into app.state so TestClient routes see
    an isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        wire_auth(app, store, keys)
        yield

    return test_lifespan


@pytest.fixture
def api_client(keys: TokenKeys, jane_hash: str) -> Generator[tuple[TestClient, AuthStore, Account], None, None]:
    """Yield (client, store, jane) for API integration tests.

    Each test gets its own uniquely named in-memory database, so tests do
    not see each other's accounts or sessions.
    """
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    store = AuthStore(db_url)
    jane = store.create_account(JANE_EMAIL, "Jane Doe", jane_hash)

    app.router.lifespan_context = _patch_lifespan(store, keys)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store, jane

    store.close()
