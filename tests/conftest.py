"""
tests/conftest.py -- Shared test fixtures for library service tests.

This module provides:
  - make_test_stores(): creates isolated in-memory DBs for users + catalog
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus one logged-in token per role
  - FixedClock / fixed_clock: a settable clock for token expiry tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs route handlers in a thread pool. Plain :memory: DBs
are per-connection and would present a blank schema to each worker thread.
The named URI format (file:name?mode=memory&cache=shared&uri=true) shares
one in-memory instance across all connections in the same process.

DEBUG and LOGIN_RATE_LIMIT must be set before any api/auth/core import:
get_settings() is cached on first call, and without DEBUG it raises for a
missing SECRET_KEY.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

# CRITICAL: Set env before any api/auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import app, init_state
from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from auth.tokens import TokenCodec
from catalog.store import CatalogStore

TEST_SECRET_KEY = "test-secret-key-0123456789abcdef0123456789"
TEST_TTL_SECONDS = 3600
# Minimum bcrypt work factor keeps the suite fast.
TEST_BCRYPT_ROUNDS = 4
TEST_PASSWORD = "testpass123"

# name -> role for the accounts api_client logs in before yielding.
FIXTURE_USERS = {
    "testuser": Role.USER,
    "testmoderator": Role.MODERATOR,
    "testadmin": Role.ADMIN,
}


class FixedClock:
    """Callable clock whose time only moves when a test moves it."""

    def __init__(self, now: datetime | None = None) -> None:
        self.now = now or datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(TEST_SECRET_KEY, TEST_TTL_SECONDS)


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    """Function-scoped user store on its own shared-memory DB."""
    store = UserStore(db_url=f"sqlite:///file:test_users_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield store
    store.close()


def _make_user(store: UserStore, name: str, role: Role = Role.USER, password: str = TEST_PASSWORD) -> User:
    """Insert a user with a fast bcrypt digest and return the stored record."""
    user_id = store.create_user(
        User(
            name=name,
            mail=f"{name}@example.com",
            role=role,
            hashed_password=hash_password(password, rounds=TEST_BCRYPT_ROUNDS),
        )
    )
    return store.get_by_id(user_id)


@pytest.fixture
def new_user(user_store):
    """Factory fixture: new_user("alice", Role.MODERATOR) -> stored User."""

    def _create(name: str, role: Role = Role.USER, password: str = TEST_PASSWORD) -> User:
        return _make_user(user_store, name, role, password)

    return _create


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def make_test_stores(db_suffix: str) -> tuple[UserStore, CatalogStore]:
    """Create isolated named shared-memory SQLite stores for test isolation.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    users_url = f"sqlite:///file:test_users_{db_suffix}?mode=memory&cache=shared&uri=true"
    catalog_url = f"sqlite:///file:test_catalog_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(db_url=users_url), CatalogStore(db_url=catalog_url)


def _patch_lifespan(user_store: UserStore, catalog: CatalogStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores and a fixed-key codec into app.state so
    TestClient routes see isolated test DBs rather than library.db.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        init_state(
            app,
            user_store,
            catalog,
            TokenCodec(TEST_SECRET_KEY, TEST_TTL_SECONDS),
            bcrypt_rounds=TEST_BCRYPT_ROUNDS,
        )
        yield

    return test_lifespan


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, dict[Role, str]], None, None]:
    """Yield (client, tokens) for API integration tests.

    tokens maps each Role to the live token of a user holding exactly that
    role (see FIXTURE_USERS). Tests that log in again as one of these users
    would replace its session, so login-flow tests register their own users.
    """
    user_store, catalog = make_test_stores(request.module.__name__.rsplit(".", 1)[-1])
    for name, role in FIXTURE_USERS.items():
        _make_user(user_store, name, role)

    app.router.lifespan_context = _patch_lifespan(user_store, catalog)

    with TestClient(app, raise_server_exceptions=True) as client:
        tokens: dict[Role, str] = {}
        for name, role in FIXTURE_USERS.items():
            resp = client.post("/api/v1/auth/login", json={"name": name, "password": TEST_PASSWORD})
            assert resp.status_code == 200, resp.text
            tokens[role] = resp.text
        yield client, tokens

    catalog.close()
    user_store.close()
