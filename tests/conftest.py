"""
tests/conftest.py -- Shared test fixtures for E-Store integration tests.

This module provides:
  - _make_test_stores(): isolated shared-memory DB for users, tokens, addresses
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - api_client: TestClient plus a customer token and an admin token
  - store: a bare in-memory UserStore for unit tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI shares one in-memory instance across connections.

Environment must be set before any auth/core import:
  DEBUG=true           -- get_settings() auto-generates SECRET_KEY
  ALLOWED_HOSTS        -- TestClient sends Host: testserver
  LOGIN_RATE_LIMIT     -- many logins per module must not trip the limiter
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from contextlib import asynccontextmanager
from typing import NamedTuple

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from addresses.store import AddressStore
from api.main import app
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenIssuer, hash_password

CUSTOMER_EMAIL = "testuser@example.com"
CUSTOMER_PASSWORD = "testpass123"
ADMIN_EMAIL = "testadmin@example.com"
ADMIN_PASSWORD = "adminpass123"


class ApiHarness(NamedTuple):
    client: TestClient
    token: str
    user_id: int
    admin_token: str
    user_store: UserStore
    issuer: TokenIssuer

    def auth(self, token: str | None = None) -> dict[str, str]:
        return {"Authorization": f"Bearer {token or self.token}"}


# ---------------------------------------------------------------------------
# Store helpers
# ---------------------------------------------------------------------------


def _make_test_stores(db_suffix: str) -> tuple[UserStore, AddressStore]:
    """Create stores on one named shared-memory SQLite database.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state.
    """
    url = f"sqlite:///file:test_estore_{db_suffix}?mode=memory&cache=shared&uri=true"
    return UserStore(url), AddressStore(url)


def _patch_lifespan(user_store: UserStore, address_store: AddressStore):
    """Return an async context manager that replaces the real lifespan.

    The purge_task is a long-sleeping coroutine so shutdown can .cancel() a
    real asyncio.Task.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.address_store = address_store
        app.state.token_issuer = TokenIssuer(user_store)
        app.state.purge_task = asyncio.create_task(asyncio.sleep(99999))
        yield
        app.state.purge_task.cancel()

    return test_lifespan


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness for API integration tests.

    One TestClient per test module, running the real app with a patched
    lifespan. A customer and an admin exist before the client starts, each
    with a token issued through the same TokenIssuer the routes use.
    """
    user_store, address_store = _make_test_stores(request.module.__name__.replace(".", "_"))

    uid = user_store.create_user(
        User(name="Test User", email=CUSTOMER_EMAIL, hashed_password=hash_password(CUSTOMER_PASSWORD))
    )
    admin_id = user_store.create_user(
        User(name="Test Admin", email=ADMIN_EMAIL, hashed_password=hash_password(ADMIN_PASSWORD), role="admin")
    )
    issuer = TokenIssuer(user_store)
    token = issuer.issue(uid)
    admin_token = issuer.issue(admin_id)

    app.router.lifespan_context = _patch_lifespan(user_store, address_store)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client, token, uid, admin_token, user_store, issuer)

    address_store.close()
    user_store.close()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    """Fresh in-memory UserStore for unit tests."""
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()
