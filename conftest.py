"""
conftest.py – test fixtures for the Digitomize users API.

Key points
----------
* The environment is pinned *before* `main` is imported: settings are read
  at import time and `ENVIRONMENT=test` skips Firebase / DB pool startup.
* No external services: `get_db` yields a MagicMock connection, CRUD and
  Firebase calls are patched per test, Novu is an AsyncMock behind
  `deps.get_novu_client`.
* httpx.AsyncClient talks to the app in-process through ASGITransport.
"""
import os

os.environ["ENVIRONMENT"] = "test"
os.environ["DB_HOST"] = "localhost"
os.environ["DB_PORT"] = "5432"
os.environ["DB_USER"] = "test_user"
os.environ["DB_PASSWORD"] = "test_password"
os.environ["DB_NAME"] = "defaultdb_test"
os.environ["FIREBASE_SERVICE_ACCOUNT_KEY_PATH"] = "service-account.json"
os.environ["NOVU_API_KEY"] = "test-api-key"
os.environ["DISCORD_WEBHOOK_URL"] = "https://discord.com/api/webhooks/test"
os.environ.pop("SENTRY_DSN", None)

from typing import Any, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
import sentry_sdk
from httpx import ASGITransport, AsyncClient

from main import app as fastapi_app
from app.api import deps
from app.schemas.token import FirebaseTokenData
from app.services.novu import NovuClient
from tests.utils import make_claims


# --------------------------------------------------------------------------
# DB connection stand-in (CRUD functions are patched, nothing touches it)
# --------------------------------------------------------------------------
@pytest.fixture()
def db_conn() -> MagicMock:
    return MagicMock(name="asyncpg.Connection")


# --------------------------------------------------------------------------
# httpx.AsyncClient with dependency override for `get_db`
# --------------------------------------------------------------------------
@pytest_asyncio.fixture()
async def client(db_conn):
    async def override_get_db():
        yield db_conn

    fastapi_app.dependency_overrides[deps.get_db] = override_get_db

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()


# --------------------------------------------------------------------------
# Auth-mocking helpers
# --------------------------------------------------------------------------
@pytest.fixture()
def token_claims() -> Dict[str, Any]:
    """Claims of the authenticated caller; override in a test module to change them."""
    return make_claims()


@pytest.fixture()
def mock_auth(token_claims):
    token = FirebaseTokenData(**token_claims)

    async def override() -> FirebaseTokenData:
        return token

    fastapi_app.dependency_overrides[deps.get_verified_token_data] = override
    yield token
    fastapi_app.dependency_overrides.pop(deps.get_verified_token_data, None)


@pytest.fixture()
def mock_admin(mock_auth):
    admin = {"uid": mock_auth.uid, "email": mock_auth.email, "name": mock_auth.name, "role": "admin"}

    async def override() -> Dict[str, Any]:
        return admin

    fastapi_app.dependency_overrides[deps.get_current_admin] = override
    yield admin
    fastapi_app.dependency_overrides.pop(deps.get_current_admin, None)


# --------------------------------------------------------------------------
# Novu
# --------------------------------------------------------------------------
@pytest.fixture()
def novu_client():
    novu = AsyncMock(spec=NovuClient)
    novu.get_topic.return_value = {"key": "codeforces-notifs", "name": "Codeforces Notifications"}
    novu.list_topics.return_value = {"data": []}

    fastapi_app.dependency_overrides[deps.get_novu_client] = lambda: novu
    yield novu
    fastapi_app.dependency_overrides.pop(deps.get_novu_client, None)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """SlowAPI keeps counters in memory; start every test from zero."""
    limiter = getattr(fastapi_app.state, "limiter", None)
    if limiter:
        limiter.reset()
    yield
    if limiter:
        limiter.reset()


@pytest.fixture(scope="session", autouse=True)
def _close_sentry():
    """
    Flush the event queue and disable the client after the test
    session ends, if a client was initialised.
    """
    yield
    sentry_sdk.flush()
    client = sentry_sdk.get_client()
    if client is not None:
        client.close(timeout=2.0)
