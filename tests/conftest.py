"""
Shared fixtures.

create_app("testing") rebinds the shared storage to a fresh in-memory SQLite
database, so every test starts with an empty users table.
"""
from __future__ import annotations

import pytest

from api import create_app
from models import storage
from utils.security import PasswordHasher, TokenIssuer

ACCESS_SECRET = "unit-access-secret-0123456789abcdefghij"
REFRESH_SECRET = "unit-refresh-secret-0123456789abcdefghij"


@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def service(app):
    """SessionService wired to the app's in-memory store."""
    return app.extensions["session_service"]


@pytest.fixture
def store(app):
    return storage


@pytest.fixture
def hasher():
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def issuer():
    return TokenIssuer(access_secret=ACCESS_SECRET, refresh_secret=REFRESH_SECRET)


@pytest.fixture
def ann(service, store):
    """Registered (not logged in) user Ann."""
    service.register("Ann", "ann@x.com", "password1", "password1")
    return store.find_by_email("ann@x.com")


def login_cookie(client, email="ann@x.com", password="password1"):
    resp = client.post("/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.get_json()
    return resp
