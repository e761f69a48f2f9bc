# File: tests/conftest.py

import pytest
from fastapi.testclient import TestClient

from rideapp.config import Settings
from rideapp.main import create_app

SUPERADMIN_EMAIL = "root@superapp.com"
SUPERADMIN_PASSWORD = "root-pw"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret",
        superadmin_email=SUPERADMIN_EMAIL,
        superadmin_password=SUPERADMIN_PASSWORD,
        rate_limit_max=10_000,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    # context manager runs startup (tables + superadmin) and shutdown
    with TestClient(app) as c:
        yield c


def register(client, email, password="pw123", name="Test User", phone=None):
    return client.post(
        "/api/register",
        json={"email": email, "password": password, "name": name, "phone": phone},
    )


def login(client, email, password="pw123") -> str:
    resp = client.post("/api/login", json={"email": email, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["token"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_factory(client):
    """Register + login a USER, returning ``(user_json, headers)``."""

    def _make(email, password="pw123", name="Test User"):
        resp = register(client, email, password, name)
        assert resp.status_code == 201, resp.text
        return resp.json(), bearer(login(client, email, password))

    return _make


@pytest.fixture
def superadmin_headers(client):
    return bearer(login(client, SUPERADMIN_EMAIL, SUPERADMIN_PASSWORD))


@pytest.fixture
def admin_headers(client, superadmin_headers):
    resp = client.post(
        "/api/create-admin",
        json={"email": "ops@example.com", "password": "ops-pw", "name": "Ops"},
        headers=superadmin_headers,
    )
    assert resp.status_code == 201, resp.text
    return bearer(login(client, "ops@example.com", "ops-pw"))
