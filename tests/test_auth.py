# File: tests/test_auth.py

from datetime import timedelta

import jwt
import pytest
from pydantic import ValidationError
from sqlmodel import Session, select

from rideapp.config import Settings
from rideapp.auth import create_access_token, decode_token, hash_password, verify_password
from rideapp.errors import Unauthorized
from rideapp.models import User
from rideapp.roles import Role

from .conftest import SUPERADMIN_EMAIL, bearer, login, register


def _user(**kw):
    data = {"id": 7, "email": "a@example.com", "password_hash": "x", "name": "A", "role": Role.USER}
    data.update(kw)
    return User(**data)


def test_password_hash_roundtrip():
    h = hash_password("pw123")
    assert h != "pw123"
    assert verify_password("pw123", h)
    assert not verify_password("nope", h)


def test_token_accepted_before_expiry(settings):
    token = create_access_token(_user(), settings, expires_delta=timedelta(minutes=1))
    current = decode_token(token, settings)
    assert current.id == 7
    assert current.email == "a@example.com"
    assert current.role == Role.USER


def test_token_rejected_after_expiry(settings):
    token = create_access_token(_user(), settings, expires_delta=timedelta(seconds=-1))
    with pytest.raises(Unauthorized) as exc:
        decode_token(token, settings)
    assert exc.value.status_code == 401


def test_token_with_wrong_secret_rejected(settings):
    token = jwt.encode({"sub": "7", "email": "a@example.com", "role": "ADMIN", "exp": 4102444800},
                       "other-secret", algorithm="HS256")
    with pytest.raises(Unauthorized):
        decode_token(token, settings)


def test_register_and_login(client):
    resp = register(client, "alice@example.com", name="Alice", phone="555")
    assert resp.status_code == 201
    body = resp.json()
    assert body["role"] == "USER"
    assert body["email"] == "alice@example.com"
    assert "password" not in body and "password_hash" not in body

    resp = client.post("/api/login", json={"email": "alice@example.com", "password": "pw123"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["message"] == "Login successful"
    assert data["user"]["id"] == body["id"]

    me = client.get("/api/me", headers=bearer(data["token"]))
    assert me.status_code == 200
    assert me.json()["name"] == "Alice"


def test_signup_alias(client):
    resp = client.post("/api/signup", json={"email": "bob@example.com", "password": "pw", "name": "Bob"})
    assert resp.status_code == 201


def test_register_duplicate_email_conflicts(client):
    assert register(client, "dup@example.com").status_code == 201
    resp = register(client, "dup@example.com")
    assert resp.status_code == 409


def test_register_reserved_email_forbidden(client, app):
    resp = register(client, SUPERADMIN_EMAIL.upper())
    assert resp.status_code == 403

    with Session(app.state.engine) as session:
        rows = session.exec(select(User).where(User.email == SUPERADMIN_EMAIL)).all()
    # only the seeded superadmin
    assert len(rows) == 1
    assert rows[0].role == Role.SUPERADMIN


def test_login_wrong_password_unauthorized(client):
    register(client, "carol@example.com")
    resp = client.post("/api/login", json={"email": "carol@example.com", "password": "bad"})
    assert resp.status_code == 401
    assert "token" not in resp.json()


def test_login_unknown_email_unauthorized(client):
    resp = client.post("/api/login", json={"email": "ghost@example.com", "password": "pw"})
    assert resp.status_code == 401


def test_missing_or_malformed_credentials(client):
    assert client.get("/api/me").status_code == 401
    assert client.get("/api/me", headers={"Authorization": "Bearer not-a-jwt"}).status_code == 401
    assert client.get("/api/me", headers={"Authorization": "Basic abc"}).status_code == 401


def test_expired_token_rejected_over_http(client, settings):
    register(client, "dave@example.com")
    login(client, "dave@example.com")
    token = create_access_token(_user(id=2, email="dave@example.com"), settings,
                                expires_delta=timedelta(seconds=-1))
    resp = client.get("/api/rides", headers=bearer(token))
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Token has expired"


def test_login_with_malformed_email_is_unauthorized(client):
    resp = client.post("/api/login", json={"email": "not-an-email", "password": "pw"})
    assert resp.status_code == 401
    resp = client.post("/api/login", json={"email": "someone@host.local", "password": "pw"})
    assert resp.status_code == 401


def test_login_email_is_case_insensitive(client):
    register(client, "erin@example.com")
    resp = client.post("/api/login", json={"email": "ERIN@example.com", "password": "pw123"})
    assert resp.status_code == 200


def test_invalid_superadmin_email_fails_at_startup():
    with pytest.raises(ValidationError):
        Settings(superadmin_email="not-an-email")
    with pytest.raises(ValidationError):
        Settings(superadmin_email="root@superapp.local")
    assert Settings(superadmin_email="Root@SuperApp.com").superadmin_email == "root@superapp.com"
