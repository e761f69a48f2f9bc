# File: tests/test_payments.py

import json

import pytest
from sqlmodel import Session, select

from rideapp.models import Payment


@pytest.fixture
def rider(client, user_factory):
    _, headers = user_factory("payer@example.com")
    ride = client.post("/api/rides", json={"origin": "A", "destination": "B"}, headers=headers).json()
    return headers, ride


def _payment_count(app):
    with Session(app.state.engine) as session:
        return len(session.exec(select(Payment)).all())


def test_qr_payment_stays_pending(client, rider):
    headers, ride = rider
    resp = client.post("/api/payments", json={"ride_id": ride["id"], "amount": 12.5, "method": "QR"},
                       headers=headers)
    assert resp.status_code == 201
    body = resp.json()
    payment = body["payment"]
    assert payment["status"] == "pending"
    assert payment["currency"] == "USD"

    payload = json.loads(body["qr_payload"])
    assert payload["payment_id"] == payment["id"]
    assert payload["amount"] == 12.5
    assert payload["ride_id"] == ride["id"]

    after = client.get(f"/api/rides/{ride['id']}", headers=headers).json()
    assert after["status"] == "pending"


def test_default_method_is_qr(client, rider):
    headers, ride = rider
    body = client.post("/api/payments", json={"ride_id": ride["id"], "amount": 1}, headers=headers).json()
    assert body["payment"]["method"] == "QR"
    assert body["qr_payload"]


def test_cash_payment_completes_ride(client, rider):
    headers, ride = rider
    resp = client.post("/api/payments",
                       json={"ride_id": ride["id"], "amount": 20, "currency": "eur", "method": "CASH"},
                       headers=headers)
    assert resp.status_code == 201
    body = resp.json()
    assert body["payment"]["status"] == "completed"
    assert body["payment"]["currency"] == "EUR"
    assert body["qr_payload"] is None

    after = client.get(f"/api/rides/{ride['id']}", headers=headers).json()
    assert after["status"] == "completed"
    assert after["payments"][0]["id"] == body["payment"]["id"]


@pytest.mark.parametrize("amount", [0, -5, "abc", None, "NaN"])
def test_invalid_amount_rejected(client, app, rider, amount):
    headers, ride = rider
    resp = client.post("/api/payments", json={"ride_id": ride["id"], "amount": amount}, headers=headers)
    assert resp.status_code == 400
    assert _payment_count(app) == 0


def test_missing_or_unknown_ride(client, app, rider):
    headers, _ = rider
    assert client.post("/api/payments", json={"amount": 5}, headers=headers).status_code == 400
    assert client.post("/api/payments", json={"ride_id": 9999, "amount": 5}, headers=headers).status_code == 400
    assert _payment_count(app) == 0


def test_unknown_method_rejected(client, rider):
    headers, ride = rider
    resp = client.post("/api/payments", json={"ride_id": ride["id"], "amount": 5, "method": "BARTER"},
                       headers=headers)
    assert resp.status_code == 400


def test_pay_for_someone_elses_ride(client, app, rider, user_factory, admin_headers):
    _, ride = rider
    _, stranger = user_factory("stranger@example.com")
    resp = client.post("/api/payments", json={"ride_id": ride["id"], "amount": 5}, headers=stranger)
    assert resp.status_code == 403
    assert _payment_count(app) == 0

    resp = client.post("/api/payments", json={"ride_id": ride["id"], "amount": 5, "method": "CARD"},
                       headers=admin_headers)
    assert resp.status_code == 201
    assert resp.json()["payment"]["status"] == "completed"
