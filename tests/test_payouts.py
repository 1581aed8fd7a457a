"""Payout request lifecycle and admin API."""

import os

import pytest
from fastapi.testclient import TestClient

import gopass.services.payouts.main as payouts_main
from gopass.common.errors import PayoutConflictError, RecordNotFoundError
from gopass.services.payouts.models import PayoutRequest
from gopass.services.payouts.service import PayoutService

API_KEY = os.environ["API_KEY"]


@pytest.fixture
def payouts(session_factory):
    return PayoutService(session_factory)

def test_approve_pending_request(payouts, session_factory):
    request = payouts.create_request("org-1", 25000)

    processed = payouts.process_request(request.id, "approved")

    assert processed.status == "approved"
    assert processed.processed_at is not None
    with session_factory() as db:
        stored = db.get(PayoutRequest, request.id)
        assert stored.status == "approved"
        assert stored.processed_at is not None

def test_decided_request_cannot_be_processed_again(payouts, session_factory):
    request = payouts.create_request("org-1", 25000)
    payouts.process_request(request.id, "approved")

    with pytest.raises(PayoutConflictError) as excinfo:
        payouts.process_request(request.id, "denied")

    assert excinfo.value.status == "approved"
    with session_factory() as db:
        assert db.get(PayoutRequest, request.id).status == "approved"

def test_invalid_decision(payouts):
    request = payouts.create_request("org-1", 100)

    with pytest.raises(ValueError):
        payouts.process_request(request.id, "pending")

def test_missing_request(payouts):
    with pytest.raises(RecordNotFoundError):
        payouts.process_request("nope", "approved")

def test_non_positive_amount(payouts):
    with pytest.raises(ValueError):
        payouts.create_request("org-1", 0)

def test_list_filters_by_status(payouts):
    first = payouts.create_request("org-1", 100)
    payouts.create_request("org-2", 200)
    payouts.process_request(first.id, "denied")

    assert [r.organizer_id for r in payouts.list_requests("pending")] == ["org-2"]
    assert len(payouts.list_requests()) == 2

@pytest.fixture
def client(monkeypatch, payouts):
    monkeypatch.setattr(payouts_main, "service", payouts)
    return TestClient(payouts_main.app)

def test_api_flow(client):
    created = client.post("/payout-requests", json={"organizer_id": "org-1", "amount": 5000})
    assert created.status_code == 201
    request_id = created.json()["id"]
    assert created.json()["status"] == "pending"

    headers = {"X-API-Key": API_KEY}
    approved = client.post(f"/payout-requests/{request_id}/process", json={"status": "approved"}, headers=headers)
    again = client.post(f"/payout-requests/{request_id}/process", json={"status": "approved"}, headers=headers)

    assert approved.status_code == 200
    assert approved.json()["status"] == "approved"
    assert again.status_code == 409

def test_api_requires_key(client):
    assert client.get("/payout-requests").status_code == 401
    assert client.post("/payout-requests/x/process", json={"status": "approved"}).status_code == 401

def test_api_validation(client):
    headers = {"X-API-Key": API_KEY}

    assert client.post("/payout-requests", json={"organizer_id": "org-1", "amount": -1}).status_code == 422
    assert client.post("/payout-requests/x/process", json={"status": "paid"}, headers=headers).status_code == 422
    assert client.post("/payout-requests/x/process", json={"status": "denied"}, headers=headers).status_code == 404
