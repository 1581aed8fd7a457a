"""Broadcast fan-out and the per-user notification inbox."""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

import gopass.services.notification.main as notification_main
from gopass.common.records import UserProfile
from gopass.services.notification.models import Notification
from gopass.services.notification.service import NotificationService

API_KEY = os.environ["API_KEY"]


@pytest.fixture
def notifications(session_factory):
    return NotificationService(session_factory)

@pytest.fixture
def users(seed):
    seed(UserProfile(uid="u1"), UserProfile(uid="u2"), UserProfile(uid="u3"))
    return ["u1", "u2", "u3"]

@pytest.mark.asyncio
async def test_broadcast_writes_one_row_per_user(notifications, session_factory, users):
    result = await notifications.send_to_all("Festival", "Gates open at 6pm", "/events/evt-1")

    assert result.count == 3
    assert result.delivered == 3
    assert result.failed == []
    with session_factory() as db:
        rows = db.execute(select(Notification)).scalars().all()
    assert sorted(row.user_id for row in rows) == users
    assert {row.message for row in rows} == {"Festival: Gates open at 6pm"}
    assert {row.type for row in rows} == {"event"}
    assert {row.link for row in rows} == {"/events/evt-1"}

@pytest.mark.asyncio
async def test_broadcast_without_users(notifications):
    result = await notifications.send_to_all("Hi", "there")

    assert result.count == 0

def _failing_for(notifications, bad_uid):
    original = notifications._write

    def _write(user_id, message, type_, link):
        if user_id == bad_uid:
            raise RuntimeError("write failed")
        return original(user_id, message, type_, link)

    return _write

@pytest.mark.asyncio
async def test_broadcast_reports_failed_users(monkeypatch, notifications, users):
    monkeypatch.setattr(notifications, "_write", _failing_for(notifications, "u2"))

    result = await notifications.send_to_all("Festival", "Moved indoors")

    assert result.count == 3
    assert result.delivered == 2
    assert result.failed == ["u2"]

@pytest.mark.asyncio
async def test_fail_fast_broadcast_rejects(monkeypatch, notifications, users):
    monkeypatch.setattr(notifications, "_write", _failing_for(notifications, "u2"))

    with pytest.raises(RuntimeError):
        await notifications.send_to_all("Festival", "Moved indoors", fail_fast=True)

@pytest.mark.asyncio
async def test_default_link(notifications):
    await notifications.add_notification("u1", "Welcome", "system")

    (row,) = notifications.list_notifications("u1")
    assert row.link == "#"
    assert not row.is_read

def test_mark_as_read_only_touches_owner(notifications, session_factory, seed):
    seed(
        Notification(id="n1", user_id="u1", message="a", type="event"),
        Notification(id="n2", user_id="u2", message="b", type="event"),
    )

    assert notifications.mark_as_read("u1", ["n1", "n2"]) == 1
    assert notifications.mark_as_read("u1", []) == 0
    with session_factory() as db:
        assert db.get(Notification, "n1").is_read
        assert not db.get(Notification, "n2").is_read

@pytest.fixture
def client(monkeypatch, notifications):
    monkeypatch.setattr(notification_main, "service", notifications)
    return TestClient(notification_main.app)

def test_broadcast_api(client, users):
    denied = client.post("/notifications/broadcast", json={"title": "T", "message": "M"})
    sent = client.post(
        "/notifications/broadcast",
        json={"title": "T", "message": "M"},
        headers={"X-API-Key": API_KEY},
    )

    assert denied.status_code == 401
    assert sent.json() == {"count": 3, "delivered": 3, "failed": []}

    inbox = client.get("/users/u1/notifications").json()
    assert [item["message"] for item in inbox] == ["T: M"]
    read = client.post("/users/u1/notifications/read", json={"ids": [inbox[0]["id"]]})
    assert read.json() == {"updated": 1}
