"""Tests for the webhook routes."""

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.models.chat_session import ChatSession
from app.models.message import Message
from app.models.raw_event import RawEvent
from app.models.room import Room

DESTINATION = "Ubot0000000000000000000000000000"


def line_body(*texts, room="U1234567890abcdef"):
    return {
        "destination": DESTINATION,
        "events": [
            {
                "type": "message",
                "timestamp": 1714550400000 + i,
                "webhookEventId": f"01HXEVENT{i}",
                "source": {"type": "user", "userId": room},
                "message": {"id": f"m{i}", "type": "text", "text": text},
            }
            for i, text in enumerate(texts)
        ],
    }


@pytest.fixture
def line_enabled(monkeypatch):
    monkeypatch.setenv("LINE_ENABLED", "true")
    monkeypatch.delenv("LINE_CHANNEL_ACCESS_TOKEN", raising=False)
    monkeypatch.delenv("LINE_CHANNEL_ID", raising=False)


@pytest.fixture
def telegram_enabled(monkeypatch):
    monkeypatch.setenv("TELEGRAM_ENABLED", "true")
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:AAHdqTcvCH1vGWJxfSeofSAs0K5P")


def test_line_webhook_ingests_messages(client, db, line_enabled):
    response = client.post("/webhooks/line", json=line_body("Hello", "How are you?"))

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    room = db.query(Room).one()
    assert room.external_room_id == "U1234567890abcdef"
    session = db.query(ChatSession).one()
    assert [e["message"] for e in session.message_log] == ["Hello", "How are you?"]
    assert db.query(Message).count() == 2
    assert db.query(RawEvent).count() == 2


def test_line_webhook_redelivery_is_acknowledged(client, db, line_enabled):
    client.post("/webhooks/line", json=line_body("Hello"))
    response = client.post("/webhooks/line", json=line_body("Hello"))

    assert response.status_code == 200
    assert db.query(Message).count() == 1


def test_line_webhook_verification_ping(client, line_enabled):
    response = client.post("/webhooks/line", json={"destination": DESTINATION, "events": []})
    assert response.status_code == 200


@patch("app.routers.utils.dependencies.get_settings")
def test_line_webhook_disabled(mock_settings, client: TestClient):
    mock_settings.return_value.line_enabled = False
    response = client.post("/webhooks/line", json=line_body("Hello"))
    assert response.status_code == 503


def test_line_webhook_invalid_json(client, line_enabled):
    response = client.post(
        "/webhooks/line",
        content=b"not json",
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400


def test_line_webhook_non_object_body(client, line_enabled):
    response = client.post("/webhooks/line", json=["not", "an", "object"])
    assert response.status_code == 400


def test_line_webhook_malformed_events_are_acknowledged(client, db, line_enabled):
    response = client.post(
        "/webhooks/line", json={"destination": DESTINATION, "events": "oops"}
    )
    assert response.status_code == 200
    assert db.query(RawEvent).count() == 0


def test_telegram_webhook(client, db, telegram_enabled):
    update = {
        "update_id": 1,
        "message": {
            "message_id": 10,
            "from": {"id": 789, "is_bot": False, "first_name": "Test"},
            "chat": {"id": 789, "type": "private", "first_name": "Test"},
            "date": 1609459200,
            "text": "hello bot",
        },
    }
    response = client.post("/webhooks/telegram", json=update)

    assert response.status_code == 200
    message = db.query(Message).one()
    assert message.content == "hello bot"
    assert message.sender_name == "Test"
    assert db.query(RawEvent).one().id == "telegram:123456:1"


@patch("app.routers.utils.dependencies.get_settings")
def test_telegram_webhook_disabled(mock_settings, client: TestClient):
    mock_settings.return_value.telegram_enabled = False
    mock_settings.return_value.telegram_bot_token = None
    response = client.post("/webhooks/telegram", json={"update_id": 1})
    assert response.status_code == 503


def test_replay(client, db, line_enabled):
    client.post("/webhooks/line", json=line_body("Hello"))

    response = client.post("/webhooks/line/replay/01HXEVENT0")

    assert response.status_code == 200
    assert db.query(Message).count() == 2


def test_replay_unknown_event(client, line_enabled):
    assert client.post("/webhooks/line/replay/missing").status_code == 404


def test_replay_unknown_channel(client):
    assert client.post("/webhooks/whatsapp/replay/e1").status_code == 404
