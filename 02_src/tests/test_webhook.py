"""Tests for the HTTP API."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from gateway.api import create_fastapi_app
from gateway.api.routes import control
from gateway.app import Application
from gateway.models import ImageContent, TextContent


class NeverFires:
    async def __call__(self, seconds: float) -> None:
        await asyncio.Event().wait()


def text_event(user_id="U1", text="สวัสดี", token="tok1"):
    return {
        "type": "message",
        "replyToken": token,
        "source": {"type": "user", "userId": user_id},
        "message": {"type": "text", "id": "100", "text": text},
    }


@pytest.fixture
def application(settings, fake_assistant, tools):
    line_client = Mock()
    line_client.reply = AsyncMock(return_value=True)
    return Application(
        settings=settings,
        assistant_client=fake_assistant,
        line_client=line_client,
        tools=tools,
        sleep=NeverFires(),
    )


@pytest.fixture
def client(application, monkeypatch):
    monkeypatch.setattr(control, "_sim_instance", None)
    with TestClient(create_fastapi_app(application)) as c:
        yield c


class TestWebhook:

    def test_text_message_buffered(self, client, application):
        response = client.post("/webhook", json={"destination": "D", "events": [text_event()]})

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "accepted": 1}
        assert application.debouncer.pending("U1") == [TextContent("สวัสดี")]

    def test_image_message_buffered(self, client, application):
        event = text_event()
        event["message"] = {"type": "image", "id": "m77"}

        response = client.post("/webhook", json={"events": [event]})

        assert response.status_code == 200
        assert application.debouncer.pending("U1") == [ImageContent("m77")]

    def test_several_events_in_one_post(self, client, application):
        events = [text_event(text="หนึ่ง"), text_event(text="สอง", token="tok2")]

        assert client.post("/webhook", json={"events": events}).json()["accepted"] == 2
        assert len(application.debouncer.pending("U1")) == 2

    def test_unsupported_events_ignored(self, client, application):
        sticker = text_event()
        sticker["message"] = {"type": "sticker", "id": "s1", "packageId": "1"}
        follow = {"type": "follow", "replyToken": "t", "source": {"type": "user", "userId": "U1"}}

        response = client.post("/webhook", json={"events": [sticker, follow]})

        assert response.status_code == 200
        assert response.json()["accepted"] == 0
        assert application.debouncer.pending("U1") == []

    def test_empty_events_ok(self, client):
        assert client.post("/webhook", json={"destination": "D", "events": []}).status_code == 200

    def test_malformed_json_rejected(self, client):
        response = client.post(
            "/webhook", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400

    def test_wrong_shape_rejected(self, client):
        assert client.post("/webhook", json={"events": "nope"}).status_code == 400


class TestObservabilityAndControl:

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_trace_events_listed(self, client):
        client.post("/webhook", json={"events": [text_event()]})

        response = client.get("/api/trace-events", params={"event_type": "message_buffered"})

        assert response.status_code == 200
        events = response.json()
        assert len(events) == 1
        assert events[0]["actor"] == "webhook"
        assert events[0]["data"]["user_id"] == "U1"

    def test_trace_events_bad_timestamp(self, client):
        assert client.get("/api/trace-events", params={"after": "yesterday"}).status_code == 400

    def test_reset(self, client, application):
        client.post("/webhook", json={"events": [text_event()]})

        assert client.post("/api/control/reset").json() == {"status": "ok"}
        assert application.debouncer.pending("U1") == []

    def test_sim_not_configured(self, client):
        assert client.post("/api/control/sim/start").status_code == 404
        assert client.post("/api/control/sim/stop").status_code == 404

    def test_sim_start_stop(self, client, monkeypatch):
        sim = Mock()
        sim.start = AsyncMock()
        sim.stop = AsyncMock()
        monkeypatch.setattr(control, "_sim_instance", sim)

        assert client.post("/api/control/sim/start").status_code == 200
        assert client.post("/api/control/sim/stop").status_code == 200
        sim.start.assert_awaited_once()
        sim.stop.assert_awaited_once()
