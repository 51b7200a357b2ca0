"""The in-process SSE hub."""

import asyncio
import json

from campus_market_api.app.core.realtime import (
    RealtimeHub,
    format_sse,
    messages_channel,
    notifications_channel,
)
from campus_market_api.app.services.notification_service import NotificationService


class TestFormat:
    def test_channel_names(self):
        assert messages_channel("m1") == "messages:m1"
        assert notifications_channel("u1") == "notifications:u1"

    def test_frame(self):
        frame = format_sse("message", {"id": "1", "content": "hi"})
        assert frame.startswith("event: message\ndata: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame.split("data: ", 1)[1]) == {"id": "1", "content": "hi"}


class TestHub:
    def test_publish_reaches_only_channel_subscribers(self):
        async def scenario():
            hub = RealtimeHub()
            first = hub.subscribe("messages:a")
            second = hub.subscribe("messages:a")
            other = hub.subscribe("messages:b")
            assert hub.publish("messages:a", "message", {"n": 1}) == 2
            assert first.get_nowait() == ("message", {"n": 1})
            assert second.get_nowait() == ("message", {"n": 1})
            assert other.empty()
            hub.unsubscribe("messages:a", first)
            assert hub.subscriber_count("messages:a") == 1

        asyncio.run(scenario())

    def test_publish_without_subscribers(self):
        assert RealtimeHub().publish("nobody", "message", {}) == 0

    def test_full_queue_drops_event(self):
        async def scenario():
            hub = RealtimeHub()
            queue = hub.subscribe("c")
            for i in range(queue.maxsize):
                hub.publish("c", "message", {"n": i})
            assert hub.publish("c", "message", {"n": "overflow"}) == 0
            assert queue.qsize() == queue.maxsize

        asyncio.run(scenario())

    def test_stream_yields_frames_and_heartbeats(self):
        async def scenario():
            hub = RealtimeHub()
            stream = hub.stream("c", heartbeat=0.01)
            assert await stream.__anext__() == ": connected\n\n"
            assert hub.subscriber_count("c") == 1
            hub.publish("c", "notification", {"title": "x"})
            assert await stream.__anext__() == format_sse("notification", {"title": "x"})
            assert await stream.__anext__() == ": heartbeat\n\n"
            await stream.aclose()
            assert hub.subscriber_count("c") == 0

        asyncio.run(scenario())


class TestServicePublishing:
    def test_notification_insert_is_published(self, client, alice, monkeypatch):
        hub = RealtimeHub()
        monkeypatch.setattr("campus_market_api.app.services.notification_service.hub", hub)

        async def scenario():
            queue = hub.subscribe(notifications_channel(alice["id"]))
            created = await NotificationService.create(alice["id"], "system", "Welcome", "Hello there")
            event, payload = queue.get_nowait()
            assert event == "notification"
            assert payload["id"] == created.id
            assert payload["title"] == "Welcome"

        asyncio.run(scenario())

    def test_chat_message_is_published(self, client, bob, match, monkeypatch):
        hub = RealtimeHub()
        monkeypatch.setattr("campus_market_api.app.services.message_service.hub", hub)
        queue = hub.subscribe(messages_channel(match["id"]))
        response = client.post(
            f"/api/v1/matches/{match['id']}/messages", json={"content": "ping"}, headers=bob["headers"]
        )
        event, payload = queue.get_nowait()
        assert event == "message"
        assert payload["id"] == response.json()["id"]
        assert payload["content"] == "ping"
