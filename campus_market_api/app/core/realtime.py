"""
In‑process realtime channels served as Server‑Sent Events.

Services publish an event whenever they insert a row that an open
client view cares about (a chat message, a notification).  Each SSE
connection subscribes to one channel and receives a ``data:`` frame per
event; clients are expected to re‑fetch the underlying list when a
frame arrives.  A comment line is sent as heartbeat when the channel is
idle so proxies keep the connection open.

Delivery is best effort and limited to the current process: a
subscriber whose queue is full misses events, and nothing is replayed
after reconnecting.
"""

import asyncio
import json
import logging
from collections import defaultdict
from typing import Any, AsyncIterator, Dict, Set


logger = logging.getLogger(__name__)

QUEUE_SIZE = 100


def messages_channel(match_id: str) -> str:
    return f"messages:{match_id}"


def notifications_channel(user_id: str) -> str:
    return f"notifications:{user_id}"


def format_sse(event: str, payload: Dict[str, Any]) -> str:
    """Render one SSE frame."""
    return f"event: {event}\ndata: {json.dumps(payload, default=str)}\n\n"


class RealtimeHub:
    """Fan out published events to the queues of current subscribers."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, Set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, channel: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
        self._subscribers[channel].add(queue)
        logger.debug("Subscribed to %s (%d listeners)", channel, len(self._subscribers[channel]))
        return queue

    def unsubscribe(self, channel: str, queue: asyncio.Queue) -> None:
        listeners = self._subscribers.get(channel)
        if not listeners:
            return
        listeners.discard(queue)
        if not listeners:
            del self._subscribers[channel]

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))

    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> int:
        """Queue ``payload`` for every subscriber of ``channel``.

        Returns the number of subscribers that received the event.
        """
        delivered = 0
        for queue in list(self._subscribers.get(channel, ())):
            try:
                queue.put_nowait((event, payload))
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Dropping %s event on %s: subscriber queue full", event, channel)
        return delivered

    async def stream(self, channel: str, heartbeat: float) -> AsyncIterator[str]:
        """Yield SSE frames for ``channel`` until the client disconnects."""
        queue = self.subscribe(channel)
        try:
            yield ": connected\n\n"
            while True:
                try:
                    event, payload = await asyncio.wait_for(queue.get(), timeout=heartbeat)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                yield format_sse(event, payload)
        finally:
            self.unsubscribe(channel, queue)


hub = RealtimeHub()
