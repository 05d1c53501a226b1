"""Push side of the update channel.

Provides:
- ThemeEventBroadcaster: registry of connected subscribers, fan-out of theme updates
- event_stream: Server-Sent Events generator for one connected viewer

The broadcaster is an explicit object handed to whoever needs it, so two
apps in one process (tests, mostly) never share subscribers.
"""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from typing import Any, AsyncIterator, Protocol

logger = logging.getLogger(__name__)

KEEPALIVE_FRAME = ": keep-alive\n\n"


class SubscriberClosed(Exception):
    """Delivery attempted to a subscriber whose connection is gone."""


class SubscriberHandle(Protocol):
    id: str

    def send(self, frame: str) -> None: ...

    def close(self) -> None: ...


class Subscriber:
    """One connected viewer: a bounded queue of pending SSE frames."""

    def __init__(self, maxsize: int = 100) -> None:
        self.id = uuid.uuid4().hex[:8]
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def send(self, frame: str) -> None:
        """Enqueue a frame without waiting.

        Raises:
            SubscriberClosed: the connection has been closed.
            asyncio.QueueFull: the viewer stopped draining its queue.
        """
        if self.closed:
            raise SubscriberClosed(self.id)
        self.queue.put_nowait(frame)

    def close(self) -> None:
        self.closed = True


def format_sse(message: dict[str, Any]) -> str:
    """Frame one message as a single-line ``data:`` event."""
    return f"data: {json.dumps(message, separators=(',', ':'))}\n\n"


def connected_message() -> dict[str, str]:
    return {"type": "connected", "message": "SSE connection established"}


class ThemeEventBroadcaster:
    """Fans out theme updates to every connected subscriber."""

    def __init__(self, queue_size: int = 100) -> None:
        self._queue_size = queue_size
        self._subscribers: dict[str, SubscriberHandle] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscriber:
        """Register a new queue-backed subscriber."""
        subscriber = Subscriber(maxsize=self._queue_size)
        self.add(subscriber)
        return subscriber

    def add(self, handle: SubscriberHandle) -> None:
        self._subscribers[handle.id] = handle
        logger.info(
            "Event subscriber connected: %s (total: %d)", handle.id, len(self._subscribers)
        )

    def unsubscribe(self, sub_id: str) -> None:
        """Remove a subscriber. Unknown ids are ignored."""
        handle = self._subscribers.pop(sub_id, None)
        if handle is None:
            return
        handle.close()
        logger.info(
            "Event subscriber disconnected: %s (total: %d)", sub_id, len(self._subscribers)
        )

    def close_all(self) -> None:
        """Drop every subscriber; open streams end at their next wake-up."""
        for sub_id in list(self._subscribers):
            self.unsubscribe(sub_id)

    def broadcast(self, message: dict[str, Any]) -> int:
        """Send one message to all subscribers (non-blocking).

        A subscriber that fails delivery is dropped; the rest still receive
        the message.

        Returns:
            Number of subscribers the message was delivered to.
        """
        frame = format_sse(message)
        delivered = 0
        for sub_id, handle in list(self._subscribers.items()):
            try:
                handle.send(frame)
            except asyncio.QueueFull:
                logger.warning("Subscriber %s is not draining, dropping it", sub_id)
                self.unsubscribe(sub_id)
            except Exception as exc:
                logger.warning("Delivery to subscriber %s failed: %s", sub_id, exc)
                self.unsubscribe(sub_id)
            else:
                delivered += 1
        return delivered


class _DisconnectAware(Protocol):
    async def is_disconnected(self) -> bool: ...


async def event_stream(
    request: _DisconnectAware,
    broadcaster: ThemeEventBroadcaster,
    keepalive_seconds: float = 15.0,
) -> AsyncIterator[str]:
    """Yield SSE frames for one viewer until it disconnects.

    The first frame is the connection acknowledgment, not the current
    theme; viewers pull /webhook/latest if they need the current state.
    """
    subscriber = broadcaster.subscribe()
    try:
        yield format_sse(connected_message())
        while not subscriber.closed:
            if await request.is_disconnected():
                break
            try:
                frame = await asyncio.wait_for(
                    subscriber.queue.get(), timeout=keepalive_seconds
                )
            except asyncio.TimeoutError:
                frame = KEEPALIVE_FRAME
            yield frame
    finally:
        broadcaster.unsubscribe(subscriber.id)
