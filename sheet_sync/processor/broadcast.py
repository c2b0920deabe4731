"""
Fan-out of progress events to live subscribers.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol

from fastapi import WebSocket
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Events buffered per subscriber before new ones are dropped
MAX_PENDING_EVENTS = 1000


class EventSink(Protocol):
    """Anything that can receive a progress event."""

    async def deliver(self, event: Dict[str, Any]) -> None:
        ...


class WebSocketSink:
    """Delivers events to one connected WebSocket client."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def deliver(self, event: Dict[str, Any]) -> None:
        await self.websocket.send_json(event)


class _Subscription:
    """One sink with its own buffer and delivery task."""

    def __init__(self, sink: EventSink, max_pending: int):
        self.sink = sink
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self.dropped = 0
        self._task: Optional[asyncio.Task] = None

    def offer(self, message: Dict[str, Any]) -> None:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"Subscriber is not keeping up; dropped {message.get('type')} event "
                f"({self.dropped} dropped so far)"
            )
            return

        if self._task is None:
            self._task = asyncio.create_task(self._run())

    async def _run(self) -> None:
        while True:
            message = await self.queue.get()
            try:
                await self.sink.deliver(message)
            except Exception as e:
                logger.warning(f"Failed to deliver {message.get('type')} event: {e}")
            finally:
                self.queue.task_done()

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None


class Broadcaster:
    """
    Best-effort publish/subscribe.

    Events go to the sinks subscribed at publish time, in publish order.
    Each sink is fed from its own bounded buffer by its own task, so a slow
    or stalled sink never holds up the publisher or the other sinks. When a
    buffer is full the new event is dropped for that sink only. A failing
    sink is logged and skipped; nothing is retried or replayed.
    """

    def __init__(self, max_pending: int = MAX_PENDING_EVENTS):
        self.max_pending = max_pending
        self._subscriptions: List[_Subscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def _find(self, sink: EventSink) -> Optional[_Subscription]:
        for subscription in self._subscriptions:
            if subscription.sink is sink:
                return subscription
        return None

    def dropped_events(self, sink: EventSink) -> int:
        subscription = self._find(sink)
        return subscription.dropped if subscription else 0

    def subscribe(self, sink: EventSink) -> None:
        if self._find(sink) is None:
            self._subscriptions.append(_Subscription(sink, self.max_pending))

    def unsubscribe(self, sink: EventSink) -> None:
        subscription = self._find(sink)
        if subscription is not None:
            self._subscriptions.remove(subscription)
            subscription.cancel()

    async def publish(self, event: BaseModel) -> None:
        """Queue the event for every current subscriber without waiting for delivery."""
        message = event.model_dump(mode="json")

        for subscription in list(self._subscriptions):
            subscription.offer(message)

    async def flush(self) -> None:
        """Wait until every subscriber has been handed everything published so far."""
        await asyncio.gather(*(s.queue.join() for s in list(self._subscriptions)))

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions.clear()
