"""Fan-out of execution events to WebSocket subscribers."""
from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any, AsyncIterator, Dict, List

from softdeploy.services.logging_service import logging_service

EXECUTIONS_CHANNEL = "executions"
DEFAULT_QUEUE_SIZE = 1000

Event = Dict[str, Any]


class EventBus:
    """In-memory pub/sub keyed by channel name.

    Each subscriber owns a bounded queue. Publishing never blocks the
    execution loop: when a subscriber falls behind, its oldest pending
    event is dropped to make room.
    """

    def __init__(self, max_queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[str, List[asyncio.Queue[Event]]] = defaultdict(list)
        self._logger = logging_service.get_logger(__name__)

    async def publish(self, channel: str, message: Event) -> int:
        """Deliver *message* to every subscriber of *channel* and return how many were reached."""
        queues = list(self._subscribers.get(channel, ()))
        for queue in queues:
            if queue.full():
                queue.get_nowait()
                self._logger.warning("Subscriber on %s is lagging, dropped its oldest event", channel)
            queue.put_nowait(message)
        return len(queues)

    async def get_queue(self, channel: str) -> asyncio.Queue[Event]:
        queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers[channel].append(queue)
        return queue

    async def unsubscribe(self, channel: str, queue: asyncio.Queue[Event]) -> None:
        subscribers = self._subscribers.get(channel)
        if not subscribers:
            return
        if queue in subscribers:
            subscribers.remove(queue)
        if not subscribers:
            self._subscribers.pop(channel, None)

    async def subscribe(self, channel: str) -> AsyncIterator[Event]:
        queue = await self.get_queue(channel)
        try:
            while True:
                yield await queue.get()
        finally:
            await self.unsubscribe(channel, queue)

    def subscriber_count(self, channel: str) -> int:
        return len(self._subscribers.get(channel, ()))
