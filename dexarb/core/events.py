"""In-process event stream for presentation subscribers."""

import asyncio
from typing import Any, Dict, List

from loguru import logger

from .types import now_ms


class EventBus:
    """Fan-out of engine events to subscriber queues.

    Events are dicts with a `type` of opportunity, trade, metrics, status
    or error. A full subscriber queue drops the event for that subscriber.
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: List[asyncio.Queue] = []

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.append(queue)
        logger.debug(f"Event subscriber added ({len(self._subscribers)} total)")
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event_type: str, data: Dict[str, Any]):
        event = {'type': event_type, 'timestamp': now_ms(), 'data': data}
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(f"Event subscriber queue full, dropping {event_type} event")
