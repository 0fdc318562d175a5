"""In-process fan-out of broadcast signals to live subscribers.

Delivery is fire-and-forget: a subscriber whose queue is full loses its oldest
pending message rather than blocking the publisher.
"""

import asyncio
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class SignalHub:
    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.discard(queue)

    def publish(self, payload: dict) -> int:
        """Queue ``payload`` for every subscriber. Returns how many got it."""
        delivered = 0
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
                logger.warning("Signal subscriber is lagging, dropped its oldest message")
            queue.put_nowait(payload)
            delivered += 1
        return delivered

    @asynccontextmanager
    async def subscription(self):
        queue = self.subscribe()
        try:
            yield queue
        finally:
            self.unsubscribe(queue)


hub = SignalHub()
