"""
Tally change notifications.

In-process publish/subscribe used by the live results stream. Publishing never
blocks admission: a subscriber whose queue is full misses the event and picks
up the current totals with the next snapshot it reads.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

import structlog
from pydantic import BaseModel, Field

from core.config import settings

logger = structlog.get_logger(__name__)


class TallyChanged(BaseModel):
    """A candidate's tally moved after an accepted vote."""

    election_id: str
    candidate_id: str
    tally: int
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TallyEventBroker:
    """Fan-out of tally events to any number of subscribers."""

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue[TallyChanged]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @asynccontextmanager
    async def subscribe(self) -> AsyncIterator[asyncio.Queue[TallyChanged]]:
        """Register a subscriber queue for the duration of the block."""
        queue: asyncio.Queue[TallyChanged] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        logger.debug("tally_subscriber_added", subscribers=len(self._subscribers))
        try:
            yield queue
        finally:
            self._subscribers.discard(queue)
            logger.debug("tally_subscriber_removed", subscribers=len(self._subscribers))

    def publish(self, event: TallyChanged) -> int:
        """Deliver an event to every subscriber; returns how many received it."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("tally_subscriber_lagging", candidate_id=event.candidate_id)
        return delivered


_broker: Optional[TallyEventBroker] = None


def get_tally_broker() -> TallyEventBroker:
    """Get the process-wide broker."""
    global _broker
    if _broker is None:
        _broker = TallyEventBroker(queue_size=settings.TALLY_EVENT_QUEUE_SIZE)
    return _broker
