"""
Candidate results endpoints.

Results are public. The stream endpoint pushes a fresh snapshot after every
accepted vote as server-sent events.
"""

import asyncio
from collections.abc import AsyncIterator

import structlog
from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.deps import BrokerDep, ElectionWindowDep, SessionFactoryDep
from schemas.candidate import ResultsResponse
from services.results import build_results_snapshot
from services.tally_events import TallyEventBroker

logger = structlog.get_logger(__name__)

router = APIRouter()

KEEPALIVE_SECONDS = 15.0


def _sse(event: str, data: str) -> str:
    return f"event: {event}\ndata: {data}\n\n"


async def results_event_stream(
    session_factory: async_sessionmaker[AsyncSession],
    election_id: str,
    broker: TallyEventBroker,
    keepalive_seconds: float = KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """
    Yield a results snapshot on connect and after each tally change.

    Subscribes before the first read so no accepted vote falls between the
    initial snapshot and the first event.
    """
    async with broker.subscribe() as queue:
        async with session_factory() as session:
            snapshot = await build_results_snapshot(session, election_id)
        yield _sse("results", snapshot.model_dump_json())

        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue

            if event.election_id != election_id:
                continue

            # Collapse a burst of events into one snapshot
            while not queue.empty():
                queue.get_nowait()

            async with session_factory() as session:
                snapshot = await build_results_snapshot(session, election_id)
            yield _sse("results", snapshot.model_dump_json())


@router.get("", response_model=ResultsResponse)
async def get_results(
    session_factory: SessionFactoryDep,
    window: ElectionWindowDep,
) -> ResultsResponse:
    """Current results, candidates ordered by tally descending."""
    async with session_factory() as session:
        return await build_results_snapshot(session, window.election_id)


@router.get("/stream")
async def stream_results(
    session_factory: SessionFactoryDep,
    window: ElectionWindowDep,
    broker: BrokerDep,
) -> StreamingResponse:
    """Live results as a text/event-stream."""
    logger.info("results_stream_opened", subscribers=broker.subscriber_count + 1)
    return StreamingResponse(
        results_event_stream(session_factory, window.election_id, broker),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
