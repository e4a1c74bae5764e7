"""
Pytest fixtures for OneVote backend tests.
"""

import os
from collections.abc import AsyncGenerator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("ELECTION_ID", "test-election")

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402

TEST_ELECTION_ID = "test-election"


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """File-backed SQLite engine so concurrent sessions use real connections."""
    from db.session import create_all, create_engine_for_url

    db_engine = create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'onevote.db'}")
    await create_all(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    from db.session import create_session_factory

    return create_session_factory(engine)


@pytest.fixture
def window() -> Any:
    """An election window that is always open."""
    from services.election_window import ElectionWindow

    return ElectionWindow(election_id=TEST_ELECTION_ID)


@pytest.fixture
def broker() -> Any:
    from services.tally_events import TallyEventBroker

    return TallyEventBroker(queue_size=10)


@pytest.fixture
async def candidates(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, str]:
    """Seed three candidates; returns id -> display name."""
    from repositories.candidate_repository import CandidateRepository

    seeded = {"alice": "Alice", "bob": "Bob", "carol": "Carol"}
    async with session_factory.begin() as session:
        repo = CandidateRepository(session)
        for candidate_id, name in seeded.items():
            await repo.create(
                candidate_id=candidate_id,
                election_id=TEST_ELECTION_ID,
                display_name=name,
            )
    return seeded


@pytest.fixture
def admission(session_factory: async_sessionmaker[AsyncSession], window: Any, broker: Any) -> Any:
    from services.vote_admission import VoteAdmissionService

    return VoteAdmissionService(session_factory, window, broker=broker)


@pytest.fixture
async def app(
    session_factory: async_sessionmaker[AsyncSession],
    window: Any,
    broker: Any,
) -> AsyncGenerator[Any, None]:
    """FastAPI application wired to the test database."""
    from api.deps import get_broker, get_db_session_factory, get_election_window
    from main import app as fastapi_app

    fastapi_app.dependency_overrides[get_db_session_factory] = lambda: session_factory
    fastapi_app.dependency_overrides[get_election_window] = lambda: window
    fastapi_app.dependency_overrides[get_broker] = lambda: broker
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"Origin": "http://localhost:3000"},
    ) as ac:
        yield ac


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Create mock database session."""
    session = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def account_headers() -> dict[str, str]:
    """Bearer headers for a signed-in account."""
    from core.security import create_access_token

    token = create_access_token("account-42")
    return {"Authorization": f"Bearer {token}"}
