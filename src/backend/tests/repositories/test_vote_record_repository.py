"""
Tests for vote record repository.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError


@pytest.mark.unit
class TestVoteRecordRepository:
    """Test VoteRecordRepository operations with a mocked session."""

    async def test_create_adds_and_flushes(self, mock_db_session) -> None:
        from repositories.vote_record_repository import VoteRecordRepository

        record = await VoteRecordRepository(mock_db_session).create(
            election_id="e1",
            identity_token="device-1",
            candidate_id="alice",
        )

        mock_db_session.add.assert_called_once_with(record)
        mock_db_session.flush.assert_awaited_once()
        assert record.identity_token == "device-1"
        assert len(record.id) == 36

    async def test_create_propagates_unique_violation(self, mock_db_session) -> None:
        from repositories.vote_record_repository import VoteRecordRepository

        mock_db_session.flush = AsyncMock(
            side_effect=IntegrityError("INSERT", {}, Exception("duplicate key"))
        )

        with pytest.raises(IntegrityError):
            await VoteRecordRepository(mock_db_session).create(
                election_id="e1",
                identity_token="device-1",
                candidate_id="alice",
            )

    async def test_count_by_candidate(self, mock_db_session) -> None:
        from repositories.vote_record_repository import VoteRecordRepository

        mock_result = MagicMock()
        mock_result.all = MagicMock(return_value=[("alice", 3), ("bob", 1)])
        mock_db_session.execute = AsyncMock(return_value=mock_result)

        counts = await VoteRecordRepository(mock_db_session).count_by_candidate("e1")

        assert counts == {"alice": 3, "bob": 1}


@pytest.mark.integration
class TestVoteRecordConstraint:
    """The unique constraint is what enforces one vote per identity."""

    async def test_duplicate_identity_rejected_by_database(self, session_factory, candidates) -> None:
        from repositories.vote_record_repository import VoteRecordRepository

        async with session_factory.begin() as session:
            await VoteRecordRepository(session).create("test-election", "device-1", "alice")

        with pytest.raises(IntegrityError):
            async with session_factory.begin() as session:
                await VoteRecordRepository(session).create("test-election", "device-1", "bob")

        async with session_factory() as session:
            repo = VoteRecordRepository(session)
            assert await repo.count_by_election("test-election") == 1
            existing = await repo.get_by_identity("test-election", "device-1")
            assert existing is not None
            assert existing.candidate_id == "alice"

    async def test_vote_for_missing_candidate_rejected(self, session_factory, candidates) -> None:
        from repositories.vote_record_repository import VoteRecordRepository

        with pytest.raises(IntegrityError):
            async with session_factory.begin() as session:
                await VoteRecordRepository(session).create("test-election", "device-1", "nobody")

        async with session_factory() as session:
            assert await VoteRecordRepository(session).count_by_election("test-election") == 0

    async def test_candidate_with_votes_cannot_be_deleted(self, session_factory, candidates) -> None:
        from models.candidate import Candidate
        from repositories.vote_record_repository import VoteRecordRepository

        async with session_factory.begin() as session:
            await VoteRecordRepository(session).create("test-election", "device-1", "alice")

        with pytest.raises(IntegrityError):
            async with session_factory.begin() as session:
                await session.execute(delete(Candidate).where(Candidate.id == "alice"))


@pytest.mark.integration
class TestListDetailed:
    """Audit listing of stored votes."""

    async def test_newest_first_with_candidate_names(self, session_factory, candidates) -> None:
        from models.vote_record import VoteRecord
        from repositories.vote_record_repository import VoteRecordRepository

        base = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
        async with session_factory.begin() as session:
            session.add_all(
                [
                    VoteRecord(
                        id="v1",
                        election_id="test-election",
                        identity_token="device:first",
                        candidate_id="alice",
                        cast_at=base,
                    ),
                    VoteRecord(
                        id="v2",
                        election_id="test-election",
                        identity_token="account:account-7",
                        candidate_id="bob",
                        cast_at=base + timedelta(minutes=5),
                    ),
                    VoteRecord(
                        id="v3",
                        election_id="other-election",
                        identity_token="device:first",
                        candidate_id="carol",
                        cast_at=base + timedelta(minutes=10),
                    ),
                ]
            )

        async with session_factory() as session:
            rows = await VoteRecordRepository(session).list_detailed("test-election")

        assert [row.id for row in rows] == ["v2", "v1"]
        assert rows[0].identity_token == "account:account-7"
        assert rows[0].candidate_name == "Bob"
        assert rows[1].candidate_id == "alice"
        assert rows[1].candidate_name == "Alice"

    async def test_empty_election(self, session_factory, candidates) -> None:
        from repositories.vote_record_repository import VoteRecordRepository

        async with session_factory() as session:
            assert await VoteRecordRepository(session).list_detailed("test-election") == []
