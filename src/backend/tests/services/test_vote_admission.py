"""
Tests for vote admission.

These run against a file-backed SQLite database so that concurrent admissions
use separate connections and race on the real unique constraint.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from models.candidate import Candidate
from repositories.candidate_repository import CandidateRepository
from repositories.vote_record_repository import VoteRecordRepository
from services.election_window import ElectionWindow
from services.vote_admission import (
    Accepted,
    AlreadyVoted,
    CandidateNotFound,
    ElectionClosed,
    TransientFailure,
    VoteAdmissionService,
)

ELECTION = "test-election"


async def _tally(session_factory, candidate_id: str) -> int:
    async with session_factory() as session:
        return await CandidateRepository(session).get_tally(candidate_id)


async def _record_count(session_factory) -> int:
    async with session_factory() as session:
        return await VoteRecordRepository(session).count_by_election(ELECTION)


@pytest.mark.integration
class TestAdmission:
    """Single-caller admission outcomes."""

    async def test_first_vote_is_accepted(self, admission, candidates, session_factory) -> None:
        result = await admission.admit("device-1", "alice")

        assert isinstance(result, Accepted)
        assert result.candidate_id == "alice"
        assert result.candidate_name == "Alice"
        assert result.tally == 1
        assert await _tally(session_factory, "alice") == 1

    async def test_second_vote_reports_first_choice(self, admission, candidates, session_factory) -> None:
        await admission.admit("device-1", "alice")

        result = await admission.admit("device-1", "bob")

        assert isinstance(result, AlreadyVoted)
        assert result.existing_candidate_id == "alice"
        assert result.existing_candidate_name == "Alice"
        assert await _tally(session_factory, "bob") == 0
        assert await _record_count(session_factory) == 1

    async def test_retry_with_same_candidate_is_already_voted(self, admission, candidates) -> None:
        first = await admission.admit("device-1", "carol")
        second = await admission.admit("device-1", "carol")

        assert isinstance(first, Accepted)
        assert isinstance(second, AlreadyVoted)
        assert second.existing_candidate_id == "carol"

    async def test_unknown_candidate(self, admission, candidates, session_factory) -> None:
        result = await admission.admit("device-1", "nobody")

        assert result == CandidateNotFound(candidate_id="nobody")
        assert await _record_count(session_factory) == 0

    async def test_unknown_candidate_after_voting_is_already_voted(self, admission, candidates) -> None:
        await admission.admit("device-1", "alice")

        result = await admission.admit("device-1", "nobody")

        assert isinstance(result, AlreadyVoted)
        assert result.existing_candidate_id == "alice"

    async def test_candidate_from_another_election_is_not_found(
        self, admission, candidates, session_factory
    ) -> None:
        async with session_factory.begin() as session:
            await CandidateRepository(session).create(
                candidate_id="dave", election_id="other-election", display_name="Dave"
            )

        result = await admission.admit("device-1", "dave")

        assert isinstance(result, CandidateNotFound)
        assert await _tally(session_factory, "dave") == 0

    async def test_identities_are_independent(self, admission, candidates, session_factory) -> None:
        for i in range(5):
            result = await admission.admit(f"device-{i}", "bob")
            assert isinstance(result, Accepted)
            assert result.tally == i + 1

        assert await _tally(session_factory, "bob") == 5

    async def test_same_identity_in_another_election_may_vote(
        self, session_factory, candidates
    ) -> None:
        async with session_factory.begin() as session:
            await CandidateRepository(session).create(
                candidate_id="erin", election_id="runoff", display_name="Erin"
            )
        main = VoteAdmissionService(session_factory, ElectionWindow(election_id=ELECTION))
        runoff = VoteAdmissionService(session_factory, ElectionWindow(election_id="runoff"))

        assert isinstance(await main.admit("device-1", "alice"), Accepted)
        assert isinstance(await runoff.admit("device-1", "erin"), Accepted)

    async def test_status_reports_choice(self, admission, candidates) -> None:
        before = await admission.status("device-1")
        await admission.admit("device-1", "carol")
        after = await admission.status("device-1")

        assert before.has_voted is False
        assert after.has_voted is True
        assert after.candidate_id == "carol"
        assert after.candidate_name == "Carol"


@pytest.mark.integration
class TestConcurrentAdmission:
    """Races between concurrent admissions."""

    async def test_same_identity_racing_gets_exactly_one_accept(
        self, admission, candidates, session_factory
    ) -> None:
        targets = ["alice", "bob", "carol", "alice", "bob", "carol", "alice", "bob"]

        results = await asyncio.gather(*(admission.admit("device-race", c) for c in targets))

        accepted = [r for r in results if isinstance(r, Accepted)]
        rejected = [r for r in results if isinstance(r, AlreadyVoted)]
        assert len(accepted) == 1
        assert len(rejected) == len(targets) - 1
        winner = accepted[0].candidate_id
        assert all(r.existing_candidate_id == winner for r in rejected)

        assert await _record_count(session_factory) == 1
        assert await _tally(session_factory, winner) == 1
        for other in {"alice", "bob", "carol"} - {winner}:
            assert await _tally(session_factory, other) == 0

    async def test_distinct_identities_all_counted(self, admission, candidates, session_factory) -> None:
        results = await asyncio.gather(*(admission.admit(f"device-{i}", "alice") for i in range(10)))

        assert all(isinstance(r, Accepted) for r in results)
        assert sorted(r.tally for r in results) == list(range(1, 11))
        assert await _tally(session_factory, "alice") == 10

    async def test_cancelled_caller_still_records_vote(
        self, admission, candidates, session_factory
    ) -> None:
        caller = asyncio.create_task(admission.admit("device-1", "bob"))
        await asyncio.sleep(0)
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        await VoteAdmissionService.drain()

        assert await _tally(session_factory, "bob") == 1
        retry = await admission.admit("device-1", "bob")
        assert isinstance(retry, AlreadyVoted)
        assert retry.existing_candidate_id == "bob"


@pytest.mark.unit
class TestWindowAndFailures:
    """Closed windows and store failures."""

    async def test_closed_window_never_touches_store(self) -> None:
        factory = MagicMock()
        closed_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
        window = ElectionWindow(election_id=ELECTION, closes_at=closed_at)
        service = VoteAdmissionService(
            factory, window, clock=lambda: closed_at + timedelta(seconds=1)
        )

        result = await service.admit("device-1", "alice")

        assert isinstance(result, ElectionClosed)
        assert result.closes_at == closed_at
        factory.assert_not_called()
        factory.begin.assert_not_called()

    async def test_not_yet_open_is_closed(self) -> None:
        factory = MagicMock()
        opens_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        service = VoteAdmissionService(
            factory,
            ElectionWindow(election_id=ELECTION, opens_at=opens_at),
            clock=lambda: opens_at - timedelta(minutes=1),
        )

        result = await service.admit("device-1", "alice")

        assert isinstance(result, ElectionClosed)
        factory.assert_not_called()

    async def test_closed_takes_precedence_over_already_voted(
        self, session_factory, candidates
    ) -> None:
        closes_at = datetime(2030, 1, 1, tzinfo=timezone.utc)
        now = {"value": closes_at - timedelta(hours=1)}
        service = VoteAdmissionService(
            session_factory,
            ElectionWindow(election_id=ELECTION, closes_at=closes_at),
            clock=lambda: now["value"],
        )
        assert isinstance(await service.admit("device-1", "alice"), Accepted)

        now["value"] = closes_at
        result = await service.admit("device-1", "alice")

        assert isinstance(result, ElectionClosed)

    async def test_unreachable_store_is_transient(self, window) -> None:
        factory = MagicMock(side_effect=OperationalError("SELECT 1", {}, Exception("connection refused")))
        service = VoteAdmissionService(factory, window)

        result = await service.admit("device-1", "alice")

        assert isinstance(result, TransientFailure)
        assert result.reason == "store_unavailable"

    async def test_unexpected_store_error_is_transient(self, window) -> None:
        factory = MagicMock(side_effect=ProgrammingError("SELECT 1", {}, Exception("bad sql")))
        service = VoteAdmissionService(factory, window)

        result = await service.admit("device-1", "alice")

        assert isinstance(result, TransientFailure)
        assert result.reason == "store_error"

    async def test_os_error_is_transient(self, window) -> None:
        factory = MagicMock(side_effect=ConnectionResetError("reset by peer"))
        service = VoteAdmissionService(factory, window)

        result = await service.admit("device-1", "alice")

        assert isinstance(result, TransientFailure)


@pytest.mark.integration
class TestPartialFailures:
    """Failures part way through an admission transaction."""

    async def test_store_error_after_insert_leaves_nothing(
        self, admission, candidates, session_factory, monkeypatch
    ) -> None:
        async def failing_increment(self, candidate_id: str) -> bool:
            raise OperationalError("UPDATE candidates", {}, Exception("disk I/O error"))

        monkeypatch.setattr(CandidateRepository, "increment_tally", failing_increment)

        result = await admission.admit("device-1", "alice")

        assert result == TransientFailure(reason="store_unavailable")
        assert await _record_count(session_factory) == 0

        monkeypatch.undo()
        assert await _tally(session_factory, "alice") == 0
        retry = await admission.admit("device-1", "alice")
        assert isinstance(retry, Accepted)
        assert retry.tally == 1

    async def test_foreign_key_failure_is_candidate_not_found(
        self, admission, candidates, session_factory, monkeypatch
    ) -> None:
        """The candidate passed the lookup but has no row for the vote to reference."""
        stale = Candidate(id="ghost", election_id=ELECTION, display_name="Ghost", tally=0)

        async def stale_lookup(self, candidate_id: str, election_id: str) -> Candidate:
            return stale

        monkeypatch.setattr(CandidateRepository, "get_in_election", stale_lookup)

        result = await admission.admit("device-1", "ghost")

        assert result == CandidateNotFound(candidate_id="ghost")
        assert await _record_count(session_factory) == 0


@pytest.mark.integration
class TestTallyEvents:
    """Tally change notifications from admission."""

    async def test_accept_publishes_event(self, admission, candidates, broker) -> None:
        async with broker.subscribe() as queue:
            await admission.admit("device-1", "alice")

            event = queue.get_nowait()

        assert event.election_id == ELECTION
        assert event.candidate_id == "alice"
        assert event.tally == 1

    async def test_rejections_publish_nothing(self, admission, candidates, broker) -> None:
        await admission.admit("device-1", "alice")

        async with broker.subscribe() as queue:
            await admission.admit("device-1", "bob")
            await admission.admit("device-2", "nobody")

            assert queue.empty()
