"""
Vote admission.

Decides whether an (identity, candidate) pair becomes a recorded vote and,
if so, records it and bumps the candidate's tally in one transaction.

ADMISSION RULES:
1. Outside the election window nothing touches the store (ElectionClosed).
2. The candidate must exist in this election before anything is written.
3. The vote insert is the single point that decides "has this identity
   voted". There is no read-then-write check: the unique constraint on
   (election_id, identity_token) lets exactly one concurrent insert win and
   every loser is reported as AlreadyVoted with the winner's choice.
4. The tally increment is an atomic ``tally = tally + 1`` in the same
   transaction as the insert, so a committed vote is always counted and a
   failed one leaves nothing behind.

The store work runs in a task shielded from caller cancellation; a client
that gives up still leaves a committed or rolled-back admission, never half
of one, and its retry lands on AlreadyVoted.
"""

import asyncio
from datetime import datetime, timezone
from typing import Annotated, Callable, ClassVar, Literal, Optional, Union

import structlog
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repositories.candidate_repository import CandidateRepository
from repositories.vote_record_repository import VoteRecordRepository
from schemas.vote import VoteStatus
from services.election_window import ElectionWindow
from services.tally_events import TallyChanged, TallyEventBroker

logger = structlog.get_logger(__name__)


# =============================================================================
# Admission outcomes
# =============================================================================


class Accepted(BaseModel):
    """Vote recorded and tally incremented."""

    model_config = {"frozen": True}

    outcome: Literal["accepted"] = "accepted"
    candidate_id: str
    candidate_name: str
    tally: int


class AlreadyVoted(BaseModel):
    """The identity already has a vote; nothing was changed."""

    model_config = {"frozen": True}

    outcome: Literal["already_voted"] = "already_voted"
    existing_candidate_id: str
    existing_candidate_name: Optional[str] = None
    cast_at: Optional[datetime] = None


class CandidateNotFound(BaseModel):
    """The candidate does not stand in this election."""

    model_config = {"frozen": True}

    outcome: Literal["candidate_not_found"] = "candidate_not_found"
    candidate_id: str


class ElectionClosed(BaseModel):
    """The request arrived outside the voting window."""

    model_config = {"frozen": True}

    outcome: Literal["election_closed"] = "election_closed"
    election_id: str
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None


class TransientFailure(BaseModel):
    """The store could not be reached; safe to retry with backoff."""

    model_config = {"frozen": True}

    outcome: Literal["transient_failure"] = "transient_failure"
    reason: str


AdmissionResult = Annotated[
    Union[Accepted, AlreadyVoted, CandidateNotFound, ElectionClosed, TransientFailure],
    Field(discriminator="outcome"),
]


class _CandidateVanished(Exception):
    """Candidate row disappeared between the existence check and the increment."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Service
# =============================================================================


class VoteAdmissionService:
    """
    Admits at most one vote per identity per election.

    Safe to call concurrently from any number of tasks or processes sharing
    the same database; correctness rests on the database constraint only.
    """

    # Admissions still running after their caller went away
    _inflight: ClassVar[set[asyncio.Task]] = set()

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        window: ElectionWindow,
        broker: Optional[TallyEventBroker] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._session_factory = session_factory
        self.window = window
        self._broker = broker
        self._clock = clock

    @property
    def election_id(self) -> str:
        return self.window.election_id

    async def admit(self, identity_token: str, candidate_id: str) -> AdmissionResult:
        """
        Try to record a vote.

        Returns exactly one of Accepted, AlreadyVoted, CandidateNotFound,
        ElectionClosed or TransientFailure. Store errors never escape.
        """
        if not self.window.is_open(self._clock()):
            logger.info(
                "vote_rejected_closed",
                election_id=self.election_id,
                candidate_id=candidate_id,
            )
            return ElectionClosed(
                election_id=self.election_id,
                opens_at=self.window.opens_at,
                closes_at=self.window.closes_at,
            )

        task = asyncio.ensure_future(self._admit_open(identity_token, candidate_id))
        VoteAdmissionService._inflight.add(task)
        task.add_done_callback(VoteAdmissionService._inflight.discard)
        return await asyncio.shield(task)

    @classmethod
    async def drain(cls) -> None:
        """Wait for admissions whose callers were cancelled."""
        if cls._inflight:
            await asyncio.gather(*list(cls._inflight), return_exceptions=True)

    async def existing_vote(self, identity_token: str) -> Optional[AlreadyVoted]:
        """Look up the vote an identity cast in this election, if any."""
        async with self._session_factory() as session:
            return await self._existing_vote(session, identity_token)

    async def status(self, identity_token: str) -> VoteStatus:
        """Report whether an identity has voted, and for whom."""
        existing = await self.existing_vote(identity_token)
        if existing is None:
            return VoteStatus(has_voted=False)
        return VoteStatus(
            has_voted=True,
            candidate_id=existing.existing_candidate_id,
            candidate_name=existing.existing_candidate_name,
            cast_at=existing.cast_at,
        )

    async def _admit_open(self, identity_token: str, candidate_id: str) -> AdmissionResult:
        try:
            return await self._admit_in_store(identity_token, candidate_id)
        except (OperationalError, InterfaceError, OSError) as e:
            logger.warning(
                "vote_admission_store_unavailable",
                error=str(e),
                error_type=type(e).__name__,
            )
            return TransientFailure(reason="store_unavailable")
        except SQLAlchemyError as e:
            logger.exception("vote_admission_store_error", error_type=type(e).__name__)
            return TransientFailure(reason="store_error")

    async def _admit_in_store(self, identity_token: str, candidate_id: str) -> AdmissionResult:
        async with self._session_factory() as session:
            candidate = await CandidateRepository(session).get_in_election(
                candidate_id, self.election_id
            )
            if candidate is None:
                # Report the earlier choice so retries stay idempotent
                existing = await self._existing_vote(session, identity_token)
                if existing is not None:
                    logger.info("vote_rejected_already_voted", candidate_id=candidate_id)
                    return existing
                logger.info("vote_rejected_unknown_candidate", candidate_id=candidate_id)
                return CandidateNotFound(candidate_id=candidate_id)
            candidate_name = candidate.display_name

        try:
            async with self._session_factory.begin() as session:
                await VoteRecordRepository(session).create(
                    election_id=self.election_id,
                    identity_token=identity_token,
                    candidate_id=candidate_id,
                )
                candidates = CandidateRepository(session)
                if not await candidates.increment_tally(candidate_id):
                    raise _CandidateVanished(candidate_id)
                tally = await candidates.get_tally(candidate_id)
        except IntegrityError:
            async with self._session_factory() as session:
                existing = await self._existing_vote(session, identity_token)
            if existing is None:
                # No winner to report: the candidate foreign key failed instead
                logger.info(
                    "vote_rejected_unknown_candidate",
                    candidate_id=candidate_id,
                    reason="foreign_key",
                )
                return CandidateNotFound(candidate_id=candidate_id)
            logger.info(
                "vote_rejected_already_voted",
                candidate_id=candidate_id,
                existing_candidate_id=existing.existing_candidate_id,
            )
            return existing
        except _CandidateVanished:
            logger.info("vote_rejected_unknown_candidate", candidate_id=candidate_id, reason="vanished")
            return CandidateNotFound(candidate_id=candidate_id)

        logger.info(
            "vote_accepted",
            election_id=self.election_id,
            candidate_id=candidate_id,
            tally=tally,
        )
        if self._broker is not None:
            self._broker.publish(
                TallyChanged(election_id=self.election_id, candidate_id=candidate_id, tally=tally)
            )
        return Accepted(candidate_id=candidate_id, candidate_name=candidate_name, tally=tally)

    async def _existing_vote(self, session: AsyncSession, identity_token: str) -> Optional[AlreadyVoted]:
        record = await VoteRecordRepository(session).get_by_identity(self.election_id, identity_token)
        if record is None:
            return None
        candidate = await CandidateRepository(session).get_by_id(record.candidate_id)
        return AlreadyVoted(
            existing_candidate_id=record.candidate_id,
            existing_candidate_name=candidate.display_name if candidate else None,
            cast_at=record.cast_at,
        )
