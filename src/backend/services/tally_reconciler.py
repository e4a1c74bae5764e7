"""
Tally reconciliation.

Cached tallies must equal the number of vote records per candidate once
admissions have settled. A mismatch means a write path is broken, so it is
reported loudly and only repaired on an explicit operator request.
"""

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from repositories.candidate_repository import CandidateRepository
from repositories.vote_record_repository import VoteRecordRepository

logger = structlog.get_logger(__name__)


class TallyDiscrepancy(BaseModel):
    """A candidate whose cached tally differs from its vote records."""

    candidate_id: str
    tally: int
    counted: int

    @property
    def drift(self) -> int:
        return self.tally - self.counted


class TallyInvariantViolation(Exception):
    """Cached tallies no longer match the vote records."""

    def __init__(self, election_id: str, discrepancies: list[TallyDiscrepancy]):
        self.election_id = election_id
        self.discrepancies = discrepancies
        ids = ", ".join(d.candidate_id for d in discrepancies)
        super().__init__(f"Tally mismatch in election {election_id}: {ids}")


class TallyReconciler:
    """Audits and, on request, rebuilds cached tallies for one election."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession], election_id: str):
        self._session_factory = session_factory
        self.election_id = election_id

    async def audit(self) -> list[TallyDiscrepancy]:
        """Compare every cached tally with its vote-record count."""
        async with self._session_factory() as session:
            candidates = await CandidateRepository(session).list_by_tally(self.election_id)
            counts = await VoteRecordRepository(session).count_by_candidate(self.election_id)

        discrepancies = [
            TallyDiscrepancy(candidate_id=c.id, tally=c.tally, counted=counts.get(c.id, 0))
            for c in candidates
            if c.tally != counts.get(c.id, 0)
        ]
        for d in discrepancies:
            logger.critical(
                "tally_invariant_violation",
                election_id=self.election_id,
                candidate_id=d.candidate_id,
                tally=d.tally,
                counted=d.counted,
            )
        if not discrepancies:
            logger.info("tally_audit_clean", election_id=self.election_id, candidates=len(candidates))
        return discrepancies

    async def verify(self) -> None:
        """Raise TallyInvariantViolation if any tally has drifted."""
        discrepancies = await self.audit()
        if discrepancies:
            raise TallyInvariantViolation(self.election_id, discrepancies)

    async def reconcile(self) -> list[TallyDiscrepancy]:
        """
        Rebuild drifted tallies from the vote records.

        Each fix is a single UPDATE whose value is a count subquery evaluated
        by the database. Run it while admissions are quiet.
        """
        discrepancies = await self.audit()
        if not discrepancies:
            return []

        async with self._session_factory.begin() as session:
            candidates = CandidateRepository(session)
            for d in discrepancies:
                await candidates.recompute_tally(d.candidate_id)
                logger.warning(
                    "tally_reconciled",
                    election_id=self.election_id,
                    candidate_id=d.candidate_id,
                    previous_tally=d.tally,
                    counted=d.counted,
                )
        return discrepancies
