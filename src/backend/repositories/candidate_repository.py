"""
Candidate repository for database operations.
"""

from typing import Any, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.candidate import Candidate
from models.vote_record import VoteRecord


class CandidateRepository:
    """Repository for candidate database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    def _get_rowcount(self, result: Any) -> int:
        """Safely get rowcount from result."""
        return getattr(result, "rowcount", 0) or 0

    async def get_by_id(self, candidate_id: str) -> Optional[Candidate]:
        """Get a candidate by ID."""
        result = await self.db.execute(select(Candidate).where(Candidate.id == candidate_id))
        return result.scalar_one_or_none()

    async def get_in_election(self, candidate_id: str, election_id: str) -> Optional[Candidate]:
        """Get a candidate only if it stands in the given election."""
        result = await self.db.execute(
            select(Candidate).where(
                Candidate.id == candidate_id,
                Candidate.election_id == election_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_tally(self, election_id: str) -> list[Candidate]:
        """List an election's candidates, highest tally first."""
        result = await self.db.execute(
            select(Candidate)
            .where(Candidate.election_id == election_id)
            .order_by(Candidate.tally.desc(), Candidate.display_name.asc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        candidate_id: str,
        election_id: str,
        display_name: str,
        image_url: Optional[str] = None,
    ) -> Candidate:
        """Create a candidate with an empty tally."""
        candidate = Candidate(
            id=candidate_id,
            election_id=election_id,
            display_name=display_name,
            image_url=image_url,
            tally=0,
        )
        self.db.add(candidate)
        await self.db.flush()
        return candidate

    async def increment_tally(self, candidate_id: str) -> bool:
        """
        Atomically add one vote to a candidate's tally.

        Runs as a single ``UPDATE ... SET tally = tally + 1`` so concurrent
        increments cannot lose updates. Returns False if no such candidate.
        """
        result = await self.db.execute(
            update(Candidate)
            .where(Candidate.id == candidate_id)
            .values(tally=Candidate.tally + 1)
        )
        return self._get_rowcount(result) > 0

    async def get_tally(self, candidate_id: str) -> int:
        """Read the cached tally of a candidate."""
        result = await self.db.execute(select(Candidate.tally).where(Candidate.id == candidate_id))
        return result.scalar() or 0

    async def recompute_tally(self, candidate_id: str) -> bool:
        """Overwrite the cached tally with the vote-record count in one statement."""
        counted = (
            select(func.count(VoteRecord.id))
            .where(VoteRecord.candidate_id == candidate_id)
            .scalar_subquery()
        )
        result = await self.db.execute(
            update(Candidate).where(Candidate.id == candidate_id).values(tally=counted)
        )
        return self._get_rowcount(result) > 0
