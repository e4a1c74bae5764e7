"""
Vote record repository for database operations.

Inserts go straight to the table; a duplicate identity surfaces as an
``IntegrityError`` from the unique constraint at flush time.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import Row, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from models.candidate import Candidate
from models.vote_record import VoteRecord


class VoteRecordRepository:
    """Repository for vote record database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_identity(self, election_id: str, identity_token: str) -> Optional[VoteRecord]:
        """Get the vote cast by an identity in an election."""
        result = await self.db.execute(
            select(VoteRecord).where(
                VoteRecord.election_id == election_id,
                VoteRecord.identity_token == identity_token,
            )
        )
        return result.scalar_one_or_none()

    async def create(
        self,
        election_id: str,
        identity_token: str,
        candidate_id: str,
    ) -> VoteRecord:
        """
        Insert a vote record.

        Raises:
            IntegrityError: if the identity already voted in this election
                (or the candidate row no longer exists).
        """
        record = VoteRecord(
            id=str(uuid4()),
            election_id=election_id,
            identity_token=identity_token,
            candidate_id=candidate_id,
        )
        self.db.add(record)
        await self.db.flush()
        return record

    async def count_by_election(self, election_id: str) -> int:
        """Get total vote count for an election."""
        result = await self.db.execute(
            select(func.count(VoteRecord.id)).where(VoteRecord.election_id == election_id)
        )
        return result.scalar() or 0

    async def count_by_candidate(self, election_id: str) -> dict[str, int]:
        """Get vote counts per candidate, derived from the records themselves."""
        result = await self.db.execute(
            select(VoteRecord.candidate_id, func.count(VoteRecord.id).label("count"))
            .where(VoteRecord.election_id == election_id)
            .group_by(VoteRecord.candidate_id)
        )
        counts: dict[str, int] = {}
        for row in result.all():
            counts[str(row[0])] = int(row[1])
        return counts

    async def list_detailed(self, election_id: str) -> list[Row]:
        """
        Audit listing of every vote in an election, newest first.

        Rows carry ``id``, ``identity_token``, ``candidate_id``,
        ``candidate_name`` and ``cast_at``.
        """
        result = await self.db.execute(
            select(
                VoteRecord.id,
                VoteRecord.identity_token,
                VoteRecord.candidate_id,
                Candidate.display_name.label("candidate_name"),
                VoteRecord.cast_at,
            )
            .join(Candidate, Candidate.id == VoteRecord.candidate_id)
            .where(VoteRecord.election_id == election_id)
            .order_by(VoteRecord.cast_at.desc(), VoteRecord.id)
        )
        return list(result.all())
