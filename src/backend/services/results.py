"""
Results snapshots for the live scoreboard.
"""

from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from repositories.candidate_repository import CandidateRepository
from schemas.candidate import CandidateResult, ResultsResponse


async def build_results_snapshot(db: AsyncSession, election_id: str) -> ResultsResponse:
    """Read every candidate's cached tally, highest first, with percentages."""
    candidates = await CandidateRepository(db).list_by_tally(election_id)
    total = sum(c.tally for c in candidates)

    return ResultsResponse(
        election_id=election_id,
        total_votes=total,
        candidates=[
            CandidateResult(
                id=c.id,
                display_name=c.display_name,
                image_url=c.image_url,
                tally=c.tally,
                percentage=round(c.tally / total * 100, 1) if total > 0 else 0.0,
            )
            for c in candidates
        ],
        generated_at=datetime.now(timezone.utc),
    )
