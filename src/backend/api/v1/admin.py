"""
Admin endpoints.

These endpoints require an admin account (ADMIN_ACCOUNT_IDS) and are used
for auditing who voted for whom.
"""

import structlog
from fastapi import APIRouter

from api.deps import AdminAccountId, ElectionWindowDep, SessionFactoryDep
from repositories.vote_record_repository import VoteRecordRepository
from schemas.admin import DetailedVote, DetailedVoteList

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/votes", response_model=DetailedVoteList)
async def list_votes(
    admin_id: AdminAccountId,
    session_factory: SessionFactoryDep,
    window: ElectionWindowDep,
) -> DetailedVoteList:
    """
    Every vote in the current election, newest first.

    Requires admin authentication.
    """
    async with session_factory() as session:
        rows = await VoteRecordRepository(session).list_detailed(window.election_id)

    logger.info("vote_audit_listed", admin_id=admin_id, votes=len(rows))
    return DetailedVoteList(
        election_id=window.election_id,
        total=len(rows),
        votes=[
            DetailedVote(
                vote_id=row.id,
                identity_token=row.identity_token,
                candidate_id=row.candidate_id,
                candidate_name=row.candidate_name,
                cast_at=row.cast_at,
            )
            for row in rows
        ],
    )
