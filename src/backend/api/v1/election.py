"""
Election window endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from api.deps import ElectionWindowDep
from schemas.election import ElectionStatus

router = APIRouter()


@router.get("", response_model=ElectionStatus)
async def get_election(window: ElectionWindowDep) -> ElectionStatus:
    """Voting window and whether it is open right now."""
    now = datetime.now(timezone.utc)
    return ElectionStatus(
        election_id=window.election_id,
        opens_at=window.opens_at,
        closes_at=window.closes_at,
        is_open=window.is_open(now),
        seconds_remaining=window.seconds_remaining(now),
    )
