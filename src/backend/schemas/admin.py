"""
Admin audit schemas.
"""

from datetime import datetime

from pydantic import BaseModel


class DetailedVote(BaseModel):
    """One recorded vote, with the voter's stored identity."""

    vote_id: str
    identity_token: str
    candidate_id: str
    candidate_name: str
    cast_at: datetime


class DetailedVoteList(BaseModel):
    election_id: str
    total: int
    votes: list[DetailedVote]
