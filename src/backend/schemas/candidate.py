"""
Candidate and results schemas.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CandidateResult(BaseModel):
    """A candidate with its current tally."""

    id: str
    display_name: str
    image_url: Optional[str] = None
    tally: int
    percentage: float

    model_config = {"from_attributes": True}


class ResultsResponse(BaseModel):
    """Results snapshot, ordered by tally descending."""

    election_id: str
    total_votes: int
    candidates: list[CandidateResult]
    generated_at: datetime
