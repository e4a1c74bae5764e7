"""
Vote-related Pydantic schemas.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

VoteError = Literal["already_voted", "not_found", "closed", "internal"]


class VoteCreate(BaseModel):
    """Schema for casting a vote."""

    candidate_id: str = Field(..., min_length=1, max_length=64)
    identity_token: Optional[str] = Field(
        None,
        min_length=1,
        max_length=255,
        description="Device token; ignored when a bearer token is supplied",
    )


class VoteResponse(BaseModel):
    """Outcome of a vote submission."""

    success: bool
    error: Optional[VoteError] = None
    message: str
    candidate_id: Optional[str] = None
    candidate_name: Optional[str] = None
    participant_id: Optional[str] = Field(
        None, description="Candidate the identity had already voted for"
    )
    retryable: bool = False


class VoteStatus(BaseModel):
    """Whether an identity has voted in the current election."""

    has_voted: bool
    candidate_id: Optional[str] = None
    candidate_name: Optional[str] = None
    cast_at: Optional[datetime] = None
