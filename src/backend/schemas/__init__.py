"""Schemas module initialization."""

from schemas.admin import DetailedVote, DetailedVoteList
from schemas.candidate import CandidateResult, ResultsResponse
from schemas.election import ElectionStatus
from schemas.identity import IdentityResponse
from schemas.vote import VoteCreate, VoteResponse, VoteStatus

__all__ = [
    "DetailedVote",
    "DetailedVoteList",
    "CandidateResult",
    "ResultsResponse",
    "ElectionStatus",
    "IdentityResponse",
    "VoteCreate",
    "VoteResponse",
    "VoteStatus",
]
