"""Repository modules for database access."""

from repositories.candidate_repository import CandidateRepository
from repositories.vote_record_repository import VoteRecordRepository

__all__ = [
    "CandidateRepository",
    "VoteRecordRepository",
]
