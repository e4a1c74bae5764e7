"""Database models module."""

from models.candidate import Candidate
from models.vote_record import VoteRecord

__all__ = [
    "Candidate",
    "VoteRecord",
]
