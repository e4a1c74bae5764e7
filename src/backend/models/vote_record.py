"""
Vote record model.

One row per accepted vote. The unique constraint on
(election_id, identity_token) is the only thing that decides whether an
identity has already voted; the application never takes a lock of its own.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

UNIQUE_IDENTITY_CONSTRAINT = "uq_vote_records_election_identity"


class VoteRecord(Base):
    """
    An accepted vote.

    Created exactly once by the admission service and never updated or
    deleted during normal operation.
    """

    __tablename__ = "vote_records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    election_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # "account:<id>" or "device:<token>"
    identity_token: Mapped[str] = mapped_column(String(320), nullable=False)

    candidate_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("candidates.id", ondelete="RESTRICT"),
        nullable=False,
    )

    cast_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("election_id", "identity_token", name=UNIQUE_IDENTITY_CONSTRAINT),
        Index("ix_vote_records_election_candidate", "election_id", "candidate_id"),
    )

    def __repr__(self) -> str:
        return f"<VoteRecord(election={self.election_id}, candidate={self.candidate_id})>"
