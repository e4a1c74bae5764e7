"""
Candidate model.

Candidates are created administratively. The cached ``tally`` is only ever
incremented by vote admission, in the same transaction that stores the vote.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class Candidate(Base):
    """A named participant that can receive votes."""

    __tablename__ = "candidates"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    election_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    display_name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Avatar upload is handled elsewhere; only the resulting URL is kept
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Cached count of vote records for this candidate
    tally: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (CheckConstraint("tally >= 0", name="tally_non_negative"),)

    def __repr__(self) -> str:
        return f"<Candidate(id={self.id}, name={self.display_name}, tally={self.tally})>"
