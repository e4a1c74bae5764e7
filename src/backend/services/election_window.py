"""
Election window.

Votes are only admitted while ``opens_at <= now < closes_at``. The check runs
server-side inside admission; client clocks and countdowns are never trusted.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from core.config import settings


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ElectionWindow(BaseModel):
    """Read-only voting window for one election."""

    model_config = {"frozen": True}

    election_id: str
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None

    @field_validator("opens_at", "closes_at")
    @classmethod
    def normalise(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v) if v is not None else None

    @model_validator(mode="after")
    def check_order(self) -> "ElectionWindow":
        if self.opens_at and self.closes_at and self.closes_at <= self.opens_at:
            raise ValueError("closes_at must be after opens_at")
        return self

    def has_started(self, now: datetime) -> bool:
        return self.opens_at is None or _as_utc(now) >= self.opens_at

    def has_ended(self, now: datetime) -> bool:
        return self.closes_at is not None and _as_utc(now) >= self.closes_at

    def is_open(self, now: datetime) -> bool:
        """Whether a vote cast at ``now`` may be admitted."""
        return self.has_started(now) and not self.has_ended(now)

    def seconds_remaining(self, now: datetime) -> Optional[int]:
        """Whole seconds until close; None when there is no deadline."""
        if self.closes_at is None:
            return None
        remaining = (self.closes_at - _as_utc(now)).total_seconds()
        return max(0, int(remaining))


def window_from_settings() -> ElectionWindow:
    """Build the configured election window."""
    return ElectionWindow(
        election_id=settings.ELECTION_ID,
        opens_at=settings.ELECTION_OPENS_AT,
        closes_at=settings.ELECTION_CLOSES_AT,
    )
