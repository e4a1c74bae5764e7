"""
Election window schema.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ElectionStatus(BaseModel):
    election_id: str
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None
    is_open: bool
    seconds_remaining: Optional[int] = None
