"""
Identity resolution schemas.
"""

from typing import Literal

from pydantic import BaseModel


class IdentityResponse(BaseModel):
    """Identity token handed back to the client for later vote submissions."""

    identity_token: str
    source: Literal["account", "device"]
