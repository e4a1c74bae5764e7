"""
Voter identity resolution.

A signed-in account is its own identity. Without an account, a token is
derived from stable device signals (screen geometry, timezone, locale,
platform, hardware hints and, when it can be read, the WebGL adapter).

LIMITATIONS: the device path is a heuristic, not authentication. Two devices
with identical hardware and software collide on one token, and the same
device yields a new token after a browser or profile change. The signals are
not secret and can be spoofed; they only deter casual double voting.
"""

import hashlib
import hmac
from typing import Literal, Optional

from pydantic import BaseModel, Field

IdentitySource = Literal["account", "device"]

COMPONENT_DELIMITER = "|"


def qualified_identity(source: IdentitySource, value: str) -> str:
    """
    Prefix an identity with its source before it is stored.

    Account ids and device tokens share one column; the prefix keeps a device
    token that happens to equal an account id from claiming that account.
    """
    return f"{source}:{value}"


class EnvironmentSignals(BaseModel):
    """Device signals reported by the client."""

    screen_width: Optional[int] = Field(None, ge=0)
    screen_height: Optional[int] = Field(None, ge=0)
    color_depth: Optional[int] = Field(None, ge=0)
    pixel_depth: Optional[int] = Field(None, ge=0)

    timezone: Optional[str] = None  # IANA name, e.g. "Europe/Berlin"
    language: Optional[str] = None
    languages: list[str] = Field(default_factory=list)
    platform: Optional[str] = None

    hardware_concurrency: Optional[int] = Field(None, ge=0)
    device_memory: Optional[float] = Field(None, ge=0)  # GB

    # Absent when the browser exposes no WebGL context
    webgl_renderer: Optional[str] = None
    webgl_vendor: Optional[str] = None

    def components(self) -> list[str]:
        """Fixed, ordered list of signal strings fed to the digest."""
        parts = [
            f"{self.screen_width or 0}x{self.screen_height or 0}",
            str(self.color_depth or 0),
            str(self.pixel_depth or 0),
            self.timezone or "",
            self.language or "",
            ",".join(self.languages),
            self.platform or "",
            str(self.hardware_concurrency or 0),
            _format_number(self.device_memory),
        ]
        if self.webgl_renderer:
            parts.append(self.webgl_renderer)
        if self.webgl_vendor:
            parts.append(self.webgl_vendor)
        return parts


def _format_number(value: Optional[float]) -> str:
    if not value:
        return "0"
    return str(int(value)) if float(value).is_integer() else str(value)


def derive_device_token(signals: EnvironmentSignals, salt: Optional[str] = None) -> str:
    """
    Digest device signals into a 64-character hex token.

    Uses HMAC-SHA-256 when a salt is configured, plain SHA-256 otherwise.
    """
    data = COMPONENT_DELIMITER.join(signals.components()).encode("utf-8")
    if salt:
        return hmac.new(salt.encode("utf-8"), data, hashlib.sha256).hexdigest()
    return hashlib.sha256(data).hexdigest()


class IdentityResolver:
    """
    Resolves the identity token for one client session.

    The first ``resolve()`` result is cached, so repeated calls within a
    session always return the same token.
    """

    def __init__(
        self,
        account_id: Optional[str] = None,
        signals: Optional[EnvironmentSignals] = None,
        salt: Optional[str] = None,
    ):
        self._account_id = account_id.strip() if account_id and account_id.strip() else None
        self._signals = signals or EnvironmentSignals()
        self._salt = salt
        self._token: Optional[str] = None

    @property
    def source(self) -> IdentitySource:
        return "account" if self._account_id else "device"

    def resolve(self) -> str:
        """Return the identity token; never raises for missing signals."""
        if self._token is None:
            if self._account_id:
                self._token = self._account_id
            else:
                self._token = derive_device_token(self._signals, self._salt)
        return self._token
