"""
Identity resolution endpoint.

Turns the browser's environment signals into the identity token used for
voting. Signed-in callers get their account id back instead.
"""

from fastapi import APIRouter

from api.deps import OptionalAccountId
from core.config import settings
from schemas.identity import IdentityResponse
from services.identity_resolver import EnvironmentSignals, IdentityResolver

router = APIRouter()


@router.post("", response_model=IdentityResponse)
async def resolve_identity(
    signals: EnvironmentSignals,
    account_id: OptionalAccountId,
) -> IdentityResponse:
    """
    Resolve the caller's identity token.

    The device token is a heuristic: identical devices share a token and a
    browser change produces a new one.
    """
    resolver = IdentityResolver(
        account_id=account_id,
        signals=signals,
        salt=settings.IDENTITY_HASH_SALT,
    )
    return IdentityResponse(identity_token=resolver.resolve(), source=resolver.source)
