"""
Shared dependencies for API endpoints.

Includes:
- Optional account identity from a bearer JWT
- Admin access for the vote audit list
- Election window and vote admission service wiring
"""

from typing import Annotated, Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import settings
from core.security import account_id_from_token
from db.session import get_session_factory
from services.election_window import ElectionWindow, window_from_settings
from services.identity_resolver import qualified_identity
from services.tally_events import TallyEventBroker, get_tally_broker
from services.vote_admission import VoteAdmissionService

logger = structlog.get_logger(__name__)

# Bearer auth is optional everywhere; device tokens cover anonymous voters
security_optional = HTTPBearer(auto_error=False)


async def get_optional_account_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security_optional)],
) -> str | None:
    """
    Extract the account id from a bearer token, if one is supplied.

    Returns None when no token is provided. A token that is present but
    invalid is rejected rather than silently falling back to a device token.
    """
    if credentials is None:
        return None

    account_id = account_id_from_token(credentials.credentials)
    if account_id is None:
        logger.info("invalid_bearer_token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return account_id


async def require_admin(
    account_id: Annotated[str | None, Depends(get_optional_account_id)],
) -> str:
    """
    Ensure the caller is a configured admin account.

    Raises:
        HTTPException: 401 without a bearer token, 403 for other accounts.
    """
    if account_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if account_id not in settings.admin_account_ids:
        logger.warning("non_admin_access_attempt", account_id=account_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return account_id


def get_election_window() -> ElectionWindow:
    """Election window from configuration."""
    return window_from_settings()


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory; overridden in tests."""
    return get_session_factory()


def get_broker() -> TallyEventBroker:
    return get_tally_broker()


def get_admission_service(
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_db_session_factory)],
    window: Annotated[ElectionWindow, Depends(get_election_window)],
    broker: Annotated[TallyEventBroker, Depends(get_broker)],
) -> VoteAdmissionService:
    """Vote admission service bound to the current election."""
    return VoteAdmissionService(session_factory, window, broker=broker)


def resolve_voter_identity(account_id: Optional[str], identity_token: Optional[str]) -> str:
    """
    Pick the identity a request votes as.

    An authenticated account always wins over a client-supplied device token.
    The result is namespaced by source, so a body token can never stand in
    for an account.

    Raises:
        HTTPException: 400 if the request carries no identity at all.
    """
    if account_id:
        return qualified_identity("account", account_id)
    if identity_token and identity_token.strip():
        return qualified_identity("device", identity_token.strip())
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="An identity token or bearer token is required",
    )


# Type aliases for cleaner endpoint signatures
OptionalAccountId = Annotated[Optional[str], Depends(get_optional_account_id)]
AdminAccountId = Annotated[str, Depends(require_admin)]
AdmissionServiceDep = Annotated[VoteAdmissionService, Depends(get_admission_service)]
ElectionWindowDep = Annotated[ElectionWindow, Depends(get_election_window)]
SessionFactoryDep = Annotated[async_sessionmaker[AsyncSession], Depends(get_db_session_factory)]
BrokerDep = Annotated[TallyEventBroker, Depends(get_broker)]
