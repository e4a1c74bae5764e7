"""
Vote submission endpoints.

Anonymous visitors vote with the device token from ``POST /identity``;
signed-in visitors vote as their account. Each identity gets one vote.
"""

from typing import Optional

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from api.deps import AdmissionServiceDep, OptionalAccountId, resolve_voter_identity
from core.config import settings
from schemas.vote import VoteCreate, VoteResponse, VoteStatus
from services.vote_admission import (
    Accepted,
    AdmissionResult,
    AlreadyVoted,
    CandidateNotFound,
    ElectionClosed,
    TransientFailure,
)

router = APIRouter()


def _to_response(result: AdmissionResult) -> JSONResponse:
    """Map an admission outcome onto the HTTP contract."""
    headers: dict[str, str] = {}

    if isinstance(result, Accepted):
        status_code = status.HTTP_200_OK
        body = VoteResponse(
            success=True,
            message=f"Vote recorded for {result.candidate_name}",
            candidate_id=result.candidate_id,
            candidate_name=result.candidate_name,
        )
    elif isinstance(result, AlreadyVoted):
        status_code = status.HTTP_409_CONFLICT
        body = VoteResponse(
            success=False,
            error="already_voted",
            message="You have already voted",
            participant_id=result.existing_candidate_id,
            candidate_name=result.existing_candidate_name,
        )
    elif isinstance(result, CandidateNotFound):
        status_code = status.HTTP_404_NOT_FOUND
        body = VoteResponse(
            success=False,
            error="not_found",
            message="Candidate not found",
            candidate_id=result.candidate_id,
        )
    elif isinstance(result, ElectionClosed):
        status_code = status.HTTP_400_BAD_REQUEST
        body = VoteResponse(
            success=False,
            error="closed",
            message="Voting is closed",
        )
    elif isinstance(result, TransientFailure):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        headers["Retry-After"] = str(settings.TRANSIENT_RETRY_AFTER_SECONDS)
        body = VoteResponse(
            success=False,
            error="internal",
            message="Vote could not be recorded, please try again",
            retryable=True,
        )
    else:
        raise TypeError(f"Unexpected admission result: {result!r}")

    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
        headers=headers,
    )


@router.post(
    "",
    response_model=VoteResponse,
    responses={
        409: {"model": VoteResponse, "description": "Identity has already voted"},
        404: {"model": VoteResponse, "description": "Unknown candidate"},
        400: {"model": VoteResponse, "description": "Voting window closed"},
        503: {"model": VoteResponse, "description": "Store unavailable, retry later"},
    },
)
async def cast_vote(
    vote_data: VoteCreate,
    account_id: OptionalAccountId,
    admission: AdmissionServiceDep,
) -> JSONResponse:
    """
    Cast a vote for a candidate.

    The bearer token's account wins over any identity_token in the body.
    Retrying after a lost response is safe: the retry reports already_voted
    with the candidate that was recorded.
    """
    identity = resolve_voter_identity(account_id, vote_data.identity_token)
    result = await admission.admit(identity, vote_data.candidate_id)
    return _to_response(result)


@router.get("/status", response_model=VoteStatus)
async def get_vote_status(
    account_id: OptionalAccountId,
    admission: AdmissionServiceDep,
    identity_token: Optional[str] = Query(None, max_length=255),
) -> VoteStatus:
    """Check whether the caller has already voted in this election."""
    identity = resolve_voter_identity(account_id, identity_token)
    return await admission.status(identity)
