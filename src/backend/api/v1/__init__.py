"""
API v1 router aggregating all endpoints.
"""

from fastapi import APIRouter

from api.v1.admin import router as admin_router
from api.v1.candidates import router as candidates_router
from api.v1.election import router as election_router
from api.v1.identity import router as identity_router
from api.v1.votes import router as votes_router

router = APIRouter()

router.include_router(votes_router, prefix="/votes", tags=["Votes"])
router.include_router(candidates_router, prefix="/candidates", tags=["Candidates"])
router.include_router(election_router, prefix="/election", tags=["Election"])
router.include_router(identity_router, prefix="/identity", tags=["Identity"])
router.include_router(admin_router, prefix="/admin", tags=["Admin"])
