"""
CampusGuard — Current Principal Route
=======================================

What:  GET /api/v1/me returns the verified caller and their profile.
Who:   Portals call it after sign-in to decide which UI to show.
"""

from fastapi import APIRouter, Depends

from campusguard.routes.dependencies import require_auth
from campusguard.schemas.auth import MeResponse, ProfileResponse
from campusguard.schemas.common import ErrorResponse
from campusguard.services.auth_guard import AuthContext
from campusguard.services.roles import has_write_access

router = APIRouter(prefix="/api/v1", tags=["Auth"])


@router.get(
    "/me",
    response_model=MeResponse,
    responses={
        401: {"description": "Missing, invalid or expired token", "model": ErrorResponse},
        403: {"description": "Account not active", "model": ErrorResponse},
        404: {"description": "No profile for this identity", "model": ErrorResponse},
    },
    summary="Current principal",
)
async def get_me(caller: AuthContext = Depends(require_auth())) -> MeResponse:
    return MeResponse(
        uid=caller.uid,
        email=caller.token.email,
        email_verified=caller.token.email_verified,
        profile=ProfileResponse.model_validate(caller.profile) if caller.profile else None,
        has_write_access=has_write_access(caller.roles),
    )
