"""
CampusGuard — Invite Route Handlers
=====================================

What:  Issue, list, verify, accept and revoke invitations.

Endpoint                          Guard                    Rate limit
POST /api/v1/invites              admin + write access     invites:create
GET  /api/v1/invites              admin / admin_readonly   —
GET  /api/v1/invites/verify       public                   invites:verify
POST /api/v1/invites/accept       any authenticated        invites:accept
POST /api/v1/invites/{id}/revoke  admin + write access     —

Rate limits run before the auth guard, so token guessing and invite spam
are rejected before any credential or database work.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.config import settings
from campusguard.database import get_db_session
from campusguard.routes.dependencies import rate_limit, require_auth
from campusguard.schemas.common import ErrorResponse
from campusguard.schemas.invite import (
    InviteAcceptRequest,
    InviteAcceptResponse,
    InviteCreatedResponse,
    InviteCreateRequest,
    InviteListResponse,
    InviteResponse,
    InviteVerifyResponse,
)
from campusguard.services.auth_guard import AuthContext
from campusguard.services.invite_service import effective_status, invite_service
from campusguard.services.roles import Role

router = APIRouter(prefix="/api/v1/invites", tags=["Invites"])

_limit_create = rate_limit(
    "invites:create", settings.invite_create_limit, settings.invite_create_window
)
_limit_verify = rate_limit(
    "invites:verify", settings.invite_verify_limit, settings.invite_verify_window
)
_limit_accept = rate_limit(
    "invites:accept", settings.invite_accept_limit, settings.invite_accept_window
)


def _to_response(invite) -> InviteResponse:
    view = InviteResponse.model_validate(invite)
    view.status = effective_status(invite)
    return view


@router.post(
    "",
    response_model=InviteCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(_limit_create)],
    responses={
        400: {"description": "Invalid email or role", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not an admin with write access", "model": ErrorResponse},
        429: {"description": "Too many invites issued", "model": ErrorResponse},
    },
    summary="Issue an invite",
    description="Creates a pending invite. The raw token is returned only in this response.",
)
async def create_invite(
    body: InviteCreateRequest,
    caller: AuthContext = Depends(require_auth(roles=[Role.ADMIN.value], write_access=True)),
    db: AsyncSession = Depends(get_db_session),
) -> InviteCreatedResponse:
    invite = await invite_service.issue(
        db,
        email=body.email,
        role=body.role,
        issuer_id=caller.uid,
        expires_in_hours=body.expires_in_hours,
    )
    return InviteCreatedResponse.model_validate(invite)


@router.get(
    "",
    response_model=InviteListResponse,
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not an admin", "model": ErrorResponse},
    },
    summary="List invites",
)
async def list_invites(
    response: Response,
    status_filter: str | None = Query(
        default=None,
        alias="status",
        pattern="^(pending|accepted|revoked|expired)$",
        description="Filter by pending, accepted, revoked or expired",
    ),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    caller: AuthContext = Depends(
        require_auth(roles=[Role.ADMIN.value, Role.ADMIN_READONLY.value])
    ),
    db: AsyncSession = Depends(get_db_session),
) -> InviteListResponse:
    result = await invite_service.list_invites(db, status=status_filter, limit=limit, offset=offset)
    response.headers["X-Total-Count"] = str(result.total)
    return InviteListResponse(
        invites=[_to_response(invite) for invite in result.invites],
        total=result.total,
    )


@router.get(
    "/verify",
    response_model=InviteVerifyResponse,
    dependencies=[Depends(_limit_verify)],
    responses={
        404: {"description": "Unknown, expired, accepted or revoked", "model": ErrorResponse},
        429: {"description": "Too many lookups", "model": ErrorResponse},
    },
    summary="Check an invite token (public)",
)
async def verify_invite(
    token: str = Query(default="", description="Raw invite token"),
    db: AsyncSession = Depends(get_db_session),
) -> InviteVerifyResponse:
    invite = await invite_service.verify(db, token.strip())
    return InviteVerifyResponse(
        id=invite.id,
        email=invite.email,
        role=invite.role,
        status=effective_status(invite),
        expires_at=invite.expires_at,
    )


@router.post(
    "/accept",
    response_model=InviteAcceptResponse,
    dependencies=[Depends(_limit_accept)],
    responses={
        400: {"description": "Missing token or email mismatch", "model": ErrorResponse},
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Account not active", "model": ErrorResponse},
        404: {"description": "Invite not usable", "model": ErrorResponse},
        429: {"description": "Too many attempts", "model": ErrorResponse},
    },
    summary="Redeem an invite",
    description=(
        "Grants the invite's role to the caller. The caller's verified email must "
        "match the invite email. Creates the profile if the caller has none."
    ),
)
async def accept_invite(
    body: InviteAcceptRequest,
    caller: AuthContext = Depends(require_auth(require_active=False, require_profile=False)),
    db: AsyncSession = Depends(get_db_session),
) -> InviteAcceptResponse:
    profile = await invite_service.accept(db, body.token, caller)
    return InviteAcceptResponse(
        uid=profile.uid,
        email=profile.email,
        roles=list(profile.roles),
        status=profile.status,
    )


@router.post(
    "/{invite_id}/revoke",
    response_model=InviteResponse,
    responses={
        400: {"description": "Invite is not pending", "model": ErrorResponse},
        403: {"description": "Not an admin with write access", "model": ErrorResponse},
        404: {"description": "Invite not found", "model": ErrorResponse},
    },
    summary="Revoke a pending invite",
)
async def revoke_invite(
    invite_id: str,
    caller: AuthContext = Depends(require_auth(roles=[Role.ADMIN.value], write_access=True)),
    db: AsyncSession = Depends(get_db_session),
) -> InviteResponse:
    invite = await invite_service.revoke(db, invite_id, actor_id=caller.uid)
    return _to_response(invite)
