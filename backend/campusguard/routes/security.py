"""
CampusGuard — Security Event Routes
=====================================

What:  Review and resolve stored security events. Every endpoint requires
       super_admin.

GET  /api/v1/super-admin/security                    events, newest first
GET  /api/v1/super-admin/security/stats              24-hour counts + backlog
POST /api/v1/super-admin/security/{event_id}/resolve close an event
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.database import get_db_session
from campusguard.routes.dependencies import get_request_origin, require_auth
from campusguard.schemas.common import ErrorResponse
from campusguard.schemas.security import (
    SecurityEventListResponse,
    SecurityEventResponse,
    SecurityResolveRequest,
    SecurityResolveResponse,
    SecurityStatsResponse,
)
from campusguard.services.auth_guard import AuthContext
from campusguard.services.rate_limiter import RequestOrigin
from campusguard.services.roles import Role
from campusguard.services.security_service import security_service

router = APIRouter(prefix="/api/v1/super-admin/security", tags=["Security"])

_super_admin = require_auth(roles=[Role.SUPER_ADMIN.value], write_access=True)

_guard_responses = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    403: {"description": "Not a super admin", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=SecurityEventListResponse,
    responses=_guard_responses,
    summary="List security events",
)
async def list_security_events(
    type: str | None = Query(
        default=None,
        pattern="^(login_failed|rate_limit_exceeded|unauthorized_access|suspicious_activity)$",
    ),
    resolved: bool | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SecurityEventListResponse:
    result = await security_service.query(
        db,
        event_type=type,
        resolved=resolved,
        limit=limit,
        offset=offset,
    )
    return SecurityEventListResponse(
        events=[SecurityEventResponse.model_validate(e) for e in result.events],
        total=result.total,
        limit=limit,
        offset=offset,
    )


@router.get(
    "/stats",
    response_model=SecurityStatsResponse,
    responses=_guard_responses,
    summary="Security event statistics",
)
async def security_stats(
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SecurityStatsResponse:
    stats = await security_service.stats(db)
    return SecurityStatsResponse(
        failed_logins_24h=stats.failed_logins_24h,
        rate_limit_exceeded_24h=stats.rate_limit_exceeded_24h,
        unauthorized_access_24h=stats.unauthorized_access_24h,
        unresolved_events=stats.unresolved_events,
    )


@router.post(
    "/{event_id}/resolve",
    response_model=SecurityResolveResponse,
    responses={
        **_guard_responses,
        400: {
            "description": "Missing resolution or security/already-resolved",
            "model": ErrorResponse,
        },
        404: {"description": "security/not-found", "model": ErrorResponse},
    },
    summary="Resolve a security event",
)
async def resolve_security_event(
    event_id: str,
    body: SecurityResolveRequest,
    caller: AuthContext = Depends(_super_admin),
    origin: RequestOrigin = Depends(get_request_origin),
    db: AsyncSession = Depends(get_db_session),
) -> SecurityResolveResponse:
    event = await security_service.resolve(
        db,
        event_id=event_id,
        resolution=body.resolution,
        actor_id=caller.uid,
        actor_email=caller.email,
        origin=origin,
    )
    return SecurityResolveResponse(
        success=True,
        message="Security event resolved",
        event=SecurityEventResponse.model_validate(event),
    )
