"""
CampusGuard — Super-Admin User Management Routes
==================================================

What:  Admin directory, promotion/demotion, emergency suspension and the
       audit log. Every endpoint requires super_admin.

Service failures come back as result objects; error_for_code() maps their
ErrorCode to a 404 (user/not-found) or a 400 (everything else).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.database import get_db_session
from campusguard.exceptions import error_for_code
from campusguard.routes.dependencies import get_request_origin, require_auth
from campusguard.schemas.admin import (
    EmergencySuspendRequest,
    LiftSuspensionRequest,
    PrivilegeChangeRequest,
    PrivilegeChangeResponse,
    PromotionHistoryResponse,
    PromotionRecordResponse,
    UserListResponse,
)
from campusguard.schemas.auth import ProfileResponse
from campusguard.schemas.common import ErrorResponse
from campusguard.schemas.recovery import (
    AuditLogEntryResponse,
    AuditLogListResponse,
    SuspensionChangeResponse,
    SuspensionListResponse,
    SuspensionResponse,
)
from campusguard.services.admin_service import admin_service
from campusguard.services.audit_service import audit_service
from campusguard.services.auth_guard import AuthContext
from campusguard.services.rate_limiter import RequestOrigin
from campusguard.services.recovery_service import recovery_service
from campusguard.services.roles import Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/super-admin", tags=["Super Admin"])

_super_admin = require_auth(roles=[Role.SUPER_ADMIN.value], write_access=True)

_guard_responses = {
    401: {"description": "Not authenticated", "model": ErrorResponse},
    403: {"description": "Not a super admin", "model": ErrorResponse},
}


# ── Directory ─────────────────────────────────────────────────────────────

@router.get(
    "/users/admins",
    response_model=UserListResponse,
    responses=_guard_responses,
    summary="List admins and super admins",
)
async def list_admins(
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users = await admin_service.list_admins(db)
    return UserListResponse(
        users=[ProfileResponse.model_validate(u) for u in users],
        total=len(users),
    )


@router.get(
    "/users/promotable",
    response_model=UserListResponse,
    responses=_guard_responses,
    summary="List active users eligible for promotion",
)
async def list_promotable_users(
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> UserListResponse:
    users = await admin_service.list_promotable_users(db)
    return UserListResponse(
        users=[ProfileResponse.model_validate(u) for u in users],
        total=len(users),
    )


@router.get(
    "/users/promotions",
    response_model=PromotionHistoryResponse,
    responses=_guard_responses,
    summary="Promotion and demotion history",
)
async def promotion_history(
    limit: int = Query(default=50, ge=1, le=500),
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> PromotionHistoryResponse:
    records = await admin_service.promotion_history(db, limit=limit)
    return PromotionHistoryResponse(
        promotions=[PromotionRecordResponse.model_validate(r) for r in records]
    )


# ── Promotion / Demotion ──────────────────────────────────────────────────

@router.post(
    "/users/{uid}/promote",
    response_model=PrivilegeChangeResponse,
    responses={
        **_guard_responses,
        400: {"description": "promotion/already-admin", "model": ErrorResponse},
        404: {"description": "user/not-found", "model": ErrorResponse},
    },
    summary="Promote a user to admin",
)
async def promote_user(
    uid: str,
    body: Optional[PrivilegeChangeRequest] = None,
    caller: AuthContext = Depends(_super_admin),
    origin: RequestOrigin = Depends(get_request_origin),
    db: AsyncSession = Depends(get_db_session),
) -> PrivilegeChangeResponse:
    result = await admin_service.promote(
        db,
        subject_id=uid,
        actor_id=caller.uid,
        actor_email=caller.email,
        reason=body.reason if body else None,
        origin=origin,
    )
    if not result.success:
        raise error_for_code(result.error_code, result.error, resource_id=uid)
    return PrivilegeChangeResponse(
        success=True,
        message="User promoted to admin",
        promotion=PromotionRecordResponse.model_validate(result.promotion),
    )


@router.post(
    "/users/{uid}/demote",
    response_model=PrivilegeChangeResponse,
    responses={
        **_guard_responses,
        400: {
            "description": "promotion/not-admin or promotion/cannot-demote-super-admin",
            "model": ErrorResponse,
        },
        404: {"description": "user/not-found", "model": ErrorResponse},
    },
    summary="Demote an admin",
)
async def demote_user(
    uid: str,
    body: Optional[PrivilegeChangeRequest] = None,
    caller: AuthContext = Depends(_super_admin),
    origin: RequestOrigin = Depends(get_request_origin),
    db: AsyncSession = Depends(get_db_session),
) -> PrivilegeChangeResponse:
    result = await admin_service.demote(
        db,
        subject_id=uid,
        actor_id=caller.uid,
        actor_email=caller.email,
        reason=body.reason if body else None,
        origin=origin,
    )
    if not result.success:
        raise error_for_code(result.error_code, result.error, resource_id=uid)
    return PrivilegeChangeResponse(
        success=True,
        message="Admin demoted",
        promotion=PromotionRecordResponse.model_validate(result.promotion),
    )


# ── Emergency suspension ──────────────────────────────────────────────────

@router.post(
    "/users/{uid}/emergency-suspend",
    response_model=SuspensionChangeResponse,
    responses={
        **_guard_responses,
        400: {"description": "Invalid input or super admin target", "model": ErrorResponse},
        404: {"description": "user/not-found", "model": ErrorResponse},
    },
    summary="Suspend a user immediately",
)
async def emergency_suspend(
    uid: str,
    body: EmergencySuspendRequest,
    caller: AuthContext = Depends(_super_admin),
    origin: RequestOrigin = Depends(get_request_origin),
    db: AsyncSession = Depends(get_db_session),
) -> SuspensionChangeResponse:
    result = await recovery_service.emergency_suspend(
        db,
        user_id=uid,
        reason=body.reason,
        severity=body.severity,
        actor_id=caller.uid,
        actor_email=caller.email,
        duration_days=body.duration_days,
        origin=origin,
    )
    if not result.success:
        raise error_for_code(result.error_code, result.error, resource_id=uid)
    return SuspensionChangeResponse(
        success=True,
        message="User suspended",
        suspension=SuspensionResponse.model_validate(result.suspension),
    )


@router.delete(
    "/users/{uid}/emergency-suspend",
    response_model=SuspensionChangeResponse,
    responses={
        **_guard_responses,
        400: {"description": "suspension/not-suspended", "model": ErrorResponse},
        404: {"description": "user/not-found", "model": ErrorResponse},
    },
    summary="Lift a suspension",
)
async def lift_suspension(
    uid: str,
    body: Optional[LiftSuspensionRequest] = None,
    caller: AuthContext = Depends(_super_admin),
    origin: RequestOrigin = Depends(get_request_origin),
    db: AsyncSession = Depends(get_db_session),
) -> SuspensionChangeResponse:
    result = await recovery_service.lift_suspension(
        db,
        user_id=uid,
        reason=body.reason if body else "",
        actor_id=caller.uid,
        actor_email=caller.email,
        origin=origin,
    )
    if not result.success:
        raise error_for_code(result.error_code, result.error, resource_id=uid)
    suspension = result.suspension
    return SuspensionChangeResponse(
        success=True,
        message="Suspension lifted",
        suspension=SuspensionResponse.model_validate(suspension) if suspension else None,
    )


@router.get(
    "/users/{uid}/suspensions",
    response_model=SuspensionListResponse,
    responses=_guard_responses,
    summary="Suspension history of one user",
)
async def user_suspensions(
    uid: str,
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> SuspensionListResponse:
    records = await recovery_service.user_suspensions(db, uid)
    return SuspensionListResponse(
        suspensions=[SuspensionResponse.model_validate(r) for r in records],
        total=len(records),
    )


# ── Audit log ─────────────────────────────────────────────────────────────

@router.get(
    "/audit-log",
    response_model=AuditLogListResponse,
    responses=_guard_responses,
    summary="Query the super-admin audit log",
)
async def query_audit_log(
    actor_id: str | None = Query(default=None),
    action: str | None = Query(default=None, description="e.g. admin.promote"),
    resource: str | None = Query(default=None),
    severity: str | None = Query(default=None, pattern="^(info|warning|critical)$"),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> AuditLogListResponse:
    result = await audit_service.query(
        db,
        actor_id=actor_id,
        action=action,
        resource=resource,
        severity=severity,
        limit=limit,
        offset=offset,
    )
    return AuditLogListResponse(
        entries=[AuditLogEntryResponse.model_validate(e) for e in result.entries],
        total=result.total,
        limit=limit,
        offset=offset,
    )
