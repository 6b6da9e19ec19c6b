"""
CampusGuard — Deleted Data Recovery Routes
============================================

What:  Browse soft-deleted snapshots, restore them, and list active
       suspensions. Every endpoint requires super_admin.

GET  /api/v1/super-admin/deleted-data                 archived snapshots
GET  /api/v1/super-admin/deleted-data?type=suspensions active suspensions
POST /api/v1/super-admin/deleted-data/{id}/restore    write a snapshot back
"""

from typing import Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.database import get_db_session
from campusguard.exceptions import error_for_code
from campusguard.routes.dependencies import get_request_origin, require_auth
from campusguard.schemas.common import ErrorResponse
from campusguard.schemas.recovery import (
    DeletedDataEntryResponse,
    DeletedDataListResponse,
    RestoreResponse,
    SuspensionListResponse,
    SuspensionResponse,
)
from campusguard.services.auth_guard import AuthContext
from campusguard.services.rate_limiter import RequestOrigin
from campusguard.services.recovery_service import recovery_service
from campusguard.services.roles import Role

router = APIRouter(prefix="/api/v1/super-admin/deleted-data", tags=["Recovery"])

_super_admin = require_auth(roles=[Role.SUPER_ADMIN.value], write_access=True)


@router.get(
    "",
    response_model=Union[DeletedDataListResponse, SuspensionListResponse],
    responses={
        401: {"description": "Not authenticated", "model": ErrorResponse},
        403: {"description": "Not a super admin", "model": ErrorResponse},
    },
    summary="List deleted data or active suspensions",
    description=(
        "Without `type`, returns archived snapshots newest first; restored entries are "
        "hidden unless include_restored=true. With type=suspensions, returns the "
        "active suspensions instead."
    ),
)
async def list_deleted_data(
    type: str | None = Query(default=None, pattern="^(deleted|suspensions)$"),
    collection: str | None = Query(default=None),
    include_restored: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    caller: AuthContext = Depends(_super_admin),
    db: AsyncSession = Depends(get_db_session),
) -> Union[DeletedDataListResponse, SuspensionListResponse]:
    if type == "suspensions":
        records = await recovery_service.list_active_suspensions(db)
        return SuspensionListResponse(
            suspensions=[SuspensionResponse.model_validate(r) for r in records],
            total=len(records),
        )

    result = await recovery_service.query(
        db,
        collection=collection,
        limit=limit,
        offset=offset,
        include_restored=include_restored,
    )
    return DeletedDataListResponse(
        entries=[DeletedDataEntryResponse.model_validate(e) for e in result.entries],
        total=result.total,
        limit=limit,
        offset=offset,
    )


@router.post(
    "/{entry_id}/restore",
    response_model=RestoreResponse,
    responses={
        400: {
            "description": "recovery/already-restored or recovery/unsupported-snapshot-version",
            "model": ErrorResponse,
        },
        403: {"description": "Not a super admin", "model": ErrorResponse},
        404: {"description": "recovery/not-found", "model": ErrorResponse},
    },
    summary="Restore a deleted document",
    description=(
        "Writes the snapshot back to its original collection and id, overwriting any "
        "document now stored there. Each entry can be restored once."
    ),
)
async def restore_deleted_data(
    entry_id: str,
    caller: AuthContext = Depends(_super_admin),
    origin: RequestOrigin = Depends(get_request_origin),
    db: AsyncSession = Depends(get_db_session),
) -> RestoreResponse:
    result = await recovery_service.restore(
        db,
        entry_id=entry_id,
        actor_id=caller.uid,
        actor_email=caller.email,
        origin=origin,
    )
    if not result.success:
        raise error_for_code(result.error_code, result.error, resource_id=entry_id)
    return RestoreResponse(
        success=True,
        message="Data restored",
        entry=DeletedDataEntryResponse.model_validate(result.entry),
    )
