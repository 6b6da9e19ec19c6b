"""
CampusGuard — Governed Document Routes
========================================

What:  Admin read and delete access to the generic document collections.
How:   DELETE never removes a document outright; it archives a snapshot
       into the recovery store first (see DocumentStore.soft_delete).
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.database import get_db_session
from campusguard.exceptions import ErrorCode, NotFoundError
from campusguard.routes.dependencies import require_auth
from campusguard.schemas.common import ErrorResponse
from campusguard.schemas.recovery import SoftDeleteResponse
from campusguard.services.auth_guard import AuthContext
from campusguard.services.document_store import document_store
from campusguard.services.roles import Role

router = APIRouter(prefix="/api/v1/admin/documents", tags=["Documents"])


@router.get(
    "/{collection}/{doc_id}",
    responses={
        403: {"description": "Not an admin", "model": ErrorResponse},
        404: {"description": "document/not-found", "model": ErrorResponse},
    },
    summary="Read a document",
)
async def get_document(
    collection: str,
    doc_id: str,
    caller: AuthContext = Depends(
        require_auth(roles=[Role.ADMIN.value, Role.ADMIN_READONLY.value])
    ),
    db: AsyncSession = Depends(get_db_session),
) -> Dict[str, Any]:
    document = await document_store.get(db, collection, doc_id)
    if document is None:
        raise NotFoundError(
            resource="document",
            resource_id=f"{collection}/{doc_id}",
            code=ErrorCode.DOCUMENT_NOT_FOUND,
        )
    return {"collection": collection, "id": doc_id, "data": document.data}


@router.delete(
    "/{collection}/{doc_id}",
    response_model=SoftDeleteResponse,
    responses={
        403: {"description": "Not an admin with write access", "model": ErrorResponse},
        404: {"description": "document/not-found", "model": ErrorResponse},
    },
    summary="Soft-delete a document",
    description="Archives a snapshot for super-admin recovery, then deletes the document.",
)
async def delete_document(
    collection: str,
    doc_id: str,
    caller: AuthContext = Depends(require_auth(roles=[Role.ADMIN.value], write_access=True)),
    db: AsyncSession = Depends(get_db_session),
) -> SoftDeleteResponse:
    entry = await document_store.soft_delete(
        db,
        collection=collection,
        doc_id=doc_id,
        actor_id=caller.uid,
        actor_email=caller.email,
    )
    return SoftDeleteResponse(
        success=True,
        message="Document deleted; a snapshot was archived for recovery",
        deleted_data_id=entry.id,
    )
