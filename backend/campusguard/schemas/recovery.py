"""
CampusGuard — Recovery, Suspension and Audit Schemas
======================================================
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DeletedDataEntryResponse(BaseModel):
    id: str
    collection: str
    document_id: str
    data: Dict[str, Any] = Field(description="Verbatim snapshot taken before deletion")
    snapshot_version: int
    deleted_by: str
    deleted_by_email: str
    deleted_at: datetime
    expires_at: datetime
    restored: bool
    restored_by: Optional[str] = None
    restored_by_email: Optional[str] = None
    restored_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class DeletedDataListResponse(BaseModel):
    entries: List[DeletedDataEntryResponse]
    total: int
    limit: int
    offset: int


class RestoreResponse(BaseModel):
    success: bool
    message: str
    entry: DeletedDataEntryResponse


class SuspensionResponse(BaseModel):
    id: str
    user_id: str
    user_email: str
    reason: str
    severity: str
    suspended_by: str
    suspended_by_email: str
    suspended_at: datetime
    expires_at: Optional[datetime] = None
    lifted: bool
    lifted_by: Optional[str] = None
    lift_reason: Optional[str] = None
    lifted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SuspensionListResponse(BaseModel):
    suspensions: List[SuspensionResponse]
    total: int


class SuspensionChangeResponse(BaseModel):
    success: bool
    message: str
    suspension: Optional[SuspensionResponse] = None


class AuditLogEntryResponse(BaseModel):
    id: str
    actor_id: str
    actor_email: str
    actor_role: str
    action: str
    resource: str
    resource_id: Optional[str] = None
    details: Dict[str, Any]
    severity: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogListResponse(BaseModel):
    entries: List[AuditLogEntryResponse]
    total: int
    limit: int
    offset: int


class SoftDeleteResponse(BaseModel):
    success: bool
    message: str
    deleted_data_id: str
