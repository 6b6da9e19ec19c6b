"""
CampusGuard — Super-Admin User Management Schemas
===================================================
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from campusguard.schemas.auth import ProfileResponse


class PrivilegeChangeRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=1000)


class PromotionRecordResponse(BaseModel):
    id: str
    user_id: str
    user_email: str
    action: str = Field(description="promote or demote")
    previous_roles: List[str]
    new_roles: List[str]
    performed_by: str
    performed_by_email: str
    reason: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PrivilegeChangeResponse(BaseModel):
    success: bool
    message: str
    promotion: PromotionRecordResponse


class UserListResponse(BaseModel):
    users: List[ProfileResponse]
    total: int


class PromotionHistoryResponse(BaseModel):
    promotions: List[PromotionRecordResponse]


class EmergencySuspendRequest(BaseModel):
    reason: str = Field(default="", max_length=2000)
    severity: str = Field(default="temporary", description="warning, temporary or permanent")
    duration_days: Optional[int] = Field(default=None, description="Required for temporary")


class LiftSuspensionRequest(BaseModel):
    reason: str = Field(default="", max_length=2000)
