"""
CampusGuard — Invite Schemas
==============================

What:  Request/response models for the invitation endpoints.

The raw token appears in exactly one model, InviteCreatedResponse, returned
by issuance. Every other invite view omits it.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class InviteCreateRequest(BaseModel):
    """
    Body of POST /api/v1/invites.

    Email shape and role are validated by the service so that failures carry
    the invite/invalid-email and invite/invalid-role codes.
    """
    email: str = Field(default="", description="Target email address")
    role: str = Field(default="teacher", description="Role to grant (teacher)")
    expires_in_hours: Optional[int] = Field(
        default=None,
        description="Lifetime in hours; default 72, capped at 720",
    )


class InviteAcceptRequest(BaseModel):
    token: str = Field(default="", description="Raw invite token")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class InviteResponse(BaseModel):
    """Invite without its token."""
    id: str
    email: str
    role: str
    status: str = Field(description="pending, accepted, revoked or expired")
    created_by: str
    created_at: datetime
    expires_at: datetime
    accepted_by: Optional[str] = None
    accepted_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class InviteCreatedResponse(InviteResponse):
    token: str = Field(description="Raw invite token; shown only once")


class InviteVerifyResponse(BaseModel):
    """Public view for an anonymous invitee. Never carries the token."""
    id: str
    email: str
    role: str
    status: str = Field(description="Always pending for a usable invite")
    expires_at: datetime


class InviteListResponse(BaseModel):
    invites: List[InviteResponse]
    total: int


class InviteAcceptResponse(BaseModel):
    uid: str
    email: str
    roles: List[str]
    status: str
