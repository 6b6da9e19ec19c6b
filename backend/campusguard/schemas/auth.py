"""
CampusGuard — Profile Schemas
===============================

What:  Public representation of a principal's profile.
Who:   GET /api/v1/me, invite acceptance and the super-admin user listings.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ProfileResponse(BaseModel):
    uid: str = Field(description="Identity provider subject id")
    email: str
    display_name: str
    roles: List[str] = Field(description="Role set held by the principal")
    status: str = Field(description="active, suspended or pending")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class MeResponse(BaseModel):
    """The calling principal, as seen by the auth guard."""
    uid: str
    email: Optional[str] = None
    email_verified: bool
    profile: Optional[ProfileResponse] = None
    has_write_access: bool = Field(description="False for read-only admins")
