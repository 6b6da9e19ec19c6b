"""
CampusGuard — Security Event Schemas
======================================
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class SecurityEventResponse(BaseModel):
    id: str
    type: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    ip_address: str
    user_agent: str
    details: Dict[str, Any]
    created_at: datetime
    resolved: bool
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolution: Optional[str] = None

    model_config = {"from_attributes": True}


class SecurityEventListResponse(BaseModel):
    events: List[SecurityEventResponse]
    total: int
    limit: int
    offset: int


class SecurityStatsResponse(BaseModel):
    """Counts over the last 24 hours, plus every unresolved event."""
    failed_logins_24h: int
    rate_limit_exceeded_24h: int
    unauthorized_access_24h: int
    unresolved_events: int


class SecurityResolveRequest(BaseModel):
    resolution: str = Field(default="", description="How the event was handled")


class SecurityResolveResponse(BaseModel):
    success: bool
    message: str
    event: SecurityEventResponse
