"""
CampusGuard — Shared Response Schemas
=======================================

What:  Error and health response models used across all routers.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error body returned by every global exception handler.

    Example:
        {
            "error": "invite/email-mismatch",
            "message": "Invite email does not match your account",
            "details": {},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code, e.g. auth/forbidden")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    identity_verifier: str = Field(description="Configured verifier: static or jwks")
    rate_limit_buckets: int = Field(description="Live rate-limit buckets in this process")
    uptime_seconds: float = Field(description="Seconds since service started")


class MessageResponse(BaseModel):
    success: bool = True
    message: str
