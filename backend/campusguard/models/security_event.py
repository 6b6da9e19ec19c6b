"""
CampusGuard — Security Event Model
====================================

What:  Rejected requests worth a super admin's attention: failed logins,
       rate-limit rejections and authorization denials.
Who:   Written by SecurityService.report from the guard dependency and the
       rate limiters; read and resolved through /api/v1/super-admin/security.

Events are never deleted. Resolving one records who closed it and why.
"""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow


class SecurityEvent(Base):
    __tablename__ = "security_events"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # login_failed | rate_limit_exceeded | unauthorized_access | suspicious_activity
    type: Mapped[str] = mapped_column(String(32), nullable=False)

    # ── Who / where ───────────────────────────────────────────────────────
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    ip_address: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(String(512), nullable=False, default="")

    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    # ── Resolution ────────────────────────────────────────────────────────
    resolved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resolution: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("idx_security_events_created_at", created_at.desc()),
        Index("idx_security_events_type_created", "type", "created_at"),
        Index("idx_security_events_resolved", "resolved"),
    )

    def __repr__(self) -> str:
        return f"<SecurityEvent(type='{self.type}', ip='{self.ip_address}', resolved={self.resolved})>"
