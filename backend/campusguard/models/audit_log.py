"""
CampusGuard — Audit Log Model
===============================

What:  Append-only record of every super-admin mutation.
Who:   Written by AuditService inside the same transaction as the action it
       describes; read by GET /api/v1/super-admin/audit-log.

Action names are dotted, resource first: admin.promote, admin.demote,
data.restore, user.emergency_suspend, user.lift_suspension.
"""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow


class AuditLogEntry(Base):
    """A single audited action."""

    __tablename__ = "audit_log"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # ── Actor ─────────────────────────────────────────────────────────────
    actor_id: Mapped[str] = mapped_column(String(128), nullable=False)
    actor_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False, default="super_admin")

    # ── Action ────────────────────────────────────────────────────────────
    action: Mapped[str] = mapped_column(String(64), nullable=False)
    resource: Mapped[str] = mapped_column(String(64), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(256), nullable=True)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # info | warning | critical
    severity: Mapped[str] = mapped_column(String(16), nullable=False, default="info")

    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_audit_log_created_at", created_at.desc()),
        Index("idx_audit_log_actor_id", "actor_id"),
        Index("idx_audit_log_action", "action"),
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry(action='{self.action}', actor_id='{self.actor_id}')>"
