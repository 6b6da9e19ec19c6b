"""
CampusGuard — Super-Admin Audit Log
=====================================

What:  Appends and queries AuditLogEntry rows.
How:   `record` adds to the caller's session and flushes; the entry commits
       or rolls back together with the action it describes.
Who:   AdminService, RecoveryService and the audit-log route.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.models.audit_log import AuditLogEntry
from campusguard.services.rate_limiter import RequestOrigin

logger = logging.getLogger(__name__)

SEVERITIES = ("info", "warning", "critical")


@dataclass
class AuditQueryResult:
    entries: List[AuditLogEntry]
    total: int


class AuditService:

    async def record(
        self,
        db: AsyncSession,
        actor_id: str,
        actor_email: str,
        action: str,
        resource: str,
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        severity: str = "info",
        actor_role: str = "super_admin",
        origin: Optional[RequestOrigin] = None,
    ) -> AuditLogEntry:
        """
        Append one audit entry to the current transaction.

        `origin` is the acting request's client address and User-Agent;
        entries written outside a request leave both empty.

        Raises:
            ValueError: Unknown severity
        """
        if severity not in SEVERITIES:
            raise ValueError(f"Unknown audit severity '{severity}'")

        entry = AuditLogEntry(
            actor_id=actor_id,
            actor_email=actor_email or "",
            actor_role=actor_role,
            action=action,
            resource=resource,
            resource_id=resource_id,
            details=details or {},
            severity=severity,
            ip_address=origin.ip_address if origin else None,
            user_agent=origin.user_agent if origin else None,
        )
        db.add(entry)
        await db.flush()

        log_level = logging.WARNING if severity == "critical" else logging.INFO
        logger.log(
            log_level,
            "Audit: %s on %s/%s by %s (%s)",
            action,
            resource,
            resource_id or "-",
            actor_id,
            severity,
        )
        return entry

    async def query(
        self,
        db: AsyncSession,
        actor_id: Optional[str] = None,
        action: Optional[str] = None,
        resource: Optional[str] = None,
        severity: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> AuditQueryResult:
        """Filtered, newest-first page of audit entries plus the filtered total."""
        conditions = []
        if actor_id:
            conditions.append(AuditLogEntry.actor_id == actor_id)
        if action:
            conditions.append(AuditLogEntry.action == action)
        if resource:
            conditions.append(AuditLogEntry.resource == resource)
        if severity:
            conditions.append(AuditLogEntry.severity == severity)

        total = (
            await db.execute(select(func.count(AuditLogEntry.id)).where(*conditions))
        ).scalar_one()

        result = await db.execute(
            select(AuditLogEntry)
            .where(*conditions)
            .order_by(AuditLogEntry.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return AuditQueryResult(entries=list(result.scalars().all()), total=total)


# Singleton instance
audit_service = AuditService()
