"""
CampusGuard — Privilege Service (Promotion / Demotion)
========================================================

What:  Moves principals in and out of the admin tier with an append-only
       PromotionRecord and an audit entry for every change.
Who:   Called by the /api/v1/super-admin/users route handlers; the route
       guard has already required super_admin.

Outcomes:
    Expected failures come back as a PrivilegeResult with an ErrorCode and
    never raise; routes map the code to an HTTP status. Only infrastructure
    failures propagate as exceptions.

    promote:  user/not-found → promotion/already-admin
    demote:   user/not-found → promotion/cannot-demote-super-admin
                             → promotion/not-admin

Atomicity:
    The subject's profile is read FOR UPDATE; the role change, the
    PromotionRecord and the AuditLogEntry are flushed into the same session
    and commit together.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.database import utcnow
from campusguard.exceptions import ErrorCode
from campusguard.models.profile import Profile
from campusguard.models.promotion import PromotionRecord
from campusguard.services.audit_service import audit_service
from campusguard.services.profile_store import profile_store
from campusguard.services.rate_limiter import RequestOrigin
from campusguard.services.roles import FALLBACK_ROLE, Role, is_admin, is_super_admin

logger = logging.getLogger(__name__)

ADMIN_ROLES = [Role.ADMIN.value, Role.SUPER_ADMIN.value]


@dataclass
class PrivilegeResult:
    success: bool
    error_code: Optional[ErrorCode] = None
    error: Optional[str] = None
    promotion: Optional[PromotionRecord] = None

    @classmethod
    def failure(cls, code: ErrorCode, message: str) -> "PrivilegeResult":
        return cls(success=False, error_code=code, error=message)


class AdminService:
    """Promotion, demotion and the admin directory views."""

    async def promote(
        self,
        db: AsyncSession,
        subject_id: str,
        actor_id: str,
        actor_email: str,
        reason: Optional[str] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> PrivilegeResult:
        """
        Add `admin` to a principal's roles.

        Args:
            db: Async database session
            subject_id: Identity id of the principal to promote
            actor_id: Identity id of the acting super admin
            actor_email: Email of the acting super admin
            reason: Optional free-text justification
            origin: Client address and User-Agent for the audit entry

        Returns:
            PrivilegeResult; on success `promotion` holds the new record
        """
        profile = await profile_store.get(db, subject_id, for_update=True)
        if profile is None:
            return PrivilegeResult.failure(ErrorCode.USER_NOT_FOUND, "User not found")
        if is_admin(profile.roles):
            return PrivilegeResult.failure(ErrorCode.ALREADY_ADMIN, "User is already an admin")

        previous = list(profile.roles)
        profile.roles = [*previous, Role.ADMIN.value]
        profile.updated_at = utcnow()

        record = await self._record(
            db, profile, "promote", previous, actor_id, actor_email, reason, origin
        )
        logger.info("Promoted %s to admin (by %s)", subject_id, actor_id)
        return PrivilegeResult(success=True, promotion=record)

    async def demote(
        self,
        db: AsyncSession,
        subject_id: str,
        actor_id: str,
        actor_email: str,
        reason: Optional[str] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> PrivilegeResult:
        """
        Remove `admin` from a principal's roles.

        super_admin holders are refused before the admin check, so they get
        cannot-demote-super-admin rather than not-admin. If removing `admin`
        would leave no roles, the principal falls back to `parent`.
        """
        profile = await profile_store.get(db, subject_id, for_update=True)
        if profile is None:
            return PrivilegeResult.failure(ErrorCode.USER_NOT_FOUND, "User not found")
        if is_super_admin(profile.roles):
            return PrivilegeResult.failure(
                ErrorCode.CANNOT_DEMOTE_SUPER_ADMIN,
                "Cannot demote a super admin",
            )
        if Role.ADMIN.value not in profile.roles:
            return PrivilegeResult.failure(ErrorCode.NOT_ADMIN, "User is not an admin")

        previous = list(profile.roles)
        remaining = [role for role in previous if role != Role.ADMIN.value]
        profile.roles = remaining or [FALLBACK_ROLE]
        profile.updated_at = utcnow()

        record = await self._record(
            db, profile, "demote", previous, actor_id, actor_email, reason, origin
        )
        logger.info("Demoted %s from admin (by %s)", subject_id, actor_id)
        return PrivilegeResult(success=True, promotion=record)

    async def list_admins(self, db: AsyncSession) -> List[Profile]:
        return await profile_store.list_with_role(db, ADMIN_ROLES)

    async def list_promotable_users(self, db: AsyncSession) -> List[Profile]:
        """Active principals holding neither admin nor super_admin."""
        return await profile_store.list_active_without_role(db, ADMIN_ROLES)

    async def promotion_history(self, db: AsyncSession, limit: int = 50) -> List[PromotionRecord]:
        result = await db.execute(
            select(PromotionRecord).order_by(PromotionRecord.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def _record(
        self,
        db: AsyncSession,
        profile: Profile,
        action: str,
        previous_roles: List[str],
        actor_id: str,
        actor_email: str,
        reason: Optional[str],
        origin: Optional[RequestOrigin],
    ) -> PromotionRecord:
        record = PromotionRecord(
            user_id=profile.uid,
            user_email=profile.email,
            action=action,
            previous_roles=previous_roles,
            new_roles=list(profile.roles),
            performed_by=actor_id,
            performed_by_email=actor_email or "",
            reason=reason,
        )
        db.add(record)
        await db.flush()

        await audit_service.record(
            db,
            actor_id=actor_id,
            actor_email=actor_email,
            action=f"admin.{action}",
            resource="user",
            resource_id=profile.uid,
            details={
                "user_email": profile.email,
                "previous_roles": previous_roles,
                "new_roles": list(profile.roles),
                "reason": reason,
            },
            severity="warning",
            origin=origin,
        )
        return record


# Singleton instance
admin_service = AdminService()
