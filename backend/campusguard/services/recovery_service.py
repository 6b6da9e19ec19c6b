"""
CampusGuard — Recovery Service (Soft-Delete Store & Emergency Suspension)
===========================================================================

What:  Archives documents before destructive operations, lists and restores
       the archived snapshots, and suspends or reinstates accounts.
Who:   DocumentStore.soft_delete (archive) and the super-admin recovery and
       user routes (everything else).

Restore Flow:
    ┌──────────┐   ┌──────────────┐   ┌──────────────┐   ┌────────────┐
    │  Load    │──▶│  Claim       │──▶│  Write back  │──▶│  Audit     │
    │  entry   │   │  (restored = │   │  snapshot    │   │  entry     │
    └──────────┘   │  false only) │   │  (overwrite) │   └────────────┘
                   └──────────────┘   └──────────────┘

    All three writes share one transaction. The claim is a conditional
    UPDATE; a concurrent restorer that loses the claim writes nothing and
    reports already-restored. A failing write-back raises, and the request
    rollback undoes the claim, so an entry is restored at most once and never
    marked restored without its data in place.

    The snapshot overwrites whatever currently lives at the original id.
    Administrators inspect snapshots via query() first.

Expected failures are returned as result objects carrying an ErrorCode.
Malformed input (empty reason, unknown severity) raises ValidationError.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.config import settings
from campusguard.database import utcnow
from campusguard.exceptions import ErrorCode, ValidationError
from campusguard.models.deleted_data import CURRENT_SNAPSHOT_VERSION, DeletedDataEntry
from campusguard.models.suspension import SuspensionRecord
from campusguard.services.audit_service import audit_service
from campusguard.services.document_store import document_store
from campusguard.services.profile_store import profile_store
from campusguard.services.rate_limiter import RequestOrigin
from campusguard.services.roles import AccountStatus, is_super_admin

logger = logging.getLogger(__name__)

SUPPORTED_SNAPSHOT_VERSIONS = frozenset({CURRENT_SNAPSHOT_VERSION})
SUSPENSION_SEVERITIES = ("warning", "temporary", "permanent")


@dataclass
class RecoveryResult:
    success: bool
    error_code: Optional[ErrorCode] = None
    error: Optional[str] = None
    entry: Optional[DeletedDataEntry] = None


@dataclass
class DeletedDataQueryResult:
    entries: List[DeletedDataEntry] = field(default_factory=list)
    total: int = 0


@dataclass
class SuspensionResult:
    success: bool
    error_code: Optional[ErrorCode] = None
    error: Optional[str] = None
    suspension: Optional[SuspensionRecord] = None


class RecoveryService:

    # ── Soft-delete archive ───────────────────────────────────────────────

    async def archive_before_delete(
        self,
        db: AsyncSession,
        collection: str,
        document_id: str,
        data: Dict[str, Any],
        actor_id: str,
        actor_email: str,
    ) -> DeletedDataEntry:
        """
        Store a verbatim snapshot of a document about to be deleted.

        The entry is kept for `recovery_retention_days` (default 90).
        """
        now = utcnow()
        entry = DeletedDataEntry(
            collection=collection,
            document_id=document_id,
            data=dict(data),
            snapshot_version=CURRENT_SNAPSHOT_VERSION,
            deleted_by=actor_id,
            deleted_by_email=actor_email or "",
            deleted_at=now,
            expires_at=now + timedelta(days=settings.recovery_retention_days),
            restored=False,
        )
        db.add(entry)
        await db.flush()
        logger.info("Archived %s/%s before delete (entry %s)", collection, document_id, entry.id)
        return entry

    async def query(
        self,
        db: AsyncSession,
        collection: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
        include_restored: bool = False,
    ) -> DeletedDataQueryResult:
        """Newest-first page of archived entries; restored ones are hidden by default."""
        conditions = []
        if collection:
            conditions.append(DeletedDataEntry.collection == collection)
        if not include_restored:
            conditions.append(DeletedDataEntry.restored.is_(False))

        total = (
            await db.execute(select(func.count(DeletedDataEntry.id)).where(*conditions))
        ).scalar_one()
        result = await db.execute(
            select(DeletedDataEntry)
            .where(*conditions)
            .order_by(DeletedDataEntry.deleted_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return DeletedDataQueryResult(entries=list(result.scalars().all()), total=total)

    async def restore(
        self,
        db: AsyncSession,
        entry_id: str,
        actor_id: str,
        actor_email: str,
        origin: Optional[RequestOrigin] = None,
    ) -> RecoveryResult:
        """
        Write an archived snapshot back to its original collection and id.

        Returns:
            RecoveryResult with the updated entry, or one of
            recovery/not-found, recovery/already-restored,
            recovery/unsupported-snapshot-version
        """
        entry = await db.get(DeletedDataEntry, entry_id)
        if entry is None:
            return RecoveryResult(
                success=False,
                error_code=ErrorCode.ENTRY_NOT_FOUND,
                error="Deleted data entry not found",
            )
        if entry.restored:
            return RecoveryResult(
                success=False,
                error_code=ErrorCode.ALREADY_RESTORED,
                error="Data has already been restored",
            )
        if entry.snapshot_version not in SUPPORTED_SNAPSHOT_VERSIONS:
            logger.warning(
                "Entry %s has unsupported snapshot version %s",
                entry_id,
                entry.snapshot_version,
            )
            return RecoveryResult(
                success=False,
                error_code=ErrorCode.UNSUPPORTED_SNAPSHOT_VERSION,
                error=f"Unsupported snapshot version {entry.snapshot_version}",
            )

        now = utcnow()
        claim = await db.execute(
            update(DeletedDataEntry)
            .where(DeletedDataEntry.id == entry_id, DeletedDataEntry.restored.is_(False))
            .values(
                restored=True,
                restored_by=actor_id,
                restored_by_email=actor_email or "",
                restored_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if claim.rowcount != 1:
            logger.info("Entry %s was restored concurrently", entry_id)
            return RecoveryResult(
                success=False,
                error_code=ErrorCode.ALREADY_RESTORED,
                error="Data has already been restored",
            )

        await document_store.put(db, entry.collection, entry.document_id, entry.data)
        await db.refresh(entry)

        await audit_service.record(
            db,
            actor_id=actor_id,
            actor_email=actor_email,
            action="data.restore",
            resource=entry.collection,
            resource_id=entry.document_id,
            details={
                "deleted_data_id": entry.id,
                "deleted_by": entry.deleted_by,
                "deleted_at": entry.deleted_at.isoformat(),
            },
            severity="warning",
            origin=origin,
        )
        logger.info(
            "Restored %s/%s from entry %s (by %s)",
            entry.collection,
            entry.document_id,
            entry_id,
            actor_id,
        )
        return RecoveryResult(success=True, entry=entry)

    # ── Emergency suspension ──────────────────────────────────────────────

    async def emergency_suspend(
        self,
        db: AsyncSession,
        user_id: str,
        reason: str,
        severity: str,
        actor_id: str,
        actor_email: str,
        duration_days: Optional[int] = None,
        origin: Optional[RequestOrigin] = None,
    ) -> SuspensionResult:
        """
        Suspend an account immediately.

        Args:
            db: Async database session
            user_id: Identity id to suspend
            reason: Required explanation
            severity: warning, temporary or permanent
            actor_id: Acting super admin
            actor_email: Acting super admin's email
            duration_days: Required (>= 1) for temporary suspensions
            origin: Client address and User-Agent for the audit entry

        Returns:
            SuspensionResult; failures are user/not-found and
            suspension/cannot-suspend-super-admin

        Raises:
            ValidationError: empty reason, unknown severity, or a temporary
                             suspension without a duration
        """
        if not reason or not reason.strip():
            raise ValidationError(message="A suspension reason is required", field="reason")
        if severity not in SUSPENSION_SEVERITIES:
            raise ValidationError(
                message=f"Severity must be one of: {', '.join(SUSPENSION_SEVERITIES)}",
                field="severity",
            )
        if severity == "temporary" and (duration_days is None or duration_days < 1):
            raise ValidationError(
                message="Temporary suspensions require a duration of at least 1 day",
                field="duration_days",
            )

        profile = await profile_store.get(db, user_id, for_update=True)
        if profile is None:
            return SuspensionResult(
                success=False,
                error_code=ErrorCode.USER_NOT_FOUND,
                error="User not found",
            )
        if is_super_admin(profile.roles):
            return SuspensionResult(
                success=False,
                error_code=ErrorCode.CANNOT_SUSPEND_SUPER_ADMIN,
                error="Cannot suspend a super admin",
            )

        now = utcnow()
        previous_status = profile.status
        expires_at = now + timedelta(days=duration_days) if severity == "temporary" else None

        profile.status = AccountStatus.SUSPENDED.value
        profile.suspended_at = now
        profile.suspension_reason = reason.strip()
        profile.updated_at = now

        record = SuspensionRecord(
            user_id=profile.uid,
            user_email=profile.email,
            reason=reason.strip(),
            severity=severity,
            suspended_by=actor_id,
            suspended_by_email=actor_email or "",
            suspended_at=now,
            expires_at=expires_at,
            lifted=False,
        )
        db.add(record)
        await db.flush()

        await audit_service.record(
            db,
            actor_id=actor_id,
            actor_email=actor_email,
            action="user.emergency_suspend",
            resource="user",
            resource_id=profile.uid,
            details={
                "user_email": profile.email,
                "reason": reason.strip(),
                "severity": severity,
                "previous_status": previous_status,
                "duration_days": duration_days,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
            severity="critical",
            origin=origin,
        )
        logger.warning("Suspended %s (%s) by %s", user_id, severity, actor_id)
        return SuspensionResult(success=True, suspension=record)

    async def lift_suspension(
        self,
        db: AsyncSession,
        user_id: str,
        reason: str,
        actor_id: str,
        actor_email: str,
        origin: Optional[RequestOrigin] = None,
    ) -> SuspensionResult:
        """
        Reactivate a suspended account and close its newest open suspension.

        Returns:
            SuspensionResult; failures are user/not-found and
            suspension/not-suspended
        """
        profile = await profile_store.get(db, user_id, for_update=True)
        if profile is None:
            return SuspensionResult(
                success=False,
                error_code=ErrorCode.USER_NOT_FOUND,
                error="User not found",
            )
        if profile.status != AccountStatus.SUSPENDED.value:
            return SuspensionResult(
                success=False,
                error_code=ErrorCode.NOT_SUSPENDED,
                error="User is not suspended",
            )

        now = utcnow()
        result = await db.execute(
            select(SuspensionRecord)
            .where(SuspensionRecord.user_id == user_id, SuspensionRecord.lifted.is_(False))
            .order_by(SuspensionRecord.suspended_at.desc())
            .limit(1)
        )
        record = result.scalar_one_or_none()
        if record is not None:
            record.lifted = True
            record.lifted_by = actor_id
            record.lift_reason = reason
            record.lifted_at = now

        profile.status = AccountStatus.ACTIVE.value
        profile.suspended_at = None
        profile.suspension_reason = None
        profile.updated_at = now
        await db.flush()

        await audit_service.record(
            db,
            actor_id=actor_id,
            actor_email=actor_email,
            action="user.lift_suspension",
            resource="user",
            resource_id=profile.uid,
            details={"user_email": profile.email, "lift_reason": reason},
            severity="warning",
            origin=origin,
        )
        logger.info("Lifted suspension of %s by %s", user_id, actor_id)
        return SuspensionResult(success=True, suspension=record)

    async def list_active_suspensions(self, db: AsyncSession) -> List[SuspensionRecord]:
        result = await db.execute(
            select(SuspensionRecord)
            .where(SuspensionRecord.lifted.is_(False))
            .order_by(SuspensionRecord.suspended_at.desc())
        )
        return list(result.scalars().all())

    async def user_suspensions(self, db: AsyncSession, user_id: str) -> List[SuspensionRecord]:
        """Full suspension history of one user, newest first."""
        result = await db.execute(
            select(SuspensionRecord)
            .where(SuspensionRecord.user_id == user_id)
            .order_by(SuspensionRecord.suspended_at.desc())
        )
        return list(result.scalars().all())


# Singleton instance
recovery_service = RecoveryService()
