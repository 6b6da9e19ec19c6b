"""
CampusGuard — Recovery Service Tests
======================================

What we test:
    ✅ Soft delete archives a verbatim snapshot, then removes the document
    ✅ Restore writes the snapshot back, once, with an audit entry
    ✅ Unsupported snapshot versions are refused without side effects
    ✅ Emergency suspension and lifting, with their records and audit trail
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from campusguard.exceptions import ErrorCode, NotFoundError, ValidationError
from campusguard.models.audit_log import AuditLogEntry
from campusguard.models.deleted_data import DeletedDataEntry
from campusguard.models.profile import Profile
from campusguard.services.document_store import DocumentStore
from campusguard.services.recovery_service import RecoveryService

SNAPSHOT = {"name": "Ada", "grade": 7, "guardians": ["p1", "p2"], "notes": None}


async def _audit_actions(db):
    rows = (await db.execute(select(AuditLogEntry))).scalars().all()
    return [row.action for row in rows]


class TestSoftDeleteAndRestore:

    def setup_method(self):
        self.documents = DocumentStore()
        self.service = RecoveryService()

    @pytest.mark.asyncio
    async def test_soft_delete_archives_snapshot(self, db_session):
        await self.documents.put(db_session, "students", "s-1", SNAPSHOT)
        entry = await self.documents.soft_delete(
            db_session, "students", "s-1", "admin-1", "admin@school.test"
        )

        assert entry.collection == "students"
        assert entry.document_id == "s-1"
        assert entry.data == SNAPSHOT
        assert entry.snapshot_version == 1
        assert entry.restored is False
        assert entry.expires_at - entry.deleted_at == timedelta(days=90)
        assert await self.documents.get(db_session, "students", "s-1") is None

    @pytest.mark.asyncio
    async def test_soft_delete_missing_document(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await self.documents.soft_delete(db_session, "students", "nope", "admin-1", "")
        assert exc_info.value.code == ErrorCode.DOCUMENT_NOT_FOUND

    @pytest.mark.asyncio
    async def test_restore_writes_snapshot_back(self, db_session):
        await self.documents.put(db_session, "students", "s-1", SNAPSHOT)
        entry = await self.documents.soft_delete(db_session, "students", "s-1", "admin-1", "")
        await db_session.commit()

        result = await self.service.restore(db_session, entry.id, "root", "root@school.test")

        assert result.success
        assert result.entry.restored is True
        assert result.entry.restored_by == "root"
        assert result.entry.restored_at is not None
        restored = await self.documents.get(db_session, "students", "s-1")
        assert restored.data == SNAPSHOT
        assert await _audit_actions(db_session) == ["data.restore"]

    @pytest.mark.asyncio
    async def test_restore_overwrites_current_document(self, db_session):
        await self.documents.put(db_session, "students", "s-1", SNAPSHOT)
        entry = await self.documents.soft_delete(db_session, "students", "s-1", "admin-1", "")
        await self.documents.put(db_session, "students", "s-1", {"name": "Replacement"})
        await db_session.commit()

        await self.service.restore(db_session, entry.id, "root", "")
        current = await self.documents.get(db_session, "students", "s-1")
        assert current.data == SNAPSHOT

    @pytest.mark.asyncio
    async def test_restore_twice(self, db_session):
        await self.documents.put(db_session, "students", "s-1", SNAPSHOT)
        entry = await self.documents.soft_delete(db_session, "students", "s-1", "admin-1", "")
        await db_session.commit()

        await self.service.restore(db_session, entry.id, "root", "")
        second = await self.service.restore(db_session, entry.id, "root", "")
        assert not second.success
        assert second.error_code == ErrorCode.ALREADY_RESTORED
        assert await _audit_actions(db_session) == ["data.restore"]

    @pytest.mark.asyncio
    async def test_restore_unknown_entry(self, db_session):
        result = await self.service.restore(db_session, "missing", "root", "")
        assert result.error_code == ErrorCode.ENTRY_NOT_FOUND

    @pytest.mark.asyncio
    async def test_restore_unsupported_version(self, db_session):
        await self.documents.put(db_session, "students", "s-1", SNAPSHOT)
        entry = await self.documents.soft_delete(db_session, "students", "s-1", "admin-1", "")
        entry.snapshot_version = 99
        await db_session.flush()

        result = await self.service.restore(db_session, entry.id, "root", "")
        assert result.error_code == ErrorCode.UNSUPPORTED_SNAPSHOT_VERSION
        assert entry.restored is False
        assert await self.documents.get(db_session, "students", "s-1") is None

    @pytest.mark.asyncio
    async def test_query_hides_restored_by_default(self, db_session):
        for doc_id in ("s-1", "s-2"):
            await self.documents.put(db_session, "students", doc_id, SNAPSHOT)
        first = await self.documents.soft_delete(db_session, "students", "s-1", "a", "")
        await self.documents.soft_delete(db_session, "students", "s-2", "a", "")
        await self.documents.put(db_session, "classes", "c-1", {"title": "Math"})
        await self.documents.soft_delete(db_session, "classes", "c-1", "a", "")
        await db_session.commit()
        await self.service.restore(db_session, first.id, "root", "")

        visible = await self.service.query(db_session)
        students = await self.service.query(db_session, collection="students")
        everything = await self.service.query(db_session, include_restored=True)

        assert visible.total == 2
        assert [e.document_id for e in students.entries] == ["s-2"]
        assert everything.total == 3


class TestEmergencySuspension:

    def setup_method(self):
        self.service = RecoveryService()

    async def _teacher(self, db, uid="t1", roles=None):
        profile = Profile(
            uid=uid, email=f"{uid}@school.test", display_name=uid, roles=roles or ["teacher"]
        )
        db.add(profile)
        await db.flush()
        return profile

    @pytest.mark.asyncio
    async def test_suspend_temporary(self, db_session):
        profile = await self._teacher(db_session)
        result = await self.service.emergency_suspend(
            db_session, "t1", "Policy breach", "temporary", "root", "root@school.test",
            duration_days=7,
        )

        assert result.success
        assert profile.status == "suspended"
        assert profile.suspension_reason == "Policy breach"
        record = result.suspension
        assert record.severity == "temporary"
        assert record.expires_at - record.suspended_at == timedelta(days=7)
        assert record.lifted is False

        audit = (await db_session.execute(select(AuditLogEntry))).scalars().one()
        assert audit.action == "user.emergency_suspend"
        assert audit.severity == "critical"

    @pytest.mark.asyncio
    async def test_permanent_has_no_expiry(self, db_session):
        await self._teacher(db_session)
        result = await self.service.emergency_suspend(
            db_session, "t1", "Fraud", "permanent", "root", ""
        )
        assert result.suspension.expires_at is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "reason,severity,duration",
        [
            ("", "temporary", 3),
            ("   ", "permanent", None),
            ("Reason", "forever", None),
            ("Reason", "temporary", None),
            ("Reason", "temporary", 0),
        ],
    )
    async def test_invalid_input(self, db_session, reason, severity, duration):
        await self._teacher(db_session)
        with pytest.raises(ValidationError):
            await self.service.emergency_suspend(
                db_session, "t1", reason, severity, "root", "", duration_days=duration
            )

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session):
        result = await self.service.emergency_suspend(
            db_session, "ghost", "Reason", "permanent", "root", ""
        )
        assert result.error_code == ErrorCode.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_super_admin_cannot_be_suspended(self, db_session):
        profile = await self._teacher(db_session, uid="root2", roles=["super_admin"])
        result = await self.service.emergency_suspend(
            db_session, "root2", "Reason", "permanent", "root", ""
        )
        assert result.error_code == ErrorCode.CANNOT_SUSPEND_SUPER_ADMIN
        assert profile.status == "active"

    @pytest.mark.asyncio
    async def test_lift_suspension(self, db_session):
        profile = await self._teacher(db_session)
        await self.service.emergency_suspend(db_session, "t1", "Reason", "permanent", "root", "")

        result = await self.service.lift_suspension(
            db_session, "t1", "Appeal granted", "root", "root@school.test"
        )

        assert result.success
        assert profile.status == "active"
        assert profile.suspended_at is None
        assert result.suspension.lifted is True
        assert result.suspension.lift_reason == "Appeal granted"
        assert await self.service.list_active_suspensions(db_session) == []
        assert sorted(await _audit_actions(db_session)) == [
            "user.emergency_suspend",
            "user.lift_suspension",
        ]

    @pytest.mark.asyncio
    async def test_lift_when_not_suspended(self, db_session):
        await self._teacher(db_session)
        result = await self.service.lift_suspension(db_session, "t1", "", "root", "")
        assert result.error_code == ErrorCode.NOT_SUSPENDED

    @pytest.mark.asyncio
    async def test_user_history(self, db_session):
        await self._teacher(db_session)
        await self.service.emergency_suspend(db_session, "t1", "First", "warning", "root", "")
        await self.service.lift_suspension(db_session, "t1", "ok", "root", "")
        await self.service.emergency_suspend(db_session, "t1", "Second", "permanent", "root", "")

        history = await self.service.user_suspensions(db_session, "t1")
        assert len(history) == 2
        active = await self.service.list_active_suspensions(db_session)
        assert [r.reason for r in active] == ["Second"]
