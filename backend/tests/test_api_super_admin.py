"""
CampusGuard — Super-Admin API Tests
=====================================

What:  HTTP-level tests for promotion, emergency suspension, the audit log
       and deleted-data recovery.

What we test:
    ✅ Only super admins reach /api/v1/super-admin
    ✅ Promotion / demotion results and their error codes
    ✅ Suspension locks a user out immediately; lifting restores access
    ✅ Admin delete → super-admin restore round trip, restore only once
"""

import pytest

from campusguard.models.document import Document

ROOT = ("root-1", "root@school.test")
ADMIN = ("admin-1", "admin@school.test")
READONLY = ("ro-1", "readonly@school.test")
TEACHER = ("teacher-1", "teacher@school.test")


@pytest.fixture
def school(seed_profile):
    async def _seed():
        await seed_profile(*ROOT, roles=["super_admin"])
        await seed_profile(*ADMIN, roles=["admin"])
        await seed_profile(*READONLY, roles=["admin_readonly"])
        await seed_profile(*TEACHER, roles=["teacher"])

    return _seed


class TestAccess:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("caller", [ADMIN, READONLY, TEACHER])
    async def test_non_super_admins_forbidden(self, client, school, auth_header, caller):
        await school()
        response = await client.get("/api/v1/super-admin/users/admins", headers=auth_header(*caller))
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_admins(self, client, school, auth_header):
        await school()
        response = await client.get("/api/v1/super-admin/users/admins", headers=auth_header(*ROOT))
        assert response.status_code == 200
        uids = sorted(user["uid"] for user in response.json()["users"])
        assert uids == ["admin-1", "root-1"]

    @pytest.mark.asyncio
    async def test_list_promotable(self, client, school, auth_header):
        await school()
        response = await client.get(
            "/api/v1/super-admin/users/promotable", headers=auth_header(*ROOT)
        )
        uids = sorted(user["uid"] for user in response.json()["users"])
        assert uids == ["ro-1", "teacher-1"]


class TestPromotion:

    @pytest.mark.asyncio
    async def test_promote_and_demote(self, client, school, auth_header):
        await school()
        root = auth_header(*ROOT)

        promoted = await client.post(
            "/api/v1/super-admin/users/teacher-1/promote",
            json={"reason": "Head of science"},
            headers=root,
        )
        assert promoted.status_code == 200
        assert promoted.json()["promotion"]["new_roles"] == ["teacher", "admin"]

        demoted = await client.post("/api/v1/super-admin/users/teacher-1/demote", headers=root)
        assert demoted.status_code == 200
        assert demoted.json()["promotion"]["new_roles"] == ["teacher"]

        history = await client.get("/api/v1/super-admin/users/promotions", headers=root)
        assert [p["action"] for p in history.json()["promotions"]] == ["demote", "promote"]

        audit = await client.get(
            "/api/v1/super-admin/audit-log", params={"action": "admin.promote"}, headers=root
        )
        entries = audit.json()["entries"]
        assert len(entries) == 1
        assert entries[0]["resource_id"] == "teacher-1"
        assert entries[0]["actor_id"] == "root-1"

    @pytest.mark.asyncio
    async def test_promote_errors(self, client, school, auth_header):
        await school()
        root = auth_header(*ROOT)

        already = await client.post("/api/v1/super-admin/users/admin-1/promote", headers=root)
        assert already.status_code == 400
        assert already.json()["error"] == "promotion/already-admin"

        ghost = await client.post("/api/v1/super-admin/users/ghost/promote", headers=root)
        assert ghost.status_code == 404
        assert ghost.json()["error"] == "user/not-found"

    @pytest.mark.asyncio
    async def test_demote_errors(self, client, school, auth_header):
        await school()
        root = auth_header(*ROOT)

        super_admin = await client.post("/api/v1/super-admin/users/root-1/demote", headers=root)
        assert super_admin.json()["error"] == "promotion/cannot-demote-super-admin"

        teacher = await client.post("/api/v1/super-admin/users/teacher-1/demote", headers=root)
        assert teacher.status_code == 400
        assert teacher.json()["error"] == "promotion/not-admin"


class TestEmergencySuspension:

    @pytest.mark.asyncio
    async def test_suspend_and_lift(self, client, school, auth_header):
        await school()
        root = auth_header(*ROOT)
        teacher = auth_header(*TEACHER)

        suspended = await client.post(
            "/api/v1/super-admin/users/teacher-1/emergency-suspend",
            json={"reason": "Compromised account", "severity": "temporary", "duration_days": 3},
            headers=root,
        )
        assert suspended.status_code == 200
        assert suspended.json()["suspension"]["severity"] == "temporary"

        locked_out = await client.get("/api/v1/me", headers=teacher)
        assert locked_out.status_code == 403

        active = await client.get(
            "/api/v1/super-admin/deleted-data", params={"type": "suspensions"}, headers=root
        )
        assert [s["user_id"] for s in active.json()["suspensions"]] == ["teacher-1"]

        lifted = await client.request(
            "DELETE",
            "/api/v1/super-admin/users/teacher-1/emergency-suspend",
            json={"reason": "Password reset"},
            headers=root,
        )
        assert lifted.status_code == 200
        assert lifted.json()["suspension"]["lifted"] is True

        back = await client.get("/api/v1/me", headers=teacher)
        assert back.status_code == 200

        history = await client.get(
            "/api/v1/super-admin/users/teacher-1/suspensions", headers=root
        )
        assert history.json()["total"] == 1

        critical = await client.get(
            "/api/v1/super-admin/audit-log", params={"severity": "critical"}, headers=root
        )
        assert [e["action"] for e in critical.json()["entries"]] == ["user.emergency_suspend"]

    @pytest.mark.asyncio
    async def test_temporary_requires_duration(self, client, school, auth_header):
        await school()
        response = await client.post(
            "/api/v1/super-admin/users/teacher-1/emergency-suspend",
            json={"reason": "Spam", "severity": "temporary"},
            headers=auth_header(*ROOT),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "validation/error"

    @pytest.mark.asyncio
    async def test_cannot_suspend_super_admin(self, client, school, auth_header):
        await school()
        response = await client.post(
            "/api/v1/super-admin/users/root-1/emergency-suspend",
            json={"reason": "Test", "severity": "permanent"},
            headers=auth_header(*ROOT),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "suspension/cannot-suspend-super-admin"

    @pytest.mark.asyncio
    async def test_lift_when_not_suspended(self, client, school, auth_header):
        await school()
        response = await client.delete(
            "/api/v1/super-admin/users/teacher-1/emergency-suspend",
            headers=auth_header(*ROOT),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "suspension/not-suspended"


class TestRecovery:

    async def _seed_document(self, session_factory):
        async with session_factory() as session:
            session.add(
                Document(collection="students", doc_id="s-1", data={"name": "Ada", "grade": 7})
            )
            await session.commit()

    @pytest.mark.asyncio
    async def test_delete_and_restore(self, client, school, auth_header, session_factory):
        await school()
        await self._seed_document(session_factory)
        admin = auth_header(*ADMIN)
        root = auth_header(*ROOT)

        deleted = await client.delete("/api/v1/admin/documents/students/s-1", headers=admin)
        assert deleted.status_code == 200
        entry_id = deleted.json()["deleted_data_id"]

        missing = await client.get("/api/v1/admin/documents/students/s-1", headers=admin)
        assert missing.status_code == 404

        listed = await client.get("/api/v1/super-admin/deleted-data", headers=root)
        entries = listed.json()["entries"]
        assert [e["id"] for e in entries] == [entry_id]
        assert entries[0]["data"] == {"name": "Ada", "grade": 7}

        restored = await client.post(
            f"/api/v1/super-admin/deleted-data/{entry_id}/restore", headers=root
        )
        assert restored.status_code == 200
        assert restored.json()["entry"]["restored"] is True

        back = await client.get("/api/v1/admin/documents/students/s-1", headers=admin)
        assert back.status_code == 200
        assert back.json()["data"] == {"name": "Ada", "grade": 7}

        again = await client.post(
            f"/api/v1/super-admin/deleted-data/{entry_id}/restore", headers=root
        )
        assert again.status_code == 400
        assert again.json()["error"] == "recovery/already-restored"

        hidden = await client.get("/api/v1/super-admin/deleted-data", headers=root)
        assert hidden.json()["total"] == 0

    @pytest.mark.asyncio
    async def test_restore_unknown_entry(self, client, school, auth_header):
        await school()
        response = await client.post(
            "/api/v1/super-admin/deleted-data/missing/restore", headers=auth_header(*ROOT)
        )
        assert response.status_code == 404
        assert response.json()["error"] == "recovery/not-found"

    @pytest.mark.asyncio
    async def test_readonly_admin_cannot_delete(self, client, school, auth_header, session_factory):
        await school()
        await self._seed_document(session_factory)
        response = await client.delete(
            "/api/v1/admin/documents/students/s-1", headers=auth_header(*READONLY)
        )
        assert response.status_code == 403

        still_there = await client.get(
            "/api/v1/admin/documents/students/s-1", headers=auth_header(*READONLY)
        )
        assert still_there.status_code == 200
