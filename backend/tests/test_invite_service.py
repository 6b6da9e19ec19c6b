"""
CampusGuard — Invite Service Tests
====================================

What:  Invite lifecycle against an in-memory database.

What we test:
    ✅ Issue: validation order, normalization, expiry clamping, token shape
    ✅ Verify: every unusable state is the same invite/not-found
    ✅ Accept: email match, single redemption, role grant, inactive callers
    ✅ Revoke and list (including the computed "expired" status)
"""

from datetime import timedelta

import pytest

from campusguard.database import utcnow
from campusguard.exceptions import (
    AuthError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from campusguard.models.profile import Profile
from campusguard.services.auth_guard import AuthContext
from campusguard.services.identity import VerifiedToken
from campusguard.services.invite_service import (
    InviteService,
    clamp_expiry_hours,
    effective_status,
    is_usable,
)


def _caller(uid, email, email_verified=True, profile=None):
    token = VerifiedToken(uid=uid, email=email, email_verified=email_verified, claims={})
    return AuthContext(token=token, profile=profile)


class TestIssue:

    def setup_method(self):
        self.service = InviteService()

    @pytest.mark.asyncio
    async def test_issue_creates_pending_invite(self, db_session):
        invite = await self.service.issue(db_session, "  New.Teacher@School.Test ", "teacher", "admin-1")
        assert invite.status == "pending"
        assert invite.email == "new.teacher@school.test"
        assert invite.created_by == "admin-1"
        assert len(invite.token) >= 43
        assert invite.expires_at - invite.created_at == timedelta(hours=72)

    @pytest.mark.asyncio
    async def test_tokens_are_unique(self, db_session):
        first = await self.service.issue(db_session, "a@school.test", "teacher", "admin-1")
        second = await self.service.issue(db_session, "a@school.test", "teacher", "admin-1")
        assert first.token != second.token

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["admin", "super_admin", "parent", "janitor"])
    async def test_non_invitable_role_rejected(self, db_session, role):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.issue(db_session, "a@school.test", role, "admin-1")
        assert exc_info.value.code == ErrorCode.INVITE_INVALID_ROLE

    @pytest.mark.asyncio
    async def test_invalid_email_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.issue(db_session, "not-an-email", "teacher", "admin-1")
        assert exc_info.value.code == ErrorCode.INVITE_INVALID_EMAIL

    @pytest.mark.asyncio
    async def test_role_checked_before_email(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.issue(db_session, "", "admin", "admin-1")
        assert exc_info.value.code == ErrorCode.INVITE_INVALID_ROLE


class TestExpiryClamp:

    def test_default_when_absent_or_non_positive(self):
        assert clamp_expiry_hours(None) == 72
        assert clamp_expiry_hours(0) == 72
        assert clamp_expiry_hours(-5) == 72

    def test_capped_at_maximum(self):
        assert clamp_expiry_hours(10_000) == 720

    def test_within_range_kept(self):
        assert clamp_expiry_hours(24) == 24


class TestVerify:

    def setup_method(self):
        self.service = InviteService()

    @pytest.mark.asyncio
    async def test_verify_pending(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        found = await self.service.verify(db_session, invite.token)
        assert found.id == invite.id

    @pytest.mark.asyncio
    async def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.verify(db_session, "no-such-token")
        assert exc_info.value.code == ErrorCode.INVITE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_expired_invite_not_found(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        invite.expires_at = utcnow() - timedelta(seconds=1)
        await db_session.flush()
        assert effective_status(invite) == "expired"
        with pytest.raises(NotFoundError):
            await self.service.verify(db_session, invite.token)

    @pytest.mark.asyncio
    async def test_revoked_invite_not_found(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        await self.service.revoke(db_session, invite.id, "admin-1")
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.verify(db_session, invite.token)
        assert exc_info.value.code == ErrorCode.INVITE_NOT_FOUND

    def test_is_usable_none(self):
        assert not is_usable(None)


class TestAccept:

    def setup_method(self):
        self.service = InviteService()

    @pytest.mark.asyncio
    async def test_accept_creates_profile_with_role(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        profile = await self.service.accept(db_session, invite.token, _caller("t1", "T@School.test"))

        assert profile.uid == "t1"
        assert profile.roles == ["teacher"]
        assert profile.status == "active"
        assert profile.display_name == "T"

        await db_session.refresh(invite)
        assert invite.status == "accepted"
        assert invite.accepted_by == "t1"
        assert invite.accepted_at is not None

    @pytest.mark.asyncio
    async def test_accept_adds_role_to_existing_profile(self, db_session):
        parent = Profile(uid="p1", email="p@school.test", display_name="P", roles=["parent"])
        db_session.add(parent)
        await db_session.flush()

        invite = await self.service.issue(db_session, "p@school.test", "teacher", "admin-1")
        profile = await self.service.accept(
            db_session, invite.token, _caller("p1", "p@school.test", profile=parent)
        )
        assert profile.roles == ["parent", "teacher"]

    @pytest.mark.asyncio
    async def test_second_redemption_fails(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        await self.service.accept(db_session, invite.token, _caller("t1", "t@school.test"))
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.accept(db_session, invite.token, _caller("t2", "t@school.test"))
        assert exc_info.value.code == ErrorCode.INVITE_NOT_FOUND

    @pytest.mark.asyncio
    async def test_empty_token(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            await self.service.accept(db_session, "  ", _caller("t1", "t@school.test"))
        assert exc_info.value.code == ErrorCode.INVITE_INVALID_TOKEN

    @pytest.mark.asyncio
    async def test_email_mismatch(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        with pytest.raises(ValidationError) as exc_info:
            await self.service.accept(db_session, invite.token, _caller("x", "other@school.test"))
        assert exc_info.value.code == ErrorCode.INVITE_EMAIL_MISMATCH

        await db_session.refresh(invite)
        assert invite.status == "pending"

    @pytest.mark.asyncio
    async def test_unverified_email_is_a_mismatch(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        with pytest.raises(ValidationError) as exc_info:
            await self.service.accept(
                db_session, invite.token, _caller("t1", "t@school.test", email_verified=False)
            )
        assert exc_info.value.code == ErrorCode.INVITE_EMAIL_MISMATCH

    @pytest.mark.asyncio
    async def test_suspended_caller_forbidden(self, db_session):
        suspended = Profile(
            uid="s1", email="t@school.test", display_name="S", roles=["parent"], status="suspended"
        )
        db_session.add(suspended)
        await db_session.flush()

        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        with pytest.raises(AuthError) as exc_info:
            await self.service.accept(
                db_session, invite.token, _caller("s1", "t@school.test", profile=suspended)
            )
        assert exc_info.value.status_code == 403
        assert suspended.roles == ["parent"]


class TestRevokeAndList:

    def setup_method(self):
        self.service = InviteService()

    @pytest.mark.asyncio
    async def test_revoke_pending(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        revoked = await self.service.revoke(db_session, invite.id, "admin-2")
        assert revoked.status == "revoked"
        assert revoked.revoked_by == "admin-2"

    @pytest.mark.asyncio
    async def test_revoke_unknown(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.revoke(db_session, "missing-id", "admin-1")

    @pytest.mark.asyncio
    async def test_revoke_accepted_conflicts(self, db_session):
        invite = await self.service.issue(db_session, "t@school.test", "teacher", "admin-1")
        await self.service.accept(db_session, invite.token, _caller("t1", "t@school.test"))
        with pytest.raises(ConflictError) as exc_info:
            await self.service.revoke(db_session, invite.id, "admin-1")
        assert exc_info.value.code == ErrorCode.INVITE_NOT_PENDING

    @pytest.mark.asyncio
    async def test_list_filters_by_effective_status(self, db_session):
        live = await self.service.issue(db_session, "a@school.test", "teacher", "admin-1")
        stale = await self.service.issue(db_session, "b@school.test", "teacher", "admin-1")
        stale.expires_at = utcnow() - timedelta(hours=1)
        revoked = await self.service.issue(db_session, "c@school.test", "teacher", "admin-1")
        await self.service.revoke(db_session, revoked.id, "admin-1")

        pending = await self.service.list_invites(db_session, status="pending")
        expired = await self.service.list_invites(db_session, status="expired")
        everything = await self.service.list_invites(db_session)

        assert [i.id for i in pending.invites] == [live.id]
        assert [i.id for i in expired.invites] == [stale.id]
        assert everything.total == 3

    @pytest.mark.asyncio
    async def test_list_paginates(self, db_session):
        for n in range(5):
            await self.service.issue(db_session, f"u{n}@school.test", "teacher", "admin-1")
        page = await self.service.list_invites(db_session, limit=2, offset=2)
        assert len(page.invites) == 2
        assert page.total == 5
