"""
CampusGuard — Invite Service
==============================

What:  Issues, verifies, redeems, revokes and lists invitation tokens.
Who:   Called by the /api/v1/invites route handlers.

State Machine (per invite):
    pending ──accept──▶ accepted   (terminal)
    pending ──revoke──▶ revoked    (terminal)
    pending ──time────▶ expired    (computed from expires_at, never stored)

Single Redemption:
    Acceptance claims the invite with a conditional
        UPDATE invites SET status='accepted' WHERE id=:id AND status='pending'
    and checks the row count. Of two concurrent redemptions exactly one sees
    rowcount == 1; the other reports the invite as not found. The role grant
    runs in the same transaction, so a failed grant rolls the claim back.

Information Hiding:
    verify() and accept() report every unusable state (unknown, expired,
    accepted, revoked) as the same 404 invite/not-found.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.config import settings
from campusguard.database import as_utc, utcnow
from campusguard.exceptions import (
    AuthError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from campusguard.models.invite import Invite
from campusguard.models.profile import Profile
from campusguard.services.auth_guard import AuthContext
from campusguard.services.profile_store import profile_store
from campusguard.services.roles import INVITABLE_ROLES, AccountStatus

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REVOKED = "revoked"
STATUS_EXPIRED = "expired"

# 32 random bytes → 43 URL-safe characters
TOKEN_BYTES = 32


def effective_status(invite: Invite, now: Optional[datetime] = None) -> str:
    """Stored status, with pending-but-past-expiry reported as 'expired'."""
    now = now or utcnow()
    if invite.status == STATUS_PENDING and now > as_utc(invite.expires_at):
        return STATUS_EXPIRED
    return invite.status


def is_usable(invite: Optional[Invite], now: Optional[datetime] = None) -> bool:
    """Pending and not past expires_at (inclusive)."""
    return invite is not None and effective_status(invite, now) == STATUS_PENDING


def clamp_expiry_hours(expires_in_hours: Optional[int]) -> int:
    """Absent or non-positive → default; above the maximum → maximum."""
    if expires_in_hours is None or expires_in_hours <= 0:
        return settings.invite_default_hours
    return min(expires_in_hours, settings.invite_max_hours)


@dataclass
class InviteListResult:
    invites: List[Invite]
    total: int


class InviteService:
    """Stateless; each method receives the request's session."""

    async def issue(
        self,
        db: AsyncSession,
        email: str,
        role: str,
        issuer_id: str,
        expires_in_hours: Optional[int] = None,
    ) -> Invite:
        """
        Create a pending invite.

        The caller must already be admitted as an admin with write access.

        Args:
            db: Async database session
            email: Target email (trimmed and lower-cased here)
            role: Requested role; must be in the invitable allow-list
            issuer_id: Identity id of the issuing admin
            expires_in_hours: Lifetime in hours (default 72, capped at 720)

        Returns:
            The new Invite, including its raw token

        Raises:
            ValidationError: invite/invalid-role or invite/invalid-email
        """
        if role not in INVITABLE_ROLES:
            raise ValidationError(
                message="Invalid role",
                field="role",
                code=ErrorCode.INVITE_INVALID_ROLE,
            )

        normalized = (email or "").strip().lower()
        if "@" not in normalized:
            raise ValidationError(
                message="Valid email is required",
                field="email",
                code=ErrorCode.INVITE_INVALID_EMAIL,
            )

        hours = clamp_expiry_hours(expires_in_hours)
        now = utcnow()
        invite = Invite(
            token=secrets.token_urlsafe(TOKEN_BYTES),
            email=normalized,
            role=role,
            status=STATUS_PENDING,
            created_by=issuer_id,
            created_at=now,
            expires_at=now + timedelta(hours=hours),
        )
        db.add(invite)
        await db.flush()

        logger.info(
            "Invite %s issued by %s for role %s (expires in %dh)",
            invite.id,
            issuer_id,
            role,
            hours,
        )
        return invite

    async def find_by_token(self, db: AsyncSession, token: str) -> Optional[Invite]:
        result = await db.execute(select(Invite).where(Invite.token == token))
        return result.scalar_one_or_none()

    async def verify(self, db: AsyncSession, token: str) -> Invite:
        """
        Public lookup of a usable invite.

        Raises:
            NotFoundError: invite/not-found for every unusable state
        """
        invite = await self.find_by_token(db, token) if token else None
        if not is_usable(invite):
            raise NotFoundError(
                resource="invite",
                code=ErrorCode.INVITE_NOT_FOUND,
                message="Invite not found or expired",
            )
        return invite

    async def accept(self, db: AsyncSession, token: str, caller: AuthContext) -> Profile:
        """
        Redeem an invite for the authenticated caller.

        Args:
            db: Async database session
            token: Raw invite token
            caller: Admitted caller (profile may be None)

        Returns:
            The caller's profile after the role grant

        Raises:
            ValidationError: invite/invalid-token (empty token)
            NotFoundError: invite/not-found (unusable, or lost a redemption race)
            ValidationError: invite/email-mismatch
            AuthError: 403 auth/forbidden when the caller's profile is not active
        """
        if not token or not token.strip():
            raise ValidationError(
                message="Invite token is required",
                field="token",
                code=ErrorCode.INVITE_INVALID_TOKEN,
            )

        invite = await self.verify(db, token.strip())

        # Unverified email addresses never match
        caller_email = (caller.token.email or "").strip().lower()
        if not caller.token.email_verified or caller_email != invite.email:
            logger.warning("Invite %s: email mismatch for caller %s", invite.id, caller.uid)
            raise ValidationError(
                message="Invite email does not match your account",
                code=ErrorCode.INVITE_EMAIL_MISMATCH,
            )

        if caller.profile is not None and caller.profile.status != AccountStatus.ACTIVE.value:
            logger.warning(
                "Invite %s: caller %s has status %s",
                invite.id,
                caller.uid,
                caller.profile.status,
            )
            raise AuthError(403, ErrorCode.FORBIDDEN, "Account is not active")

        now = utcnow()
        claim = await db.execute(
            update(Invite)
            .where(Invite.id == invite.id, Invite.status == STATUS_PENDING)
            .values(status=STATUS_ACCEPTED, accepted_by=caller.uid, accepted_at=now)
            .execution_options(synchronize_session=False)
        )
        if claim.rowcount != 1:
            logger.info("Invite %s was redeemed concurrently", invite.id)
            raise NotFoundError(
                resource="invite",
                code=ErrorCode.INVITE_NOT_FOUND,
                message="Invite not found or expired",
            )

        profile = await profile_store.ensure_role(
            db,
            uid=caller.uid,
            email=caller.token.email or invite.email,
            role=invite.role,
        )
        logger.info("Invite %s accepted by %s", invite.id, caller.uid)
        return profile

    async def revoke(self, db: AsyncSession, invite_id: str, actor_id: str) -> Invite:
        """
        Withdraw a pending invite.

        Raises:
            NotFoundError: invite/not-found
            ConflictError: invite/not-pending
        """
        invite = await db.get(Invite, invite_id)
        if invite is None:
            raise NotFoundError(
                resource="invite",
                resource_id=invite_id,
                code=ErrorCode.INVITE_NOT_FOUND,
            )

        result = await db.execute(
            update(Invite)
            .where(Invite.id == invite_id, Invite.status == STATUS_PENDING)
            .values(status=STATUS_REVOKED, revoked_by=actor_id, revoked_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                message="Only pending invites can be revoked",
                code=ErrorCode.INVITE_NOT_PENDING,
            )

        await db.refresh(invite)
        logger.info("Invite %s revoked by %s", invite_id, actor_id)
        return invite

    async def list_invites(
        self,
        db: AsyncSession,
        status: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> InviteListResult:
        """
        Newest-first page of invites.

        `status` may be pending, accepted, revoked or expired; "pending"
        excludes invites past their expiry and "expired" selects exactly those.
        """
        now = utcnow()
        conditions = []
        if status == STATUS_EXPIRED:
            conditions += [Invite.status == STATUS_PENDING, Invite.expires_at < now]
        elif status == STATUS_PENDING:
            conditions += [Invite.status == STATUS_PENDING, Invite.expires_at >= now]
        elif status:
            conditions.append(Invite.status == status)

        total = (await db.execute(select(func.count(Invite.id)).where(*conditions))).scalar_one()
        result = await db.execute(
            select(Invite)
            .where(*conditions)
            .order_by(Invite.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return InviteListResult(invites=list(result.scalars().all()), total=total)


# Singleton instance
invite_service = InviteService()
