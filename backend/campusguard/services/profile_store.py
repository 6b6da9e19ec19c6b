"""
CampusGuard — Principal Store
===============================

What:  Reads and writes Profile rows by identity id.
Who:   AuthGuard (lookup on every request), InviteService (role grant on
       acceptance), AdminService and RecoveryService (role/status changes).
"""

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.database import utcnow
from campusguard.models.profile import Profile
from campusguard.services.roles import AccountStatus

logger = logging.getLogger(__name__)


class ProfileStore:
    """Stateless accessor; every method takes the request's session."""

    async def get(self, db: AsyncSession, uid: str, for_update: bool = False) -> Optional[Profile]:
        """
        Load a profile by identity id.

        Args:
            db: Async database session
            uid: Identity provider subject id
            for_update: Lock the row for the rest of the transaction
                        (ignored by backends without row locks)
        """
        stmt = select(Profile).where(Profile.uid == uid)
        if for_update:
            stmt = stmt.with_for_update()
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def ensure_role(
        self,
        db: AsyncSession,
        uid: str,
        email: str,
        role: str,
        display_name: Optional[str] = None,
    ) -> Profile:
        """
        Grant `role` to a principal, creating the profile if needed.

        A new profile is created active, with the email's local part as its
        display name unless one is given. An existing profile keeps its other
        roles; granting a role it already holds changes nothing.

        Returns:
            The (possibly new) Profile, flushed.
        """
        profile = await self.get(db, uid, for_update=True)
        if profile is None:
            profile = Profile(
                uid=uid,
                email=email,
                display_name=display_name or email.split("@")[0],
                roles=[role],
                status=AccountStatus.ACTIVE.value,
            )
            db.add(profile)
            await db.flush()
            logger.info("Created profile %s with role %s", uid, role)
            return profile

        if role not in profile.roles:
            profile.roles = [*profile.roles, role]
            profile.updated_at = utcnow()
            await db.flush()
            logger.info("Granted role %s to %s", role, uid)
        return profile

    async def list_with_role(self, db: AsyncSession, roles: List[str]) -> List[Profile]:
        """Profiles holding any of `roles`, ordered by email."""
        result = await db.execute(select(Profile).order_by(Profile.email))
        wanted = set(roles)
        return [p for p in result.scalars().all() if wanted & set(p.roles)]

    async def list_active_without_role(self, db: AsyncSession, roles: List[str]) -> List[Profile]:
        """Active profiles holding none of `roles`, ordered by email."""
        result = await db.execute(
            select(Profile)
            .where(Profile.status == AccountStatus.ACTIVE.value)
            .order_by(Profile.email)
        )
        excluded = set(roles)
        return [p for p in result.scalars().all() if not excluded & set(p.roles)]


# Singleton instance
profile_store = ProfileStore()
