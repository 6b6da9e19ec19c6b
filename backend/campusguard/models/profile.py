"""
CampusGuard — Profile SQLAlchemy Model
========================================

What:  ORM model for the `profiles` table: one row per principal.
How:   Keyed by the identity provider's subject id; roles are stored as a
       JSON array so a principal can hold several roles at once.
Who:   Read by AuthGuard on every privileged request; written by invite
       acceptance, promotion/demotion and emergency suspension.

Table Design:
    - uid: the identity provider's subject id (not generated here)
    - roles: JSON list, never empty once created
    - status: active | suspended | pending
    - Profiles are never deleted; suspension is the terminal control
"""

from datetime import datetime
from typing import List

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow


class Profile(Base):
    """
    A principal known to the application.

    Lifecycle:
        1. Created on first invite acceptance (or provisioned externally)
        2. Roles change through promotion/demotion
        3. Status flips to 'suspended' on emergency suspension and back to
           'active' when the suspension is lifted
    """

    __tablename__ = "profiles"

    uid: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Identity provider subject id",
    )

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        default="",
        comment="Email address as reported by the identity provider",
    )

    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )

    # Assign a new list on change; in-place mutation is not tracked
    roles: Mapped[List[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Role set: parent, teacher, admin, admin_readonly, super_admin",
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="active",
        comment="Account status: active, suspended, pending",
    )

    suspended_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    suspension_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    __table_args__ = (
        Index("idx_profiles_email", "email"),
        Index("idx_profiles_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Profile(uid='{self.uid}', roles={self.roles}, status='{self.status}')>"
