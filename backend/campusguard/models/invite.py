"""
CampusGuard — Invite SQLAlchemy Model
=======================================

What:  ORM model for the `invites` table.
How:   The document id and the secret token are distinct columns; the token
       carries a unique index and is the only lookup key for redemption.

Status values stored: pending, accepted, revoked. "Expired" is never stored;
it is computed from expires_at at read time.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow


class Invite(Base):
    """An invitation for an email address to join with a given role."""

    __tablename__ = "invites"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Secret; returned once at issuance, never listed or logged
    token: Mapped[str] = mapped_column(String(128), nullable=False)

    email: Mapped[str] = mapped_column(
        String(320),
        nullable=False,
        comment="Target email, lower-cased",
    )
    role: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
        comment="pending, accepted, revoked",
    )

    created_by: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    accepted_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revoked_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_invites_token", "token", unique=True),
        Index("idx_invites_status_created", "status", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Invite(id='{self.id}', email='{self.email}', status='{self.status}')>"
