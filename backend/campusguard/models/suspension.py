"""
CampusGuard — Suspension Record Model
=======================================

What:  One row per emergency suspension, kept after the suspension is lifted.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow


class SuspensionRecord(Base):
    __tablename__ = "suspension_records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    reason: Mapped[str] = mapped_column(Text, nullable=False)

    # warning | temporary | permanent
    severity: Mapped[str] = mapped_column(String(16), nullable=False)

    suspended_by: Mapped[str] = mapped_column(String(128), nullable=False)
    suspended_by_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    suspended_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    # Set for temporary suspensions only
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    lifted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    lifted_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    lift_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    lifted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_suspensions_user_id", "user_id"),
        Index("idx_suspensions_lifted", "lifted"),
    )

    def __repr__(self) -> str:
        return (
            f"<SuspensionRecord(user_id='{self.user_id}', severity='{self.severity}', "
            f"lifted={self.lifted})>"
        )
