"""
CampusGuard — Promotion Record Model
======================================

What:  Append-only history of admin promotions and demotions.
Who:   Written by AdminService in the same transaction as the role change.
"""

import uuid
from datetime import datetime
from typing import List

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow


class PromotionRecord(Base):
    """One promotion or demotion, with the role sets before and after."""

    __tablename__ = "promotion_records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")

    # 'promote' or 'demote'
    action: Mapped[str] = mapped_column(String(16), nullable=False)

    previous_roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    new_roles: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    performed_by: Mapped[str] = mapped_column(String(128), nullable=False)
    performed_by_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    __table_args__ = (
        Index("idx_promotions_created_at", created_at.desc()),
        Index("idx_promotions_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<PromotionRecord(user_id='{self.user_id}', action='{self.action}')>"
