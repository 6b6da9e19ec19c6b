"""
CampusGuard — Deleted Data Entry Model
========================================

What:  Verbatim snapshots of documents taken just before a destructive
       operation, so a super admin can restore them.
How:   `data` holds the snapshot exactly as it was; it is never modified.
       `snapshot_version` records the snapshot layout so restore can refuse
       layouts it does not understand.

An entry can be restored at most once: `restored` only ever flips from
false to true, through a conditional UPDATE.
"""

import uuid
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow

# Layout of `data` written by archive_before_delete
CURRENT_SNAPSHOT_VERSION = 1


class DeletedDataEntry(Base):
    """A soft-deleted document awaiting possible restoration."""

    __tablename__ = "deleted_data"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # ── Origin ────────────────────────────────────────────────────────────
    collection: Mapped[str] = mapped_column(String(128), nullable=False)
    document_id: Mapped[str] = mapped_column(String(256), nullable=False)

    # ── Snapshot ──────────────────────────────────────────────────────────
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    snapshot_version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=CURRENT_SNAPSHOT_VERSION,
    )

    # ── Deletion ──────────────────────────────────────────────────────────
    deleted_by: Mapped[str] = mapped_column(String(128), nullable=False)
    deleted_by_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    deleted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="End of the retention period",
    )

    # ── Restoration ───────────────────────────────────────────────────────
    restored: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    restored_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    restored_by_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    restored_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_deleted_data_collection", "collection"),
        Index("idx_deleted_data_deleted_at", deleted_at.desc()),
    )

    def __repr__(self) -> str:
        return (
            f"<DeletedDataEntry(id='{self.id}', collection='{self.collection}', "
            f"document_id='{self.document_id}', restored={self.restored})>"
        )
