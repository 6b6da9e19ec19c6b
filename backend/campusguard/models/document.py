"""
CampusGuard — Governed Document Model
=======================================

What:  Generic (collection, document id) → JSON store standing in for the
       school's business collections (students, classes, grades, ...).
Who:   DocumentStore reads and writes it; RecoveryService writes snapshots
       back into it on restore.
"""

from datetime import datetime
from typing import Any, Dict

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from campusguard.database import Base, utcnow


class Document(Base):
    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(128), primary_key=True)
    doc_id: Mapped[str] = mapped_column(String(256), primary_key=True)
    data: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    def __repr__(self) -> str:
        return f"<Document(collection='{self.collection}', doc_id='{self.doc_id}')>"
