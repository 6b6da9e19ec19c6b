"""
CampusGuard — Document Store
==============================

What:  Minimal access layer over the generic `documents` table, which stands
       in for the school's governed business collections.
Who:   The admin document routes, and RecoveryService when it writes a
       snapshot back on restore.

Every destructive path goes through soft_delete(), which archives a
snapshot into the recovery store before removing the row.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from campusguard.database import utcnow
from campusguard.exceptions import ErrorCode, NotFoundError
from campusguard.models.deleted_data import DeletedDataEntry
from campusguard.models.document import Document

logger = logging.getLogger(__name__)


class DocumentStore:

    async def get(self, db: AsyncSession, collection: str, doc_id: str) -> Optional[Document]:
        return await db.get(Document, (collection, doc_id))

    async def put(
        self,
        db: AsyncSession,
        collection: str,
        doc_id: str,
        data: Dict[str, Any],
    ) -> Document:
        """Create or overwrite a document. No merge with existing content."""
        document = await self.get(db, collection, doc_id)
        if document is None:
            document = Document(collection=collection, doc_id=doc_id, data=dict(data))
            db.add(document)
        else:
            document.data = dict(data)
            document.updated_at = utcnow()
        await db.flush()
        return document

    async def soft_delete(
        self,
        db: AsyncSession,
        collection: str,
        doc_id: str,
        actor_id: str,
        actor_email: str,
    ) -> DeletedDataEntry:
        """
        Archive a document into the recovery store, then delete it.

        Both steps share the session: if the delete fails, the archive entry
        is rolled back with it.

        Raises:
            NotFoundError: document/not-found
        """
        from campusguard.services.recovery_service import recovery_service

        document = await self.get(db, collection, doc_id)
        if document is None:
            raise NotFoundError(
                resource="document",
                resource_id=f"{collection}/{doc_id}",
                code=ErrorCode.DOCUMENT_NOT_FOUND,
            )

        entry = await recovery_service.archive_before_delete(
            db,
            collection=collection,
            document_id=doc_id,
            data=document.data,
            actor_id=actor_id,
            actor_email=actor_email,
        )
        await db.delete(document)
        await db.flush()
        logger.info("Soft-deleted %s/%s (archive entry %s)", collection, doc_id, entry.id)
        return entry


# Singleton instance
document_store = DocumentStore()
