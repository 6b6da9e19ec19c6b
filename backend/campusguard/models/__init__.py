# Models package init
"""
CampusGuard — ORM Models
=========================

Importing this package registers every table with `Base.metadata`
(Alembic autogenerate and the test fixtures' create_all rely on it).
"""

from campusguard.models.audit_log import AuditLogEntry
from campusguard.models.deleted_data import CURRENT_SNAPSHOT_VERSION, DeletedDataEntry
from campusguard.models.document import Document
from campusguard.models.invite import Invite
from campusguard.models.profile import Profile
from campusguard.models.promotion import PromotionRecord
from campusguard.models.security_event import SecurityEvent
from campusguard.models.suspension import SuspensionRecord

__all__ = [
    "AuditLogEntry",
    "CURRENT_SNAPSHOT_VERSION",
    "DeletedDataEntry",
    "Document",
    "Invite",
    "Profile",
    "PromotionRecord",
    "SecurityEvent",
    "SuspensionRecord",
]
