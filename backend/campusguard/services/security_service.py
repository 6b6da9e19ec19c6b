"""
CampusGuard — Security Event Service
======================================

What:  Stores, lists, summarizes and resolves security events.
Who:   The require_auth dependency (401 → login_failed, 403 →
       unauthorized_access), the per-route rate-limit dependency and
       RateLimitMiddleware (rate_limit_exceeded), and the super-admin
       security routes.

Transactions:
    Events describe requests that are being rejected, whose own session is
    about to roll back. report() therefore writes each event through a
    short-lived session of its own and commits it immediately. A storage
    failure there is logged and the rejection proceeds unchanged.

    resolve() runs in the caller's session and appends a `security.resolve`
    audit entry to the same transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campusguard.database import utcnow
from campusguard.exceptions import ConflictError, ErrorCode, NotFoundError, ValidationError
from campusguard.models.security_event import SecurityEvent
from campusguard.services.audit_service import audit_service
from campusguard.services.rate_limiter import RequestOrigin

logger = logging.getLogger(__name__)

LOGIN_FAILED = "login_failed"
RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
UNAUTHORIZED_ACCESS = "unauthorized_access"
SUSPICIOUS_ACTIVITY = "suspicious_activity"

EVENT_TYPES = (LOGIN_FAILED, RATE_LIMIT_EXCEEDED, UNAUTHORIZED_ACCESS, SUSPICIOUS_ACTIVITY)

STATS_WINDOW = timedelta(hours=24)


@dataclass
class SecurityEventQueryResult:
    events: List[SecurityEvent] = field(default_factory=list)
    total: int = 0


@dataclass(frozen=True)
class SecurityStats:
    failed_logins_24h: int
    rate_limit_exceeded_24h: int
    unauthorized_access_24h: int
    unresolved_events: int


class SecurityService:

    async def record(
        self,
        db: AsyncSession,
        event_type: str,
        origin: RequestOrigin,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> SecurityEvent:
        """
        Add one unresolved event to the given session.

        Raises:
            ValueError: Unknown event type
        """
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown security event type '{event_type}'")

        event = SecurityEvent(
            type=event_type,
            user_id=user_id,
            email=email,
            ip_address=origin.ip_address,
            user_agent=origin.user_agent,
            details=details or {},
            resolved=False,
        )
        db.add(event)
        await db.flush()
        logger.warning(
            "Security event %s from %s (user=%s)",
            event_type,
            origin.ip_address,
            user_id or "-",
        )
        return event

    async def report(
        self,
        session_factory: async_sessionmaker,
        event_type: str,
        origin: RequestOrigin,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[SecurityEvent]:
        """
        Record an event in its own committed transaction.

        Returns:
            The stored event, or None when the database write failed
        """
        try:
            async with session_factory() as session:
                event = await self.record(
                    session,
                    event_type,
                    origin,
                    user_id=user_id,
                    email=email,
                    details=details,
                )
                await session.commit()
                return event
        except SQLAlchemyError:
            logger.error("Failed to store %s security event", event_type, exc_info=True)
            return None

    async def query(
        self,
        db: AsyncSession,
        event_type: Optional[str] = None,
        resolved: Optional[bool] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> SecurityEventQueryResult:
        """Filtered, newest-first page of events plus the filtered total."""
        conditions = []
        if event_type:
            conditions.append(SecurityEvent.type == event_type)
        if resolved is not None:
            conditions.append(SecurityEvent.resolved.is_(resolved))
        if since is not None:
            conditions.append(SecurityEvent.created_at >= since)
        if until is not None:
            conditions.append(SecurityEvent.created_at <= until)

        total = (
            await db.execute(select(func.count(SecurityEvent.id)).where(*conditions))
        ).scalar_one()
        result = await db.execute(
            select(SecurityEvent)
            .where(*conditions)
            .order_by(SecurityEvent.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return SecurityEventQueryResult(events=list(result.scalars().all()), total=total)

    async def stats(self, db: AsyncSession, now: Optional[datetime] = None) -> SecurityStats:
        """Per-type counts over the last 24 hours and the unresolved backlog."""
        since = (now or utcnow()) - STATS_WINDOW

        async def _count(*conditions) -> int:
            result = await db.execute(select(func.count(SecurityEvent.id)).where(*conditions))
            return result.scalar_one()

        return SecurityStats(
            failed_logins_24h=await _count(
                SecurityEvent.type == LOGIN_FAILED, SecurityEvent.created_at >= since
            ),
            rate_limit_exceeded_24h=await _count(
                SecurityEvent.type == RATE_LIMIT_EXCEEDED, SecurityEvent.created_at >= since
            ),
            unauthorized_access_24h=await _count(
                SecurityEvent.type == UNAUTHORIZED_ACCESS, SecurityEvent.created_at >= since
            ),
            unresolved_events=await _count(SecurityEvent.resolved.is_(False)),
        )

    async def resolve(
        self,
        db: AsyncSession,
        event_id: str,
        resolution: str,
        actor_id: str,
        actor_email: str,
        origin: Optional[RequestOrigin] = None,
    ) -> SecurityEvent:
        """
        Close an event with a resolution note.

        Raises:
            ValidationError: empty resolution
            NotFoundError: security/not-found
            ConflictError: security/already-resolved
        """
        if not resolution or not resolution.strip():
            raise ValidationError(message="A resolution is required", field="resolution")

        event = await db.get(SecurityEvent, event_id)
        if event is None:
            raise NotFoundError(
                resource="security event",
                resource_id=event_id,
                code=ErrorCode.SECURITY_EVENT_NOT_FOUND,
            )

        result = await db.execute(
            update(SecurityEvent)
            .where(SecurityEvent.id == event_id, SecurityEvent.resolved.is_(False))
            .values(
                resolved=True,
                resolved_at=utcnow(),
                resolved_by=actor_id,
                resolution=resolution.strip(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                message="Security event is already resolved",
                code=ErrorCode.SECURITY_EVENT_ALREADY_RESOLVED,
            )
        await db.refresh(event)

        await audit_service.record(
            db,
            actor_id=actor_id,
            actor_email=actor_email,
            action="security.resolve",
            resource="security_event",
            resource_id=event.id,
            details={"type": event.type, "resolution": event.resolution},
            origin=origin,
        )
        logger.info("Security event %s resolved by %s", event_id, actor_id)
        return event


# Singleton instance
security_service = SecurityService()
