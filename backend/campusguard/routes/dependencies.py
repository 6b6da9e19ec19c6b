"""
CampusGuard — Route Dependencies
==================================

What:  FastAPI dependencies shared by the routers: the rate limiter,
       identity verifier and session factory owned by the app, the caller's
       request origin, per-action rate limiting, and the auth guard.
How:   Routers declare them with Depends(); tests swap the limiter or the
       verifier via app.dependency_overrides.

Order on every privileged endpoint:
    rate_limit(...)  → 429 before any token work
    require_auth(...) → 401 / 403 / 404
    handler

Rejections by rate_limit and 401/403 rejections by require_auth are also
stored as security events (see SecurityService.report).
"""

import logging
from typing import Callable, Iterable, Optional

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from campusguard.config import settings
from campusguard.database import get_db_session
from campusguard.exceptions import AuthError, RateLimitExceededError
from campusguard.services.auth_guard import AuthContext, AuthGuard
from campusguard.services.identity import IdentityVerifier, build_identity_verifier
from campusguard.services.rate_limiter import (
    RateLimitDecision,
    RequestOrigin,
    SlidingWindowRateLimiter,
)
from campusguard.services.security_service import (
    LOGIN_FAILED,
    RATE_LIMIT_EXCEEDED,
    UNAUTHORIZED_ACCESS,
    security_service,
)

logger = logging.getLogger(__name__)


# ── App-owned singletons ──────────────────────────────────────────────────

def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    """The limiter created by create_app()."""
    return request.app.state.rate_limiter


def get_session_factory(request: Request) -> async_sessionmaker:
    """Session factory for writes that must commit independently of the request."""
    return request.app.state.session_factory


def get_identity_verifier(request: Request) -> IdentityVerifier:
    """
    The verifier stored on app.state, built on first use.

    The lifespan builds it at startup; the lazy path covers transports that
    skip lifespan events.
    """
    verifier = getattr(request.app.state, "identity_verifier", None)
    if verifier is None:
        verifier = build_identity_verifier(settings)
        request.app.state.identity_verifier = verifier
    return verifier


def get_request_origin(request: Request) -> RequestOrigin:
    """Client address and User-Agent of the current request."""
    return RequestOrigin.from_headers(request.headers)


# ── Rate limiting ─────────────────────────────────────────────────────────

def rate_limit(action: str, limit: int, window_seconds: int) -> Callable:
    """
    Build a dependency that admits at most `limit` requests per
    `window_seconds` per client identity for `action`.

    Raises:
        RateLimitExceededError: 429 with Retry-After
    """

    async def _check(
        request: Request,
        limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
        origin: RequestOrigin = Depends(get_request_origin),
        session_factory: async_sessionmaker = Depends(get_session_factory),
    ) -> RateLimitDecision:
        decision = limiter.check(origin.ip_address, action, limit, window_seconds)
        if decision.limited:
            await security_service.report(
                session_factory,
                RATE_LIMIT_EXCEEDED,
                origin,
                details={"endpoint": request.url.path, "action": action, "limit": limit},
            )
            raise RateLimitExceededError(
                retry_after=decision.retry_after_seconds,
                action=action,
            )
        return decision

    return _check


# ── Authentication ────────────────────────────────────────────────────────

def require_auth(
    roles: Optional[Iterable[str]] = None,
    write_access: bool = False,
    require_active: bool = True,
    require_profile: bool = True,
) -> Callable:
    """
    Build a dependency that runs the auth guard with the given options.

    Example:
        @router.post("/invites")
        async def create_invite(
            caller: AuthContext = Depends(require_auth(roles=["admin"], write_access=True)),
        ): ...
    """
    required = list(roles) if roles else None

    async def _authenticate(
        request: Request,
        authorization: Optional[str] = Header(default=None),
        verifier: IdentityVerifier = Depends(get_identity_verifier),
        origin: RequestOrigin = Depends(get_request_origin),
        session_factory: async_sessionmaker = Depends(get_session_factory),
        db: AsyncSession = Depends(get_db_session),
    ) -> AuthContext:
        guard = AuthGuard(verifier)
        try:
            return await guard.authenticate(
                db,
                authorization,
                require_roles=required,
                require_write_access=write_access,
                require_active=require_active,
                require_profile=require_profile,
            )
        except AuthError as e:
            if e.status_code in (401, 403):
                await security_service.report(
                    session_factory,
                    LOGIN_FAILED if e.status_code == 401 else UNAUTHORIZED_ACCESS,
                    origin,
                    user_id=e.principal_id,
                    email=e.principal_email,
                    details={
                        "resource": request.url.path,
                        "method": request.method,
                        "code": e.code.value,
                        "required_roles": required or [],
                    },
                )
            raise

    return _authenticate
