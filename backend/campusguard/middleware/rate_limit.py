"""
CampusGuard — Global Rate Limiting Middleware
===============================================

What:  Per-IP sliding-window limit applied to every request.
How:   Delegates to the app's SlidingWindowRateLimiter (app.state.rate_limiter)
       under the action name "global". Per-action limits on sensitive
       endpoints are applied separately by route dependencies.
When:  First in the middleware chain.

The limiter is process-local. With several workers, each enforces its own
budget.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from campusguard.config import settings
from campusguard.exceptions import ErrorCode
from campusguard.services.rate_limiter import RequestOrigin
from campusguard.services.security_service import RATE_LIMIT_EXCEEDED, security_service

logger = logging.getLogger(__name__)

GLOBAL_ACTION = "global"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rejects clients that exceed `rate_limit_requests` per `rate_limit_window`.

    Excluded paths:
        - /health: Health checks should never be rate-limited
        - /docs, /openapi.json, /redoc: API documentation

    Response on rate limit:
        HTTP 429 with a Retry-After header (seconds, rounded up); the
        rejection is stored as a rate_limit_exceeded security event
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        limiter = request.app.state.rate_limiter
        origin = RequestOrigin.from_headers(request.headers)
        decision = limiter.check(
            origin.ip_address,
            GLOBAL_ACTION,
            settings.rate_limit_requests,
            settings.rate_limit_window,
        )

        if decision.limited:
            await security_service.report(
                request.app.state.session_factory,
                RATE_LIMIT_EXCEEDED,
                origin,
                details={
                    "endpoint": request.url.path,
                    "action": GLOBAL_ACTION,
                    "limit": settings.rate_limit_requests,
                },
            )
            retry_after = decision.retry_after_seconds
            return JSONResponse(
                status_code=429,
                content={
                    "error": ErrorCode.RATE_LIMITED.value,
                    "message": f"Too many requests. Please wait {retry_after} seconds before retrying.",
                    "details": {"retry_after": retry_after},
                    "request_id": request.headers.get("X-Request-ID", ""),
                },
                headers={"Retry-After": str(retry_after)},
            )

        return await call_next(request)
