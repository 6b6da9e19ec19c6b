"""
CampusGuard — Health Check Route
==================================

What:  Health check endpoint for monitoring and load balancer checks.
How:   Runs SELECT 1 against the database and reports limiter and verifier
       state.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   Database reachable (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text

from campusguard import __version__
from campusguard.config import settings
from campusguard.database import engine
from campusguard.routes.dependencies import get_rate_limiter
from campusguard.schemas.common import HealthResponse
from campusguard.services.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description=(
        "Returns the health status of the service and its database. Excluded from "
        "rate limiting and from the access log."
    ),
)
async def health_check(
    response: Response,
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        identity_verifier=settings.auth_verifier,
        rate_limit_buckets=len(limiter),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
