"""
CampusGuard — Request Logging Middleware
==========================================

What:  One access-log line per request with status and duration.
How:   Level follows the status class: 5xx → ERROR, 4xx → WARNING, else INFO.
When:  After RequestIDMiddleware, so every line carries the request id.

Logged: method, path, status, duration, client identity, request id.
Never logged: request bodies, Authorization headers, invite tokens (the
query string of /invites/verify is dropped with the rest of the query).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from campusguard.middleware.request_id import request_id_var
from campusguard.services.rate_limiter import resolve_client_identity

logger = logging.getLogger("campusguard.access")


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path

        # Health checks run every few seconds
        if path == "/health":
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        rid = request_id_var.get("")
        client = resolve_client_identity(request.headers)
        logger.log(
            log_level,
            "%s %s %d %.1fms from %s",
            request.method,
            path,
            status,
            duration_ms,
            client,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client,
            },
        )
        return response
