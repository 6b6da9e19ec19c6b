"""
CampusGuard — FastAPI Application Factory
===========================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn campusguard.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────────┐ ┌──────────┐ ┌──────────┐ ┌─────────┐ │
    │  │  Rate Limit  │→│ Req ID   │→│ Logging  │→│GZip/CORS│ │
    │  └──────────────┘ └──────────┘ └──────────┘ └─────────┘ │
    │                                                          │
    │  Routes:                                                 │
    │  /health  /api/v1/me  /api/v1/invites                    │
    │  /api/v1/super-admin/...  /api/v1/admin/documents        │
    │  /api/v1/super-admin/security                            │
    │                                                          │
    │  Shared state (app.state):                               │
    │  rate_limiter        SlidingWindowRateLimiter            │
    │  identity_verifier   StaticKey / Jwks IdentityVerifier   │
    │  session_factory     security-event writes               │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Validate configuration (logged, not fatal)
    3. Build the identity verifier

    Shutdown:
    1. Close the identity verifier's HTTP client
    2. Dispose database engine (close all connections)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from campusguard import __version__
from campusguard.config import settings
from campusguard.database import async_session_factory, dispose_engine
from campusguard.exceptions import (
    CampusGuardError,
    DatabaseError,
    ErrorCode,
    RateLimitExceededError,
)
from campusguard.middleware.logging import RequestLoggingMiddleware
from campusguard.middleware.rate_limit import RateLimitMiddleware
from campusguard.middleware.request_id import (
    RequestIDLogFilter,
    RequestIDMiddleware,
    request_id_var,
)
from campusguard.routes import (
    documents,
    health,
    invites,
    me,
    recovery,
    security,
    super_admin,
)
from campusguard.services.identity import build_identity_verifier
from campusguard.services.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s

    The request id comes from RequestIDLogFilter, attached to the handler so
    records from third-party loggers get it too ("-" outside a request).
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s"

    handler = logging.StreamHandler(sys.stdout)  # Docker captures stdout
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup sequence:
        1. Setup logging
        2. Validate critical configuration
        3. Build the identity verifier into app.state

    Shutdown sequence:
        1. Close the verifier
        2. Dispose database engine
    """
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("CampusGuard %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Fix the configuration and restart the server.")
        # Keep serving: /health stays reachable and guarded routes answer 401

    app.state.identity_verifier = build_identity_verifier(settings)
    logger.info("Identity verifier: %s", settings.auth_verifier)
    logger.info(
        "Global rate limit: %d requests / %ds per client",
        settings.rate_limit_requests,
        settings.rate_limit_window,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("CampusGuard shutting down...")

    verifier = getattr(app.state, "identity_verifier", None)
    if verifier is not None:
        await verifier.aclose()

    await dispose_engine()

    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        RateLimitExceededError → 429 with Retry-After
        DatabaseError          → 500 generic message
        CampusGuardError       → exc.status_code (400 / 401 / 403 / 404)
        Exception (fallback)   → 500 internal/error

    Every body has the shape of ErrorResponse; `error` carries the ErrorCode
    value. Stack traces and SQL never reach the client.
    """

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        rid = request_id_var.get("")
        return JSONResponse(
            status_code=429,
            content={
                "error": exc.code.value,
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.code.value,
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(CampusGuardError)
    async def handle_campusguard_error(request: Request, exc: CampusGuardError):
        """Validation, conflict, auth and not-found failures."""
        rid = request_id_var.get("")
        if exc.status_code >= 500:
            logger.error("[%s] %s: %s", rid, exc.code.value, exc.message)
        else:
            logger.info("[%s] %s: %s", rid, exc.code.value, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.code.value,
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Catch-all. The stack trace is logged server-side only."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": ErrorCode.INTERNAL.value,
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Each call builds a fresh rate limiter, so tests can create isolated apps.
    """
    app = FastAPI(
        title="CampusGuard API",
        description=(
            "Access control for the school administration app: token verification, "
            "role checks, invitations, admin promotion, emergency suspension and "
            "recovery of deleted data."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.rate_limiter = SlidingWindowRateLimiter(
        max_buckets=settings.rate_limit_max_buckets,
        sweep_every=settings.rate_limit_sweep_every,
    )
    # Security events commit through their own sessions
    app.state.session_factory = async_session_factory

    # ── Register Middleware ───────────────────────────────────────────────
    # Middleware executes in REVERSE order of addition:
    # RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-Total-Count",
            "Retry-After",
        ],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(me.router)
    app.include_router(invites.router)
    app.include_router(super_admin.router)
    app.include_router(recovery.router)
    app.include_router(security.router)
    app.include_router(documents.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
# uvicorn expects `campusguard.main:app` to be importable
app = create_app()
