"""
CampusGuard — Custom Exception Hierarchy
==========================================

What:  Application-specific exceptions and the machine-readable error codes
       they carry.
How:   Each exception carries a message, an optional context dict, an HTTP
       status and an ErrorCode. Global exception handlers (registered in
       main.py) turn them into structured JSON error responses.
Who:   Raised by the guard, services and routes; caught by global handlers.

Exception Hierarchy:
    CampusGuardError (base)
    ├── ValidationError          → 400 Bad Request
    ├── ConflictError            → 400 Bad Request (entity invariant violated)
    ├── AuthError                → 401 / 403 / 404 (chosen per failure)
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error

Callers distinguish failures by `code` (an ErrorCode member), never by
inspecting `message`.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Machine-readable error codes returned in the `error` field of responses."""

    # Authentication / authorization
    MISSING_TOKEN = "auth/missing-token"
    INVALID_TOKEN = "auth/invalid-token"
    TOKEN_EXPIRED = "auth/token-expired"
    PROFILE_NOT_FOUND = "auth/profile-not-found"
    FORBIDDEN = "auth/forbidden"

    # Invitations
    INVITE_INVALID_EMAIL = "invite/invalid-email"
    INVITE_INVALID_ROLE = "invite/invalid-role"
    INVITE_INVALID_TOKEN = "invite/invalid-token"
    INVITE_NOT_FOUND = "invite/not-found"
    INVITE_EMAIL_MISMATCH = "invite/email-mismatch"
    INVITE_NOT_PENDING = "invite/not-pending"

    # Privilege changes
    USER_NOT_FOUND = "user/not-found"
    ALREADY_ADMIN = "promotion/already-admin"
    NOT_ADMIN = "promotion/not-admin"
    CANNOT_DEMOTE_SUPER_ADMIN = "promotion/cannot-demote-super-admin"

    # Recovery
    ENTRY_NOT_FOUND = "recovery/not-found"
    ALREADY_RESTORED = "recovery/already-restored"
    UNSUPPORTED_SNAPSHOT_VERSION = "recovery/unsupported-snapshot-version"
    DOCUMENT_NOT_FOUND = "document/not-found"

    # Suspensions
    CANNOT_SUSPEND_SUPER_ADMIN = "suspension/cannot-suspend-super-admin"
    NOT_SUSPENDED = "suspension/not-suspended"

    # Security events
    SECURITY_EVENT_NOT_FOUND = "security/not-found"
    SECURITY_EVENT_ALREADY_RESOLVED = "security/already-resolved"

    # Generic
    VALIDATION = "validation/error"
    RATE_LIMITED = "rate/limited"
    INTERNAL = "internal/error"


class CampusGuardError(Exception):
    """
    Base exception for all CampusGuard application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        context:     Additional debug info (logged, returned only where the handler allows)
        code:        ErrorCode identifying the failure
        status_code: HTTP status the global handler responds with
    """

    status_code: int = 500
    default_code: ErrorCode = ErrorCode.INTERNAL

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        code: Optional[ErrorCode] = None,
    ):
        self.message = message
        self.context = context or {}
        self.code = code or self.default_code
        super().__init__(self.message)


class ValidationError(CampusGuardError):
    """
    Raised when client input fails validation.

    HTTP: 400 Bad Request

    Example response:
        {
            "error": "invite/invalid-email",
            "message": "Valid email is required",
            "details": {"field": "email"}
        }
    """

    status_code = 400
    default_code = ErrorCode.VALIDATION

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[ErrorCode] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx, code=code)
        self.field = field


class ConflictError(CampusGuardError):
    """
    Raised when a well-formed request violates an entity invariant.

    When: already admin, not admin, cannot demote super admin, already
          restored, invite no longer pending.
    HTTP: 400 Bad Request
    """

    status_code = 400
    default_code = ErrorCode.VALIDATION


class AuthError(CampusGuardError):
    """
    Raised by the auth guard when a caller cannot be admitted.

    The status is chosen per failure:
        401 — missing, malformed, invalid or expired credential
        403 — inactive account, insufficient role, no write access
        404 — verified caller without a profile

    principal_id and principal_email identify a verified caller that was
    denied; they are kept off the response body.
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        principal_id: Optional[str] = None,
        principal_email: Optional[str] = None,
    ):
        super().__init__(message=message, context=context, code=code)
        self.status_code = status_code
        self.principal_id = principal_id
        self.principal_email = principal_email


class NotFoundError(CampusGuardError):
    """
    Raised when a requested resource does not exist.

    HTTP: 404 Not Found
    """

    status_code = 404
    default_code = ErrorCode.INTERNAL

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx, code=code)


class DatabaseError(CampusGuardError):
    """
    Raised when database operations fail unexpectedly.

    HTTP: 500 Internal Server Error

    The message returned to the client is always generic; the context is
    logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, code=ErrorCode.INTERNAL)


class RateLimitExceededError(CampusGuardError):
    """
    Raised when a client exceeds a rate limit.

    HTTP: 429 Too Many Requests, with a Retry-After header in seconds.
    """

    status_code = 429
    default_code = ErrorCode.RATE_LIMITED

    def __init__(
        self,
        retry_after: int = 60,
        action: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Too many requests. Please try again later."
        ctx = context or {}
        ctx["retry_after"] = retry_after
        if action:
            ctx["action"] = action
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


# ── Result code → exception ───────────────────────────────────────────────
# Services report expected failures as result objects carrying an ErrorCode.
# Routes translate them with error_for_code(); the codes listed here map to
# 404, every other code maps to a 400 ConflictError.
_NOT_FOUND_CODES = {
    ErrorCode.USER_NOT_FOUND: "user",
    ErrorCode.ENTRY_NOT_FOUND: "deleted data entry",
    ErrorCode.INVITE_NOT_FOUND: "invite",
    ErrorCode.DOCUMENT_NOT_FOUND: "document",
    ErrorCode.SECURITY_EVENT_NOT_FOUND: "security event",
}


def error_for_code(code: ErrorCode, message: str, resource_id: Optional[str] = None) -> CampusGuardError:
    """Build the exception a route raises for a structured service failure."""
    if code in _NOT_FOUND_CODES:
        return NotFoundError(
            resource=_NOT_FOUND_CODES[code],
            resource_id=resource_id,
            code=code,
            message=message,
        )
    return ConflictError(message=message, code=code)
