# Services package init
"""
CampusGuard — Services Layer
==============================

Service Inventory:
    - rate_limiter:     SlidingWindowRateLimiter, client identity resolution
    - roles:            Role vocabulary, role_satisfies, has_write_access
    - identity:         IdentityVerifier (static key / JWKS)
    - auth_guard:       AuthGuard, the admission decision for every request
    - profile_store:    Profile lookups and role grants
    - invite_service:   Invitation lifecycle
    - admin_service:    Promotion, demotion, admin directory
    - recovery_service: Archive, restore, emergency suspension
    - document_store:   Generic documents with soft delete
    - audit_service:    Append-only audit log
    - security_service: Security events (failed logins, denials, rate limits)

Services receive the request's AsyncSession and never commit; the session
dependency commits once the handler returns. The one exception is
SecurityService.report, which commits events for rejected requests through
a session of its own.
"""
