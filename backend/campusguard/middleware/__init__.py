# Middleware package init
"""
CampusGuard — Middleware Package
==================================

What:  Cross-cutting concerns applied to every request.

Middleware Chain (order matters!):
    Request → [Rate Limit] → [Request ID] → [Logging] → [GZip] → [CORS] → Route Handler

    1. Rate Limit first: reject per-IP floods before any processing
    2. Request ID: correlation id for logs, error bodies and the response header
    3. Logging: access log line with status and duration

    The order is reversed for responses.
"""
