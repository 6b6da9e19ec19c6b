"""
CampusGuard — Application Package Initializer
===============================================

What: Trust and access-control core of the school administration backend.
Who:  Imported by uvicorn (campusguard.main:app), Alembic and pytest.

Architecture Note:

    ┌─────────────────────────────────────┐
    │    Middleware (rate limit, ids)     │  ← every request
    ├─────────────────────────────────────┤
    │           Routes (API Layer)        │  ← HTTP concerns, auth guard deps
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← roles, invites, privileges, recovery
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
