"""
CampusGuard — Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── db_engine: In-memory SQLite engine with every table created
    ├── session_factory: Session factory bound to db_engine
    ├── db_session: One open session for service-level tests
    ├── make_token: Signs HS256 test credentials
    ├── seed_profile: Commits a Profile through its own session
    ├── app: Fresh FastAPI app wired to db_engine
    └── client: HTTPX AsyncClient talking to `app`
"""

import os

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run before any campusguard import: settings are read at import time
TEST_JWT_KEY = "campusguard-test-signing-secret"

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["AUTH_VERIFIER"] = "static"
os.environ["AUTH_JWT_KEY"] = TEST_JWT_KEY
os.environ["AUTH_JWT_ALGORITHMS"] = "HS256"
os.environ["INVITE_VERIFY_LIMIT"] = "5"
os.environ["INVITE_ACCEPT_LIMIT"] = "5"
os.environ["LOG_LEVEL"] = "WARNING"

import time
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import campusguard.models  # noqa: F401
from campusguard.database import Base, get_db_session
from campusguard.models.profile import Profile
from campusguard.services.identity import StaticKeyIdentityVerifier


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    """
    In-memory SQLite engine shared by every session of one test.

    StaticPool keeps a single connection, so the schema and data survive
    across sessions.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    One session for service-level tests.

    Services only flush; assertions read state through the same session.
    """
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Identity Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_token():
    """
    Signs a test credential accepted by the static verifier.

    Usage:
        token = make_token("uid-1", email="a@school.test")
        headers = {"Authorization": f"Bearer {token}"}
    """

    def _make(
        uid: str,
        email: Optional[str] = None,
        email_verified: bool = True,
        expires_in: int = 3600,
        key: str = TEST_JWT_KEY,
        **extra,
    ) -> str:
        now = int(time.time())
        claims = {
            "sub": uid,
            "email_verified": email_verified,
            "iat": now,
            "exp": now + expires_in,
            **extra,
        }
        if email is not None:
            claims["email"] = email
        return jwt.encode(claims, key, algorithm="HS256")

    return _make


@pytest.fixture
def auth_header(make_token):
    """Authorization header for a uid/email pair."""

    def _header(uid: str, email: Optional[str] = None, **kwargs) -> dict:
        return {"Authorization": f"Bearer {make_token(uid, email=email, **kwargs)}"}

    return _header


@pytest.fixture
def seed_profile(session_factory):
    """
    Commits a profile through a short-lived session.

    API tests seed through this so no session stays open across requests.
    """

    async def _seed(
        uid: str,
        email: str,
        roles: List[str],
        status: str = "active",
    ) -> Profile:
        async with session_factory() as session:
            profile = Profile(
                uid=uid,
                email=email,
                display_name=email.split("@")[0],
                roles=roles,
                status=status,
            )
            session.add(profile)
            await session.commit()
            return profile

    return _seed


# ══════════════════════════════════════════════════════════════════════════
# Application Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(session_factory):
    """
    A fresh application per test (fresh rate limiter) using the test engine.

    ASGITransport skips lifespan events, so the verifier is installed here.
    Security events are written through `session_factory` as well.
    """
    from campusguard.main import create_app

    application = create_app()
    application.state.session_factory = session_factory
    application.state.identity_verifier = StaticKeyIdentityVerifier(
        key=TEST_JWT_KEY,
        algorithms=["HS256"],
    )

    async def _test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _test_db_session
    return application


@pytest_asyncio.fixture
async def client(app):
    """
    HTTPX AsyncClient routed straight to the app.

    Usage:
        async def test_health(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
