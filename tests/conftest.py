"""
Bradspel Backend — Test Configuration (conftest.py)
====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets its own SQLite database file (aiosqlite) with the full
       schema, so services run real SQL and real transactions.

Fixture Hierarchy:
    db_engine ─▶ session_factory ─▶ db_session
                                 └▶ test_client (app with get_db_session overridden)
    game, member, staff: seeded rows
    staff_headers / member_headers: Authorization headers with fresh access tokens
"""

import os
import tempfile

# Override settings for testing BEFORE any bradspel import reads them
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-for-jwt-signing-0123456789"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="bradspel_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"

from typing import AsyncGenerator  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from bradspel.database import ensure_schema, get_db_session  # noqa: E402
from bradspel.models import ROLE_STAFF, Game, User  # noqa: E402
from bradspel.services.auth_service import auth_service, hash_password  # noqa: E402

STAFF_PASSWORD = "staff-password"
MEMBER_PASSWORD = "member-password"


# ══════════════════════════════════════════════════════════════════════════
# Database Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A fresh SQLite file with every table created."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await ensure_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def mock_db_session():
    """
    A mock AsyncSession for tests that only need to observe calls
    (commit/rollback) without running SQL.
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


# ══════════════════════════════════════════════════════════════════════════
# Seed Data
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def game(db_session) -> Game:
    game = Game(title_sv="Fia med knuff", title_en="Ludo", players="2-4", time="30")
    db_session.add(game)
    await db_session.commit()
    return game


@pytest_asyncio.fixture
async def member(db_session) -> User:
    user = User(
        first_name="Alva",
        last_name="Lind",
        phone="0701112233",
        email="alva@example.com",
        password_hash=hash_password(MEMBER_PASSWORD),
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def staff(db_session) -> User:
    user = User(
        first_name="Sam",
        last_name="Berg",
        phone="0709998877",
        email="staff@example.com",
        password_hash=hash_password(STAFF_PASSWORD),
        role=ROLE_STAFF,
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest.fixture
def staff_headers(staff):
    return {"Authorization": f"Bearer {auth_service.create_access_token(staff)}"}


@pytest.fixture
def member_headers(member):
    return {"Authorization": f"Bearer {auth_service.create_access_token(member)}"}


@pytest.fixture
def sample_image_bytes():
    """A 1x1 RGBA PNG."""
    return bytes.fromhex(
        "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
        "1f15c4890000000d49444154789c63000100000500010d0a2db4000000"
        "0049454e44ae426082"
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient talking to a fresh app instance.

    get_db_session is overridden to hand out sessions on the test database.
    raise_app_exceptions=False lets tests observe the 500 responses produced
    by the catch-all handler.
    """
    from bradspel.main import create_app

    app = create_app()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
