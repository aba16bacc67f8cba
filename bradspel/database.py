"""
Bradspel Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, declarative base and the
       FastAPI session dependency.
How:   One engine per process with connection pooling; one session per request.
       Workflow services commit their own units of work; the dependency commits
       whatever is left on success and rolls back on error.
Who:   Route handlers (via Depends), services (receive the session), Alembic
       (reads Base.metadata) and the test suite (builds its own engine).
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from bradspel.config import settings
from bradspel.exceptions import BradspelError, PersistenceError

logger = logging.getLogger(__name__)


def _engine_options() -> Dict[str, Any]:
    """
    Build engine keyword arguments for the configured backend.

    SQLite's pool classes reject max_overflow, so pool sizing is only
    applied to server databases.
    """
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if not settings.is_sqlite:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,  # Recycle after 1 hour to avoid stale connections
        )
    return options


# ── Engine Configuration ──────────────────────────────────────────────────
engine: AsyncEngine = create_async_engine(settings.database_url, **_engine_options())

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after a service commits,
# without triggering lazy loads outside the async context
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


# ── Base Model ────────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Every model registers with this metadata, which Alembic autogenerate and
    ensure_schema() both read.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits anything the handler left pending
        4. On error: rolls back
        5. Always: closes the session (returns connection to pool)

    The lending workflow commits inside the service (one transaction per
    operation), so the final commit here is usually a no-op.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Unit of Work ──────────────────────────────────────────────────────────
@asynccontextmanager
async def unit_of_work(session: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """
    Run one multi-statement operation as a single transaction.

    What:    Commits when the block completes; rolls back on any error.
    How:     Application errors (NotFoundError, ValidationError, ...) roll back
             and propagate unchanged. SQLAlchemy errors roll back and are
             re-raised as PersistenceError with the detail kept in context.

    Usage:
        async with unit_of_work(db, "lend_game"):
            game.lent_out = True
            db.add(GameHistoryEntry(...))
    """
    try:
        yield session
        await session.commit()
    except BradspelError:
        await session.rollback()
        raise
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("%s failed and was rolled back: %s", operation, str(e), exc_info=True)
        raise PersistenceError(
            context={"operation": operation, "error_type": type(e).__name__},
        ) from e


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def ensure_schema(target: AsyncEngine = engine) -> None:
    """
    Create any missing tables.

    What:  Idempotent schema bootstrap (CREATE TABLE only for absent tables).
    When:  App startup when DB_AUTO_CREATE is set, and in tests.
    Deployments with an existing database use `alembic upgrade head` instead.
    """
    import bradspel.models  # noqa: F401  (registers every table on Base.metadata)

    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
