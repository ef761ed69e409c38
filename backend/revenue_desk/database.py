"""
Database configuration and engine construction.
Async SQLAlchemy 2 engine over aiosqlite (default), asyncpg or aiomysql.

The engine is owned by whoever builds it (DatabaseStorage); nothing here is a
module-level singleton.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator
from sqlalchemy import event, text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from revenue_desk.errors import (
    BackendUnavailable, ReferenceViolation, RevenueDeskError, UniqueConstraintViolation,
)

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def _get_connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"timeout": 30}
    if url.startswith("mysql"):
        return {"connect_timeout": 30}
    return {"timeout": 30}  # Fail fast if DB unreachable


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with per-dialect connection options."""
    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=echo, connect_args=_get_connect_args(url))
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        connect_args=_get_connect_args(url),
    )


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _classify_integrity_error(exc: IntegrityError) -> RevenueDeskError:
    detail = str(exc.orig).lower()
    if "foreign key" in detail:
        return ReferenceViolation()
    if "unique" in detail or "duplicate" in detail:
        return UniqueConstraintViolation()
    return RevenueDeskError()


@asynccontextmanager
async def session_scope(sessionmaker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """
    One unit of work with auto-commit/rollback. Driver errors are translated
    into the storage error taxonomy so callers never see SQLAlchemy types.
    """
    try:
        async with sessionmaker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
    except IntegrityError as exc:
        logger.info(f"Integrity error: {exc.orig}")
        raise _classify_integrity_error(exc) from exc
    except (OperationalError, InterfaceError) as exc:
        logger.error(f"Database unavailable: {exc}", exc_info=True)
        raise BackendUnavailable() from exc


async def init_db(engine: AsyncEngine) -> None:
    """
    Create all tables defined in models.
    Uses create_all which is safe — it only creates tables that don't exist yet.
    """
    # Import models to ensure they are registered with Base.metadata
    import revenue_desk.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    logger.info(f"Database initialized with {len(Base.metadata.tables)} tables: "
                f"{', '.join(Base.metadata.tables.keys())}")


async def check_db_connection(engine: AsyncEngine) -> bool:
    """Test database connectivity."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
