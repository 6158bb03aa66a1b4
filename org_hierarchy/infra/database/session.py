"""Database session management for the async SQLAlchemy engine."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from org_hierarchy.core.settings import get_db_settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from org_hierarchy.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def configure_sqlite_engine(engine: AsyncEngine) -> AsyncEngine:
    """Make SQLite honour foreign keys and SAVEPOINT-based nested transactions.

    pysqlite's own transaction handling swallows BEGIN and breaks
    ``session.begin_nested()``; the driver is switched to autocommit mode and
    SQLAlchemy emits BEGIN itself.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
        _ = connection_record
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql("BEGIN")

    return engine


def build_engine(db_settings: DatabaseSettings | None = None) -> AsyncEngine:
    """Create an async engine from settings without caching it."""
    settings = db_settings or get_db_settings()
    engine = create_async_engine(settings.url, **settings.sqlalchemy_engine_kwargs())
    if settings.is_sqlite:
        configure_sqlite_engine(engine)
    return engine


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine, _session_factory
    if _engine is None:
        _engine = build_engine()
        _session_factory = async_sessionmaker(
            _engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.debug("Database engine created", extra={"url": get_db_settings().safe_url})
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    get_engine()
    assert _session_factory is not None
    return _session_factory


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Get async database session.

    Yields:
        Database session that is automatically closed.

    Example:
        async with get_async_session() as session:
            engine = get_hierarchy_engine(session, HierarchyKind.DEPARTMENT)
            node = await engine.create("Engineering")
    """
    async with get_session_factory()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_database(*, create_tables: bool = False) -> None:
    """Verify connectivity and optionally create the hierarchy tables.

    Table creation is meant for SQLite and local development; production
    schemas are managed with Alembic.
    """
    engine = get_engine()
    db_url = get_db_settings().safe_url
    logger.info("Initializing database connection", extra={"url": db_url})

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if create_tables:
                from org_hierarchy.core.database import Base
                from org_hierarchy.features.hierarchy import models  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error("Failed to connect to database", extra={"url": db_url, "error": str(e)})
        raise

    logger.info(
        "Database connection established successfully",
        extra={"url": db_url, "tables_created": create_tables},
    )


async def close_database() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is None:
        return
    logger.info("Closing database connection")
    await _engine.dispose()
    _engine = None
    _session_factory = None


__all__ = [
    "build_engine",
    "close_database",
    "configure_sqlite_engine",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
