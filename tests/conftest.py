"""Pytest configuration and shared fixtures.

Organization:
    - Environment: settings caches and env defaults
    - Database Fixtures: in-memory SQLite engine and session
    - Hierarchy Fixtures: engines per storage strategy

Every database fixture uses its own in-memory SQLite database, so node ids
start at 1 in each test.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from org_hierarchy.core.database import Base
from org_hierarchy.core.enums import HierarchyKind, StorageStrategy
from org_hierarchy.core.settings import HierarchySettings, PaginationSettings, clear_all_caches
from org_hierarchy.features.hierarchy import HierarchyEngine, get_tree_store
from org_hierarchy.features.hierarchy import models  # noqa: F401
from org_hierarchy.infra.database import configure_sqlite_engine

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

# Ensure tests run without external infrastructure
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_LEVEL", "WARNING")

ALL_STRATEGIES = list(StorageStrategy)


# ============================================================================
# Environment
# ============================================================================


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Re-read settings from the environment in every test."""
    clear_all_caches()
    yield
    clear_all_caches()


# ============================================================================
# Database Fixtures
# ============================================================================


@asynccontextmanager
async def sqlite_database() -> AsyncIterator[AsyncEngine]:
    """Fresh in-memory database with the hierarchy tables created.

    StaticPool keeps the single connection alive, otherwise every checkout
    would see a new empty database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    configure_sqlite_engine(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


def make_session(engine: AsyncEngine) -> AsyncSession:
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    return factory()


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    """Create async SQLAlchemy engine on an in-memory SQLite database.

    Example:
        async def test_with_db(db_engine):
            async with db_engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
    """
    async with sqlite_database() as engine:
        yield engine


@pytest.fixture
async def file_db_engine(tmp_path) -> AsyncGenerator[AsyncEngine]:
    """SQLite file database for tests that reopen sessions to see what was committed."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hierarchy.db'}")
    configure_sqlite_engine(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Async session on the test database, rolled back after the test."""
    async with make_session(db_engine) as session:
        try:
            yield session
        finally:
            await session.rollback()


# ============================================================================
# Hierarchy Fixtures
# ============================================================================


@pytest.fixture
def hierarchy_settings() -> HierarchySettings:
    return HierarchySettings(max_name_length=100, cascade_delete_default=False)


@pytest.fixture
def pagination_settings() -> PaginationSettings:
    return PaginationSettings(default_limit=2, max_limit=5)


@pytest.fixture
def make_engine(
    db_session: AsyncSession,
    hierarchy_settings: HierarchySettings,
    pagination_settings: PaginationSettings,
) -> Callable[..., HierarchyEngine]:
    """Factory for engines bound to the test session.

    Example:
        def test_x(make_engine):
            engine = make_engine(StorageStrategy.CLOSURE_TABLE, kind=HierarchyKind.JOB)
    """

    def factory(
        strategy: StorageStrategy,
        *,
        kind: HierarchyKind = HierarchyKind.DEPARTMENT,
        settings: HierarchySettings | None = None,
    ) -> HierarchyEngine:
        return HierarchyEngine(
            db_session,
            kind,
            get_tree_store(strategy),
            settings=settings or hierarchy_settings,
            pagination=pagination_settings,
        )

    return factory


@pytest.fixture(params=ALL_STRATEGIES, ids=[str(s) for s in ALL_STRATEGIES])
def strategy(request: pytest.FixtureRequest) -> StorageStrategy:
    """Parametrize a test over every storage strategy."""
    return request.param


@pytest.fixture
def engine(make_engine: Callable[..., HierarchyEngine], strategy: StorageStrategy) -> HierarchyEngine:
    """Department engine for the parametrized strategy."""
    return make_engine(strategy)


async def build_tree(engine: HierarchyEngine) -> dict[str, int]:
    """Create a small fixed department tree and return name -> id.

        Engineering(1)
        ├── Software(2)
        │   ├── Backend(4)
        │   └── Frontend(5)
        │       └── Web(7)
        └── Hardware(3)
    Sales(6)
    """
    ids: dict[str, int] = {}
    for name, parent in [
        ("Engineering", None),
        ("Software", "Engineering"),
        ("Hardware", "Engineering"),
        ("Backend", "Software"),
        ("Frontend", "Software"),
        ("Sales", None),
        ("Web", "Frontend"),
    ]:
        node = await engine.create(name, ids[parent] if parent else None)
        ids[name] = node.id
    return ids


@pytest.fixture
def tree_builder() -> Callable[[HierarchyEngine], Awaitable[dict[str, int]]]:
    return build_tree


@pytest.fixture
async def tree(engine: HierarchyEngine) -> dict[str, int]:
    """The fixed department tree built with the parametrized engine."""
    return await build_tree(engine)


@pytest.fixture
def isolated_engine(
    hierarchy_settings: HierarchySettings,
    pagination_settings: PaginationSettings,
) -> Callable[[StorageStrategy], AsyncIterator[HierarchyEngine]]:
    """Engines that each own a separate database, so ids line up across strategies.

    Example:
        async with isolated_engine(StorageStrategy.ADJACENCY_LIST) as engine:
            await engine.create("Engineering")
    """

    @asynccontextmanager
    async def factory(strategy: StorageStrategy) -> AsyncIterator[HierarchyEngine]:
        async with sqlite_database() as db, make_session(db) as session:
            yield HierarchyEngine(
                session,
                HierarchyKind.DEPARTMENT,
                get_tree_store(strategy),
                settings=hierarchy_settings,
                pagination=pagination_settings,
            )

    return factory
