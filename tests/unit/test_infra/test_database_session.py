"""Tests for engine construction and the SQLite connection hooks."""

from __future__ import annotations

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from org_hierarchy.core.settings import DatabaseSettings, clear_all_caches
from org_hierarchy.infra.database import build_engine, close_database, get_async_session, init_database


async def test_sqlite_hooks_enable_foreign_keys(db_engine) -> None:
    async with db_engine.connect() as conn:
        enabled = (await conn.execute(text("PRAGMA foreign_keys"))).scalar_one()
    assert enabled == 1


async def test_parent_foreign_key_enforced(db_engine) -> None:
    with pytest.raises(IntegrityError):
        async with db_engine.begin() as conn:
            await conn.execute(
                text(
                    "INSERT INTO hierarchy_nodes (kind, name, parent_id, created_at, updated_at) "
                    "VALUES ('department', 'Orphan', 999, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)"
                )
            )


async def test_savepoint_rollback_keeps_outer_work(db_session) -> None:
    await db_session.execute(
        text("INSERT INTO hierarchy_nodes (kind, name) VALUES ('team', 'Outer')")
    )
    nested = await db_session.begin_nested()
    await db_session.execute(
        text("INSERT INTO hierarchy_nodes (kind, name) VALUES ('team', 'Inner')")
    )
    await nested.rollback()

    names = (await db_session.execute(text("SELECT name FROM hierarchy_nodes"))).scalars().all()
    assert names == ["Outer"]


def test_build_engine_uses_settings_url() -> None:
    engine = build_engine(DatabaseSettings(dsn="sqlite+aiosqlite:///:memory:"))
    assert engine.url.drivername == "sqlite+aiosqlite"


async def test_init_database_creates_tables(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'hierarchy.db'}")
    clear_all_caches()

    try:
        await init_database(create_tables=True)
        async with get_async_session() as session:
            count = (await session.execute(text("SELECT COUNT(*) FROM hierarchy_closure"))).scalar_one()
    finally:
        await close_database()

    assert count == 0
