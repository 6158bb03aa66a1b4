"""Alembic migration environment for the async engine.

Features:
- compare_type support for detecting column type changes
- Batch mode auto-detection for SQLite compatibility
- Object filtering to exclude system tables
- Empty migration detection to skip no-op revisions

The database URL always comes from DatabaseSettings (DATABASE_URL or the
DB_* variables), never from alembic.ini.
"""

from __future__ import annotations

import asyncio
from logging.config import fileConfig
from typing import TYPE_CHECKING, Any

from sqlalchemy import pool
from sqlalchemy.ext.asyncio import async_engine_from_config

from alembic import context

# Importing the models registers both hierarchy tables on Base.metadata
from org_hierarchy.core.database.base import Base
from org_hierarchy.core.settings import get_db_settings
from org_hierarchy.features.hierarchy import models  # noqa: F401

if TYPE_CHECKING:
    from collections.abc import Iterable

    from alembic.operations.ops import MigrationScript
    from alembic.runtime.migration import MigrationContext
    from sqlalchemy.engine import Connection

# Alembic Config object
config = context.config

# Setup Python logging from alembic.ini
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Target metadata for autogenerate
target_metadata = Base.metadata

config.set_main_option("sqlalchemy.url", get_db_settings().url.replace("%", "%%"))


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a value passed programmatically via config.attributes, or the default."""
    return config.attributes.get(key, default)


COMPARE_TYPE = get_config_value("compare_type", True)
RENDER_AS_BATCH = get_config_value("render_as_batch", False)


def include_object(
    obj: Any,
    name: str | None,
    type_: str,
    reflected: bool,
    compare_to: Any,
) -> bool:
    """Control which objects are included in autogenerate."""
    # Skip alembic's own table
    if type_ == "table" and name == "alembic_version":
        return False

    _ = reflected, compare_to
    # Skip PostgreSQL system schemas
    return not (hasattr(obj, "schema") and obj.schema in ("pg_catalog", "information_schema"))


def process_revision_directives(
    context: MigrationContext,
    revision: str | tuple[str, ...] | Iterable[str | None] | Iterable[str],
    directives: list[MigrationScript],
) -> None:
    """Skip writing a revision when autogenerate detects no changes."""
    _ = context, revision
    if getattr(config.cmd_opts, "autogenerate", False) and directives:
        script = directives[0]
        if script.upgrade_ops is not None and script.upgrade_ops.is_empty():
            directives[:] = []
            print("No changes detected, skipping migration creation")


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (generate SQL only)."""
    url = config.get_main_option("sqlalchemy.url")

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=COMPARE_TYPE,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """Configure and run migrations with connection."""
    # Auto-detect SQLite for batch mode
    use_batch_mode = connection.dialect.name == "sqlite" or RENDER_AS_BATCH

    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=COMPARE_TYPE,
        include_object=include_object,
        render_as_batch=use_batch_mode,
        process_revision_directives=process_revision_directives,
    )

    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Run migrations with an async engine, provided or built from config."""
    engine = get_config_value("engine")

    if engine is not None:
        async with engine.connect() as connection:
            await connection.run_sync(do_run_migrations)
    else:
        connectable = async_engine_from_config(
            config.get_section(config.config_ini_section, {}),
            prefix="sqlalchemy.",
            poolclass=pool.NullPool,
        )

        async with connectable.connect() as connection:
            await connection.run_sync(do_run_migrations)

        await connectable.dispose()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode."""
    asyncio.run(run_async_migrations())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
