"""Database management commands.

Example:bash
    # Verify connectivity
    org-hierarchy db init

    # Create the hierarchy tables (SQLite and local development)
    org-hierarchy db init --create-tables

    # Show connection and per-kind strategy configuration
    org-hierarchy db info
"""

import sys

import click
from sqlalchemy import func, select

from org_hierarchy.cli.utils import coro, echo_json, error, header, info, section, success
from org_hierarchy.core.settings import get_db_settings, get_hierarchy_settings
from org_hierarchy.infra.database import close_database, get_async_session, init_database


@click.group(name="db")
def db() -> None:
    """Database management commands."""


@db.command()
@click.option(
    "--create-tables",
    is_flag=True,
    default=False,
    help="Create the hierarchy tables if they do not exist",
)
@coro
async def init(create_tables: bool) -> None:
    """Initialize database connection and verify connectivity."""
    info("Initializing database connection...")
    info(f"Connecting to: {get_db_settings().safe_url}")

    try:
        await init_database(create_tables=create_tables)
    except Exception as e:
        error(f"Failed to connect to database: {e}")
        sys.exit(1)
    finally:
        await close_database()

    success("Database connected successfully!")
    if create_tables:
        success("Hierarchy tables are in place")


@db.command(name="info")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)
@coro
async def info_cmd(output_format: str) -> None:
    """Show connection settings, strategies and node counts per kind."""
    from org_hierarchy.features.hierarchy.models import HierarchyNode

    db_settings = get_db_settings()
    strategies = get_hierarchy_settings().strategy_map()

    try:
        async with get_async_session() as session:
            stmt = select(HierarchyNode.kind, func.count(HierarchyNode.id)).group_by(HierarchyNode.kind)
            counts = {kind: count for kind, count in (await session.execute(stmt)).all()}
    except Exception as e:
        error(f"Failed to get database info: {e}")
        sys.exit(1)
    finally:
        await close_database()

    kinds = [
        {"kind": str(kind), "strategy": str(strategy), "nodes": counts.get(kind, 0)}
        for kind, strategy in strategies.items()
    ]

    if output_format == "json":
        echo_json({"url": db_settings.safe_url, "kinds": kinds})
        return

    header("Database Information")
    section("Connection Settings")
    click.echo(f"  URL:          {db_settings.safe_url}")
    section("Hierarchies")
    for row in kinds:
        click.echo(f"  {row['kind']:<12} {row['strategy']:<20} {row['nodes']} nodes")
