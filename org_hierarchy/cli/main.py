"""Main CLI entry point for org-hierarchy management commands."""

import click

from org_hierarchy import __version__
from org_hierarchy.cli.commands import database, nodes
from org_hierarchy.infra.logging.config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="org-hierarchy")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Org Hierarchy CLI - manage department, job, team and project trees.

    Connection settings come from DATABASE_URL (or the DB_* variables) and
    the storage strategy of each kind from HIERARCHY_<KIND>_STRATEGY.

    \b
    Command Groups:
      db         Database connectivity and table creation
      nodes      Create, move, delete and query nodes

    \b
    Quick Start:
      org-hierarchy db init --create-tables
      org-hierarchy nodes create "Engineering"
      org-hierarchy nodes create "Platform" --parent 1
      org-hierarchy nodes tree 1
    """
    ctx.ensure_object(dict)


cli.add_command(database.db)
cli.add_command(nodes.nodes)


def main() -> None:
    """Entry point for CLI."""
    setup_logging()
    cli(obj={})


if __name__ == "__main__":
    main()
