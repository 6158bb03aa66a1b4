"""Output formatting utilities for CLI commands."""

import json
from collections.abc import Iterable, Sequence
from typing import Any

import click

from org_hierarchy.features.hierarchy.schemas import NodeResponse, NodeTreeResponse


def success(message: str) -> None:
    """Print a success message in green."""
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    """Print an error message in red."""
    click.secho(f"✗ {message}", fg="red", err=True)


def warning(message: str) -> None:
    """Print a warning message in yellow."""
    click.secho(f"⚠ {message}", fg="yellow")


def info(message: str) -> None:
    """Print an info message in blue."""
    click.secho(f"ℹ {message}", fg="blue")


def header(message: str) -> None:
    """Print a header message in cyan bold."""
    click.secho(f"\n{message}", fg="cyan", bold=True)


def section(title: str) -> None:
    """Print a section divider."""
    click.secho(f"\n{'=' * 60}", fg="white", dim=True)
    click.secho(title, fg="white", bold=True)
    click.secho("=" * 60, fg="white", dim=True)


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def node_table(nodes: Sequence[NodeResponse]) -> None:
    """Print nodes as an aligned table."""
    click.echo()
    click.echo(f"{'ID':<8} {'Parent':<8} {'Name':<40} {'Path':<30}")
    click.echo("-" * 88)
    for node in nodes:
        parent = "-" if node.parent_id is None else str(node.parent_id)
        click.echo(f"{node.id:<8} {parent:<8} {node.name:<40} {node.path or '':<30}")
    click.echo()


def node_tree(tree: NodeTreeResponse) -> Iterable[str]:
    """Render a nested node as indented lines."""
    stack = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        yield f"{'  ' * depth}{node.name} [{node.id}]"
        stack.extend((child, depth + 1) for child in reversed(node.children))
