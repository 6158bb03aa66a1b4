"""Node management commands.

Every command works on one hierarchy kind, selected with ``--kind``:

Example:bash
    org-hierarchy nodes --kind department create "Engineering"
    org-hierarchy nodes --kind department create "Platform" --parent 1
    org-hierarchy nodes --kind department move 2 --parent 3
    org-hierarchy nodes --kind department tree 1 --max-depth 2
    org-hierarchy nodes --kind job search eng --format json
"""

import sys
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, TypeVar

import click

from org_hierarchy.cli.utils import (
    coro,
    echo_json,
    error,
    header,
    info,
    node_table,
    node_tree,
    success,
    warning,
)
from org_hierarchy.core.database import SearchResult
from org_hierarchy.core.enums import HierarchyKind
from org_hierarchy.core.exceptions import AppException
from org_hierarchy.features.hierarchy import (
    HierarchyEngine,
    HierarchyNode,
    NodePageResponse,
    NodeResponse,
    get_hierarchy_engine,
)
from org_hierarchy.infra.database import close_database, get_async_session

T = TypeVar("T")

FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"]),
    default="table",
    help="Output format",
)


def paging_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Add --limit, --offset and --sort to a command."""
    f = click.option(
        "--sort",
        type=click.Choice(["name", "-name", "id", "-id"]),
        default=None,
        help="Sort key (default: natural order)",
    )(f)
    f = click.option("--offset", default=0, type=int, help="Items to skip")(f)
    return click.option("--limit", default=None, type=int, help="Page size (default: PAGINATION_DEFAULT_LIMIT)")(f)


def handle_app_errors(f: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Print hierarchy errors as one line and exit with status 1."""

    @wraps(f)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        try:
            return await f(*args, **kwargs)
        except AppException as e:
            error(f"{e.title}: {e.detail}")
            sys.exit(1)

    return wrapper


@asynccontextmanager
async def hierarchy_engine(kind: str) -> AsyncIterator[HierarchyEngine]:
    """Engine on a fresh session; commits on success and disposes the engine."""
    try:
        async with get_async_session() as session:
            yield get_hierarchy_engine(session, HierarchyKind(kind))
            await session.commit()
    finally:
        await close_database()


def print_node(node: HierarchyNode, output_format: str, *, child_count: int | None = None) -> None:
    response = NodeResponse.from_node(node, child_count=child_count)
    if output_format == "json":
        echo_json(response.model_dump(mode="json"))
        return
    node_table([response])


def print_nodes(nodes: list[HierarchyNode], output_format: str, *, empty: str) -> None:
    responses = [NodeResponse.from_node(node) for node in nodes]
    if output_format == "json":
        echo_json([r.model_dump(mode="json") for r in responses])
        return
    if not responses:
        info(empty)
        return
    node_table(responses)
    success(f"Total: {len(responses)} nodes")


def print_page(result: SearchResult[HierarchyNode], output_format: str, *, empty: str) -> None:
    page = NodePageResponse.from_result(result)
    if output_format == "json":
        echo_json(page.model_dump(mode="json"))
        return
    if not page.items:
        info(empty if page.total == 0 else f"No nodes on page {page.page} of {page.pages}")
        return
    node_table(page.items)
    first = page.offset + 1
    success(f"Showing {first}-{page.offset + len(page.items)} of {page.total} nodes")


@click.group(name="nodes")
@click.option(
    "--kind",
    type=click.Choice([k.value for k in HierarchyKind]),
    default=HierarchyKind.DEPARTMENT.value,
    show_default=True,
    help="Hierarchy kind to operate on",
)
@click.pass_context
def nodes(ctx: click.Context, kind: str) -> None:
    """Create, move, delete and query hierarchy nodes."""
    ctx.ensure_object(dict)
    ctx.obj["kind"] = kind


# =============================================================================
# Mutations
# =============================================================================


@nodes.command()
@click.argument("name")
@click.option("--parent", "parent_id", type=int, default=None, help="Parent node id (omit for a root)")
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def create(obj: dict[str, Any], name: str, parent_id: int | None, output_format: str) -> None:
    """Create a node."""
    async with hierarchy_engine(obj["kind"]) as engine:
        node = await engine.create(name, parent_id)
        if output_format == "table":
            success(f"Created {obj['kind']} node {node.id}")
        print_node(node, output_format)


@nodes.command()
@click.argument("node_id", type=int)
@click.argument("name")
@click.pass_obj
@coro
@handle_app_errors
async def rename(obj: dict[str, Any], node_id: int, name: str) -> None:
    """Rename a node, keeping its parent."""
    async with hierarchy_engine(obj["kind"]) as engine:
        node = await engine.rename(node_id, name)
        success(f"Renamed node {node.id} to {node.name!r}")


@nodes.command()
@click.argument("node_id", type=int)
@click.option("--parent", "parent_id", type=int, default=None, help="New parent node id")
@click.option("--root", "make_root", is_flag=True, default=False, help="Make the node a root")
@click.pass_obj
@coro
@handle_app_errors
async def move(obj: dict[str, Any], node_id: int, parent_id: int | None, make_root: bool) -> None:
    """Move a node and its subtree under a new parent."""
    if (parent_id is None) == (not make_root):
        error("Pass exactly one of --parent or --root")
        sys.exit(2)

    async with hierarchy_engine(obj["kind"]) as engine:
        node = await engine.move(node_id, None if make_root else parent_id)
        target = "a root" if node.parent_id is None else f"a child of {node.parent_id}"
        success(f"Node {node.id} is now {target}")


@nodes.command()
@click.argument("node_id", type=int)
@click.option("--cascade", is_flag=True, default=False, help="Delete the whole subtree")
@click.pass_obj
@coro
@handle_app_errors
async def delete(obj: dict[str, Any], node_id: int, cascade: bool) -> None:
    """Delete a node (or, with --cascade, its subtree)."""
    async with hierarchy_engine(obj["kind"]) as engine:
        # Without the flag the configured HIERARCHY_CASCADE_DELETE_DEFAULT applies
        deleted = await engine.delete(node_id, cascade=True if cascade else None)
        if len(deleted) > 1:
            warning(f"Deleted {len(deleted)} nodes: {', '.join(map(str, deleted))}")
        else:
            success(f"Deleted node {node_id}")


# =============================================================================
# Queries
# =============================================================================


@nodes.command()
@click.argument("node_id", type=int)
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def show(obj: dict[str, Any], node_id: int, output_format: str) -> None:
    """Show one node with its child count."""
    async with hierarchy_engine(obj["kind"]) as engine:
        response = await engine.describe(node_id)
        if output_format == "json":
            echo_json(response.model_dump(mode="json"))
            return
        node_table([response])
        info(f"Children: {response.child_count}")


@nodes.command(name="list")
@click.option("--roots", "roots_only", is_flag=True, default=False, help="Only root nodes")
@paging_options
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def list_cmd(
    obj: dict[str, Any],
    roots_only: bool,
    limit: int | None,
    offset: int,
    sort: str | None,
    output_format: str,
) -> None:
    """List the nodes of a kind."""
    async with hierarchy_engine(obj["kind"]) as engine:
        result = await engine.list_nodes_page(roots_only=roots_only, limit=limit, offset=offset, sort=sort)
        print_page(result, output_format, empty=f"No {obj['kind']} nodes")


@nodes.command()
@click.argument("node_id", type=int)
@paging_options
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def children(
    obj: dict[str, Any],
    node_id: int,
    limit: int | None,
    offset: int,
    sort: str | None,
    output_format: str,
) -> None:
    """List the direct children of a node."""
    async with hierarchy_engine(obj["kind"]) as engine:
        result = await engine.get_children_page(node_id, limit=limit, offset=offset, sort=sort)
        print_page(result, output_format, empty=f"Node {node_id} has no children")


@nodes.command()
@click.argument("node_id", type=int)
@paging_options
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def descendants(
    obj: dict[str, Any],
    node_id: int,
    limit: int | None,
    offset: int,
    sort: str | None,
    output_format: str,
) -> None:
    """List every node below a node, nearest levels first."""
    async with hierarchy_engine(obj["kind"]) as engine:
        result = await engine.get_descendants_page(node_id, limit=limit, offset=offset, sort=sort)
        print_page(result, output_format, empty=f"Node {node_id} has no descendants")


@nodes.command()
@click.argument("node_id", type=int)
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def ancestors(obj: dict[str, Any], node_id: int, output_format: str) -> None:
    """List the ancestors of a node, parent first."""
    async with hierarchy_engine(obj["kind"]) as engine:
        found = await engine.get_ancestors(node_id)
        print_nodes(found, output_format, empty=f"Node {node_id} is a root")


@nodes.command()
@click.argument("node_id", type=int)
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def parent(obj: dict[str, Any], node_id: int, output_format: str) -> None:
    """Show the direct parent of a node."""
    async with hierarchy_engine(obj["kind"]) as engine:
        print_node(await engine.get_parent(node_id), output_format)


@nodes.command()
@click.argument("pattern")
@paging_options
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def search(
    obj: dict[str, Any],
    pattern: str,
    limit: int | None,
    offset: int,
    sort: str | None,
    output_format: str,
) -> None:
    """Find nodes whose name contains PATTERN (case-insensitive)."""
    async with hierarchy_engine(obj["kind"]) as engine:
        result = await engine.search_page(pattern, limit=limit, offset=offset, sort=sort)
        print_page(result, output_format, empty=f"No nodes match {pattern!r}")


@nodes.command()
@click.argument("node_id", type=int)
@click.option("--max-depth", type=int, default=None, help="Levels of children to show")
@FORMAT_OPTION
@click.pass_obj
@coro
@handle_app_errors
async def tree(obj: dict[str, Any], node_id: int, max_depth: int | None, output_format: str) -> None:
    """Print the subtree rooted at a node."""
    async with hierarchy_engine(obj["kind"]) as engine:
        subtree = await engine.get_subtree(node_id, max_depth=max_depth)
        if output_format == "json":
            echo_json(subtree.model_dump(mode="json"))
            return
        header(f"{obj['kind'].title()} tree")
        for line in node_tree(subtree):
            click.echo(line)
