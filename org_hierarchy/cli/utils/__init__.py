"""CLI utilities for running async operations and formatting output."""

from org_hierarchy.cli.utils.async_runner import coro
from org_hierarchy.cli.utils.formatters import (
    echo_json,
    error,
    header,
    info,
    node_table,
    node_tree,
    section,
    success,
    warning,
)

__all__ = [
    "coro",
    "echo_json",
    "error",
    "header",
    "info",
    "node_table",
    "node_tree",
    "section",
    "success",
    "warning",
]
