"""Tree store implementations, one per storage strategy."""

from __future__ import annotations

from .adjacency import AdjacencyListStore
from .base import TreeStore
from .closure_table import ClosureTableStore
from .materialized_path import MaterializedPathStore

__all__ = [
    "AdjacencyListStore",
    "ClosureTableStore",
    "MaterializedPathStore",
    "TreeStore",
]
