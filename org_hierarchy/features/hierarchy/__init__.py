"""Hierarchy feature: node model, tree stores and the hierarchy engine."""

from __future__ import annotations

from .engine import HierarchyEngine
from .models import HierarchyClosure, HierarchyNode
from .registry import get_hierarchy_engine, get_tree_store
from .repository import NodeRepository, get_node_repository
from .schemas import NodePageResponse, NodeResponse, NodeTreeResponse, PageRequest
from .stores import AdjacencyListStore, ClosureTableStore, MaterializedPathStore, TreeStore

__all__ = [
    "AdjacencyListStore",
    "ClosureTableStore",
    "HierarchyClosure",
    "HierarchyEngine",
    "HierarchyNode",
    "MaterializedPathStore",
    "NodePageResponse",
    "NodeRepository",
    "NodeResponse",
    "NodeTreeResponse",
    "PageRequest",
    "TreeStore",
    "get_hierarchy_engine",
    "get_node_repository",
    "get_tree_store",
]
