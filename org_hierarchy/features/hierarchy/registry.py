"""Strategy registry: resolve the tree store and engine for a hierarchy kind."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from org_hierarchy.core.enums import StorageStrategy
from org_hierarchy.core.settings import get_hierarchy_settings
from org_hierarchy.features.hierarchy.engine import HierarchyEngine
from org_hierarchy.features.hierarchy.stores import (
    AdjacencyListStore,
    ClosureTableStore,
    MaterializedPathStore,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.core.enums import HierarchyKind
    from org_hierarchy.core.settings import HierarchySettings
    from org_hierarchy.features.hierarchy.stores import TreeStore

logger = logging.getLogger(__name__)

STORE_CLASSES: dict[StorageStrategy, type[TreeStore]] = {
    StorageStrategy.ADJACENCY_LIST: AdjacencyListStore,
    StorageStrategy.MATERIALIZED_PATH: MaterializedPathStore,
    StorageStrategy.CLOSURE_TABLE: ClosureTableStore,
}


@lru_cache(maxsize=None)
def get_tree_store(strategy: StorageStrategy) -> TreeStore:
    """Get the shared store instance for a strategy.

    Stores are stateless, so one instance per strategy serves every session.
    """
    store = STORE_CLASSES[StorageStrategy(strategy)]()
    logger.debug("Tree store created", extra={"strategy": str(strategy)})
    return store


def get_hierarchy_engine(
    session: AsyncSession,
    kind: HierarchyKind,
    *,
    strategy: StorageStrategy | None = None,
    settings: HierarchySettings | None = None,
) -> HierarchyEngine:
    """Build an engine for ``kind`` bound to ``session``.

    Args:
        session: Database session the engine operates on
        kind: Hierarchy kind
        strategy: Override the configured strategy (mainly for tests)
        settings: Hierarchy settings (optional, loaded from environment)

    Example:
        async with get_async_session() as session:
            engine = get_hierarchy_engine(session, HierarchyKind.TEAM)
            roots = await engine.list_roots()
    """
    settings = settings or get_hierarchy_settings()
    chosen = strategy or settings.strategy_for(kind)
    return HierarchyEngine(session, kind, get_tree_store(chosen), settings=settings)


__all__ = ["STORE_CLASSES", "get_hierarchy_engine", "get_tree_store"]
