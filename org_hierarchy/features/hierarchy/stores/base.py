"""Tree store capability interface.

A tree store owns the structural state of one storage strategy: how a node
is attached under a parent, how a subtree moves, how derived rows are
removed, and how ancestors and descendants are read back.

Every store keeps ``HierarchyNode.parent_id`` current, so direct children
are always available from the parent-id index. What differs is the derived
state each one maintains on top of it (none, ``path`` strings, or closure
rows) and therefore how ancestor and descendant queries are answered.

Result orders are shared by all strategies:

- children: (name, id)
- descendants: breadth order, (depth below the node, name, id)
- ancestors: leaf to root, parent first
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from org_hierarchy.features.hierarchy.repository import NodeRepository, get_node_repository
from org_hierarchy.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.core.enums import StorageStrategy
    from org_hierarchy.features.hierarchy.models import HierarchyNode


class TreeStore(ABC):
    """Structural operations of one storage strategy.

    Stores never validate input and never open transactions; the engine does
    both and calls into a store only with nodes it already resolved.
    """

    strategy: ClassVar[StorageStrategy]

    def __init__(self, repo: NodeRepository | None = None) -> None:
        self._repo = repo or get_node_repository()
        self._logger = logging.getLogger(f"{__name__}.{type(self).__name__}")
        self._lazy = get_lazy_logger(f"{__name__}.{type(self).__name__}")

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @abstractmethod
    async def attach(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        parent: HierarchyNode | None,
    ) -> None:
        """Derive structural state for a freshly inserted node.

        ``node`` is already flushed (it has an id) and its ``parent_id``
        already points at ``parent``.
        """

    @abstractmethod
    async def move(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        new_parent: HierarchyNode | None,
    ) -> int:
        """Re-parent ``node`` and re-derive the state of its whole subtree.

        ``new_parent`` None turns the node into a root. The caller has
        already proven the move is acyclic.

        Returns:
            Number of nodes whose derived state was rewritten.
        """

    async def detach(self, session: AsyncSession, node_ids: Sequence[int]) -> None:
        """Remove derived state of nodes that are about to be deleted."""
        _ = session, node_ids

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @abstractmethod
    async def is_in_subtree(
        self,
        session: AsyncSession,
        root: HierarchyNode,
        candidate: HierarchyNode,
    ) -> bool:
        """True if ``candidate`` is ``root`` or one of its descendants."""

    @abstractmethod
    async def descendants(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        """Strict descendants in breadth order."""

    @abstractmethod
    async def ancestors(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        """Strict ancestors, parent first and root last."""

    def children_statement(self, node: HierarchyNode) -> Select[tuple[HierarchyNode]]:
        """SELECT for the direct children of ``node``, ordered by (name, id)."""
        return self._repo.children_statement(node.kind, node.id)

    async def children(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        result = await session.execute(self.children_statement(node))
        return list(result.scalars().all())

    async def subtree_ids(self, session: AsyncSession, node: HierarchyNode) -> list[int]:
        """``node`` followed by every descendant id, in breadth order."""
        return [node.id, *(d.id for d in await self.descendants(session, node))]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def breadth_order(
        nodes: Iterable[HierarchyNode],
        depth_of: dict[int, int],
    ) -> list[HierarchyNode]:
        """Sort nodes by (depth, name, id)."""
        return sorted(nodes, key=lambda n: (depth_of[n.id], n.name, n.id))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(strategy={self.strategy!s})"


__all__ = ["TreeStore"]
