"""Adjacency list store: parent pointers only.

Moves are O(1) relinks. Ancestors are found by walking ``parent_id`` upward
and descendants by a breadth-first worklist, one query per tree level.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from org_hierarchy.core.enums import StorageStrategy
from org_hierarchy.core.exceptions import DataIntegrityException
from org_hierarchy.features.hierarchy.stores.base import TreeStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.features.hierarchy.models import HierarchyNode


class AdjacencyListStore(TreeStore):
    """Tree store that derives everything from ``parent_id``."""

    strategy = StorageStrategy.ADJACENCY_LIST

    async def attach(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        parent: HierarchyNode | None,
    ) -> None:
        # parent_id is the whole representation
        _ = session, parent
        self._lazy.debug(lambda: f"adjacency.attach({node.id}) under {node.parent_id}")

    async def move(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        new_parent: HierarchyNode | None,
    ) -> int:
        node.parent_id = new_parent.id if new_parent is not None else None
        await session.flush()
        self._lazy.debug(lambda: f"adjacency.move({node.id}) -> parent {node.parent_id}")
        return 1

    async def is_in_subtree(
        self,
        session: AsyncSession,
        root: HierarchyNode,
        candidate: HierarchyNode,
    ) -> bool:
        # Walk up from the candidate; stop at a match or a root
        for ancestor_id in await self._ancestor_chain(session, candidate, include_self=True):
            if ancestor_id == root.id:
                return True
        return False

    async def descendants(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        found: list[HierarchyNode] = []
        seen = {node.id}
        frontier = [node.id]

        while frontier:
            # Ordered by (name, id) within the level, so breadth order needs no resort
            level = await self._repo.children_of_many(session, node.kind, frontier)
            frontier = []
            for child in level:
                if child.id in seen:
                    raise self._corrupted(node, child.id)
                seen.add(child.id)
                found.append(child)
                frontier.append(child.id)

        self._lazy.debug(lambda: f"adjacency.descendants({node.id}) -> {len(found)} nodes")
        return found

    async def ancestors(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        chain: list[HierarchyNode] = []
        for ancestor_id in await self._ancestor_chain(session, node, include_self=False):
            ancestor = await session.get(type(node), ancestor_id)
            if ancestor is None:
                raise DataIntegrityException(
                    detail=f"Ancestor {ancestor_id} of node {node.id} is missing",
                    extra={"node_id": node.id, "ancestor_id": ancestor_id},
                )
            chain.append(ancestor)
        return chain

    async def _ancestor_chain(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        *,
        include_self: bool,
    ) -> list[int]:
        """Ids from ``node`` (or its parent) up to the root.

        A revisited id means the stored parent links already contain a cycle.
        """
        chain = [node.id] if include_self else []
        visited = {node.id}
        parent_id = node.parent_id

        while parent_id is not None:
            if parent_id in visited:
                raise self._corrupted(node, parent_id)
            visited.add(parent_id)
            chain.append(parent_id)
            parent = await session.get(type(node), parent_id)
            if parent is None:
                break
            parent_id = parent.parent_id

        return chain

    def _corrupted(self, node: HierarchyNode, repeated_id: int) -> DataIntegrityException:
        self._logger.error(
            "Cycle found in stored parent links",
            extra={"node_id": node.id, "repeated_id": repeated_id, "kind": str(node.kind)},
        )
        return DataIntegrityException(
            detail=f"Stored hierarchy around node {node.id} contains a cycle",
            type="corrupted-hierarchy",
            extra={"node_id": node.id, "repeated_id": repeated_id},
        )
