"""Closure table store: one row per (ancestor, descendant) pair.

Reads are single joins regardless of depth. Writes pay for it: a move
deletes every row linking the moved subtree to its old ancestors and
inserts the cross product of the new ancestor chain with the subtree.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import delete, insert, or_, select

from org_hierarchy.core.enums import StorageStrategy
from org_hierarchy.core.exceptions import DataIntegrityException
from org_hierarchy.features.hierarchy.models import HierarchyClosure, HierarchyNode
from org_hierarchy.features.hierarchy.repository import SORT_COLUMNS
from org_hierarchy.features.hierarchy.stores.base import TreeStore

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession


class ClosureTableStore(TreeStore):
    """Tree store backed by ``hierarchy_closure`` rows."""

    strategy = StorageStrategy.CLOSURE_TABLE

    async def attach(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        parent: HierarchyNode | None,
    ) -> None:
        rows = [{"ancestor_id": node.id, "descendant_id": node.id, "level": 0}]
        if parent is not None:
            parent_chain = await self._ancestor_levels(session, parent.id)
            rows.extend(
                {"ancestor_id": ancestor_id, "descendant_id": node.id, "level": level + 1}
                for ancestor_id, level in parent_chain.items()
            )

        await session.execute(insert(HierarchyClosure), rows)
        await session.flush()
        self._lazy.debug(lambda: f"closure.attach({node.id}) -> {len(rows)} rows")

    async def move(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        new_parent: HierarchyNode | None,
    ) -> int:
        # Subtree members with their distance below the moved node
        subtree_levels = await self._descendant_levels(session, node.id)
        if node.id not in subtree_levels:
            raise self._missing_self_row(node.id)
        subtree_ids = list(subtree_levels)

        # Unlink the subtree from every ancestor outside it
        await session.execute(
            delete(HierarchyClosure)
            .where(
                HierarchyClosure.descendant_id.in_(subtree_ids),
                HierarchyClosure.ancestor_id.not_in(subtree_ids),
            )
            .execution_options(synchronize_session=False)
        )

        inserted = 0
        if new_parent is not None:
            new_chain = await self._ancestor_levels(session, new_parent.id)
            rows = [
                {
                    "ancestor_id": ancestor_id,
                    "descendant_id": descendant_id,
                    "level": ancestor_level + 1 + descendant_level,
                }
                for ancestor_id, ancestor_level in new_chain.items()
                for descendant_id, descendant_level in subtree_levels.items()
            ]
            await session.execute(insert(HierarchyClosure), rows)
            inserted = len(rows)

        node.parent_id = new_parent.id if new_parent is not None else None
        await session.flush()

        self._lazy.debug(
            lambda: f"closure.move({node.id}) -> {len(subtree_ids)} nodes relinked, {inserted} rows inserted"
        )
        return len(subtree_ids)

    async def detach(self, session: AsyncSession, node_ids: Sequence[int]) -> None:
        if not node_ids:
            return
        ids = list(node_ids)
        result = await session.execute(
            delete(HierarchyClosure)
            .where(
                or_(
                    HierarchyClosure.ancestor_id.in_(ids),
                    HierarchyClosure.descendant_id.in_(ids),
                )
            )
            .execution_options(synchronize_session=False)
        )
        self._lazy.debug(lambda: f"closure.detach({len(ids)} nodes) -> {result.rowcount} rows deleted")

    async def is_in_subtree(
        self,
        session: AsyncSession,
        root: HierarchyNode,
        candidate: HierarchyNode,
    ) -> bool:
        stmt = select(HierarchyClosure.level).where(
            HierarchyClosure.ancestor_id == root.id,
            HierarchyClosure.descendant_id == candidate.id,
        )
        return (await session.execute(stmt)).first() is not None

    def children_statement(self, node: HierarchyNode) -> Select[tuple[HierarchyNode]]:
        return (
            select(HierarchyNode)
            .join(HierarchyClosure, HierarchyClosure.descendant_id == HierarchyNode.id)
            .where(HierarchyClosure.ancestor_id == node.id, HierarchyClosure.level == 1)
            .order_by(*SORT_COLUMNS["name"])
        )

    async def descendants(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        stmt = (
            select(HierarchyNode)
            .join(HierarchyClosure, HierarchyClosure.descendant_id == HierarchyNode.id)
            .where(HierarchyClosure.ancestor_id == node.id, HierarchyClosure.level > 0)
            .order_by(HierarchyClosure.level.asc(), *SORT_COLUMNS["name"])
        )
        found = list((await session.execute(stmt)).scalars().all())
        self._lazy.debug(lambda: f"closure.descendants({node.id}) -> {len(found)} nodes")
        return found

    async def ancestors(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        stmt = (
            select(HierarchyNode)
            .join(HierarchyClosure, HierarchyClosure.ancestor_id == HierarchyNode.id)
            .where(HierarchyClosure.descendant_id == node.id, HierarchyClosure.level > 0)
            .order_by(HierarchyClosure.level.asc())
        )
        return list((await session.execute(stmt)).scalars().all())

    async def _ancestor_levels(self, session: AsyncSession, node_id: int) -> dict[int, int]:
        """Every ancestor of ``node_id`` (itself included) mapped to its distance."""
        stmt = select(HierarchyClosure.ancestor_id, HierarchyClosure.level).where(
            HierarchyClosure.descendant_id == node_id
        )
        levels = {ancestor_id: level for ancestor_id, level in (await session.execute(stmt)).all()}
        if node_id not in levels:
            raise self._missing_self_row(node_id)
        return levels

    async def _descendant_levels(self, session: AsyncSession, node_id: int) -> dict[int, int]:
        stmt = select(HierarchyClosure.descendant_id, HierarchyClosure.level).where(
            HierarchyClosure.ancestor_id == node_id
        )
        return {descendant_id: level for descendant_id, level in (await session.execute(stmt)).all()}

    def _missing_self_row(self, node_id: int) -> DataIntegrityException:
        self._logger.error("Closure self row missing", extra={"node_id": node_id})
        return DataIntegrityException(
            detail=f"Node {node_id} has no closure rows",
            type="corrupted-hierarchy",
            extra={"node_id": node_id},
        )
