"""Repository for hierarchy nodes."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func, select

from org_hierarchy.core.database.repository import BaseRepository
from org_hierarchy.features.hierarchy.models import HierarchyNode

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.core.enums import HierarchyKind

# Sort keys accepted by paged queries, mapped to ORDER BY columns
SORT_COLUMNS = {
    "name": (HierarchyNode.name.asc(), HierarchyNode.id.asc()),
    "-name": (HierarchyNode.name.desc(), HierarchyNode.id.desc()),
    "id": (HierarchyNode.id.asc(),),
    "-id": (HierarchyNode.id.desc(),),
}


class NodeRepository(BaseRepository[HierarchyNode]):
    """Repository for HierarchyNode.

    Inherits from BaseRepository:
        - get(session, id, for_update) -> HierarchyNode | None
        - get_many(session, ids) -> Sequence[HierarchyNode]
        - search(session, statement, limit, offset) -> SearchResult[HierarchyNode]
        - create(session, instance) -> HierarchyNode
        - delete_many(session, ids) -> int

    Every query below is scoped to one hierarchy kind, so a department id
    never resolves inside a job tree.
    """

    def __init__(self) -> None:
        """Initialize with HierarchyNode model."""
        super().__init__(HierarchyNode)

    async def get_in_kind(
        self,
        session: AsyncSession,
        kind: HierarchyKind,
        node_id: int,
        *,
        for_update: bool = False,
    ) -> HierarchyNode | None:
        """Get a node by id, or None if it is missing or belongs to another kind."""
        node = await self.get(session, node_id, for_update=for_update)
        if node is not None and node.kind != kind:
            self._lazy.debug(
                lambda: f"db.get_in_kind({kind}, {node_id}) -> belongs to {node.kind}"
            )
            return None
        return node

    async def exists(self, session: AsyncSession, kind: HierarchyKind, node_id: int) -> bool:
        stmt = select(HierarchyNode.id).where(
            HierarchyNode.id == node_id,
            HierarchyNode.kind == kind,
        )
        found = (await session.execute(stmt)).scalar_one_or_none() is not None
        self._lazy.debug(lambda: f"db.exists({kind}, {node_id}) -> {found}")
        return found

    def children_statement(self, kind: HierarchyKind, parent_id: int) -> Select[tuple[HierarchyNode]]:
        """Direct children of ``parent_id``, ordered by name then id."""
        return (
            select(HierarchyNode)
            .where(HierarchyNode.kind == kind, HierarchyNode.parent_id == parent_id)
            .order_by(*SORT_COLUMNS["name"])
        )

    def list_statement(
        self,
        kind: HierarchyKind,
        *,
        roots_only: bool = False,
    ) -> Select[tuple[HierarchyNode]]:
        stmt = select(HierarchyNode).where(HierarchyNode.kind == kind)
        if roots_only:
            stmt = stmt.where(HierarchyNode.parent_id.is_(None))
        return stmt.order_by(*SORT_COLUMNS["name"])

    def search_statement(self, kind: HierarchyKind, pattern: str) -> Select[tuple[HierarchyNode]]:
        """Case-insensitive substring match on name.

        ``%`` and ``_`` in the pattern are matched literally.
        """
        return (
            select(HierarchyNode)
            .where(
                HierarchyNode.kind == kind,
                HierarchyNode.name.icontains(pattern, autoescape=True),
            )
            .order_by(*SORT_COLUMNS["name"])
        )

    async def has_children(self, session: AsyncSession, kind: HierarchyKind, node_id: int) -> bool:
        stmt = (
            select(HierarchyNode.id)
            .where(HierarchyNode.kind == kind, HierarchyNode.parent_id == node_id)
            .limit(1)
        )
        result = (await session.execute(stmt)).first() is not None
        self._lazy.debug(lambda: f"db.has_children({kind}, {node_id}) -> {result}")
        return result

    async def count_children(
        self,
        session: AsyncSession,
        kind: HierarchyKind,
        parent_ids: Iterable[int],
    ) -> dict[int, int]:
        """Number of direct children for each id; ids without children map to 0."""
        ids = list(parent_ids)
        if not ids:
            return {}
        stmt = (
            select(HierarchyNode.parent_id, func.count(HierarchyNode.id))
            .where(HierarchyNode.kind == kind, HierarchyNode.parent_id.in_(ids))
            .group_by(HierarchyNode.parent_id)
        )
        counts = {parent_id: 0 for parent_id in ids}
        for parent_id, count in (await session.execute(stmt)).all():
            counts[parent_id] = count
        return counts

    async def children_of_many(
        self,
        session: AsyncSession,
        kind: HierarchyKind,
        parent_ids: Iterable[int],
    ) -> Sequence[HierarchyNode]:
        """Direct children of any of ``parent_ids``, ordered by name then id."""
        ids = list(parent_ids)
        if not ids:
            return []
        stmt = (
            select(HierarchyNode)
            .where(HierarchyNode.kind == kind, HierarchyNode.parent_id.in_(ids))
            .order_by(*SORT_COLUMNS["name"])
        )
        return (await session.execute(stmt)).scalars().all()


# Factory function for dependency injection
_node_repository: NodeRepository | None = None


def get_node_repository() -> NodeRepository:
    """Get the shared NodeRepository instance."""
    global _node_repository
    if _node_repository is None:
        _node_repository = NodeRepository()
    return _node_repository
