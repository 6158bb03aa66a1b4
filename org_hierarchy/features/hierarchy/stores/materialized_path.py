"""Materialized path store: every node carries its ancestor chain as ``/1/4/7/``.

Descendants are one indexed prefix query and ancestors are the ids encoded
in the node's own path. A move rewrites the path of the moved node and of
every descendant, top-down, so no node is ever written with a path that
disagrees with its parent's.
"""

from __future__ import annotations

from collections import defaultdict, deque
from typing import TYPE_CHECKING

from sqlalchemy import select

from org_hierarchy.core.database.hierarchy import MaterializedPath
from org_hierarchy.core.enums import StorageStrategy
from org_hierarchy.core.exceptions import DataIntegrityException
from org_hierarchy.features.hierarchy.models import MAX_PATH_LENGTH, HierarchyNode
from org_hierarchy.features.hierarchy.stores.base import TreeStore

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class MaterializedPathStore(TreeStore):
    """Tree store backed by the ``path`` column."""

    strategy = StorageStrategy.MATERIALIZED_PATH

    async def attach(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        parent: HierarchyNode | None,
    ) -> None:
        # The id only exists after the insert flush, so the path is set afterwards
        path = self._path_under(node, parent)
        self._check_length(node, path)
        node.path = str(path)
        await session.flush()
        self._lazy.debug(lambda: f"path.attach({node.id}) -> {node.path}")

    async def move(
        self,
        session: AsyncSession,
        node: HierarchyNode,
        new_parent: HierarchyNode | None,
    ) -> int:
        subtree = await self.descendants(session, node)
        children_of: dict[int | None, list[HierarchyNode]] = defaultdict(list)
        for descendant in subtree:
            children_of[descendant.parent_id].append(descendant)

        node.parent_id = new_parent.id if new_parent is not None else None

        # Breadth-first worklist: a node is rewritten only after its parent
        rewritten = 0
        queue: deque[tuple[HierarchyNode, MaterializedPath]] = deque(
            [(node, self._path_under(node, new_parent))]
        )
        while queue:
            current, path = queue.popleft()
            self._check_length(current, path)
            current.path = str(path)
            rewritten += 1
            for child in children_of.pop(current.id, []):
                queue.append((child, path.child(child.id)))

        if children_of:
            # Prefix matches whose parent chain never reached the moved node
            stray = sorted(d.id for group in children_of.values() for d in group)
            raise DataIntegrityException(
                detail=f"Paths under node {node.id} disagree with parent links",
                type="corrupted-hierarchy",
                extra={"node_id": node.id, "stray_ids": stray},
            )

        await session.flush()
        self._lazy.debug(lambda: f"path.move({node.id}) -> {node.path}, {rewritten} paths rewritten")
        return rewritten

    async def is_in_subtree(
        self,
        session: AsyncSession,
        root: HierarchyNode,
        candidate: HierarchyNode,
    ) -> bool:
        _ = session
        root_path = self._require_path(root)
        candidate_path = self._require_path(candidate)
        return candidate_path == root_path or root_path.is_ancestor_of(candidate_path)

    async def descendants(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        prefix = self._require_path(node)
        stmt = select(HierarchyNode).where(
            HierarchyNode.kind == node.kind,
            HierarchyNode.path.startswith(str(prefix), autoescape=True),
            HierarchyNode.id != node.id,
        )
        found = (await session.execute(stmt)).scalars().all()

        base_depth = prefix.depth
        depth_of = {d.id: self._require_path(d).depth - base_depth for d in found}
        ordered = self.breadth_order(found, depth_of)

        self._lazy.debug(lambda: f"path.descendants({node.id}, prefix={prefix}) -> {len(ordered)} nodes")
        return ordered

    async def ancestors(self, session: AsyncSession, node: HierarchyNode) -> list[HierarchyNode]:
        ancestor_ids = self._require_path(node).ancestor_ids
        if not ancestor_ids:
            return []

        by_id = {a.id: a for a in await self._repo.get_many(session, ancestor_ids)}
        missing = [i for i in ancestor_ids if i not in by_id]
        if missing:
            raise DataIntegrityException(
                detail=f"Path of node {node.id} references missing ancestors",
                type="corrupted-hierarchy",
                extra={"node_id": node.id, "path": node.path, "missing_ids": missing},
            )
        return [by_id[i] for i in reversed(ancestor_ids)]

    @staticmethod
    def _path_under(node: HierarchyNode, parent: HierarchyNode | None) -> MaterializedPath:
        if parent is None:
            return MaterializedPath.root(node.id)
        return MaterializedPathStore._require_path(parent).child(node.id)

    @staticmethod
    def _require_path(node: HierarchyNode) -> MaterializedPath:
        path = node.materialized_path
        if path is None:
            raise DataIntegrityException(
                detail=f"Node {node.id} has no materialized path",
                type="corrupted-hierarchy",
                extra={"node_id": node.id, "kind": str(node.kind)},
            )
        return path

    @staticmethod
    def _check_length(node: HierarchyNode, path: MaterializedPath) -> None:
        if len(str(path)) > MAX_PATH_LENGTH:
            raise DataIntegrityException(
                detail=f"Path of node {node.id} would exceed {MAX_PATH_LENGTH} characters",
                type="path-too-long",
                extra={"node_id": node.id, "depth": path.depth},
            )
