"""Hierarchy engine: the uniform operation set over one hierarchy kind.

The engine validates input, resolves nodes within its kind, proves moves
acyclic, and delegates structural work to the tree store configured for
the kind. Every mutating operation runs as one unit of work, and all
checks happen inside it, on rows read with ``SELECT ... FOR UPDATE`` where
the dialect supports it.

Commit policy:
    - idle session: the operation runs in its own transaction and commits.
    - implicit transaction (autobegun by an earlier read or add): the
      operation runs in a SAVEPOINT, then commits the session.
    - transaction opened explicitly with ``session.begin()`` (or inside a
      caller's SAVEPOINT): the operation runs in a SAVEPOINT and the caller
      decides whether to commit.

A failed operation always rolls back to the state it started from.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import SessionTransactionOrigin

from org_hierarchy.core.database import SearchResult
from org_hierarchy.core.exceptions import (
    AppException,
    CircularReferenceException,
    DataIntegrityException,
    NodeNotFoundException,
    NoParentException,
    ParentNotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from org_hierarchy.core.settings import get_hierarchy_settings, get_pagination_settings
from org_hierarchy.features.hierarchy.models import HierarchyNode
from org_hierarchy.features.hierarchy.repository import (
    SORT_COLUMNS,
    NodeRepository,
    get_node_repository,
)
from org_hierarchy.features.hierarchy.schemas import NodeResponse, NodeTreeResponse, PageRequest
from org_hierarchy.infra.logging import get_lazy_logger
from org_hierarchy.infra.metrics.tracking import (
    track_hierarchy_operation,
    track_nodes_deleted,
    track_nodes_rewritten,
)
from org_hierarchy.infra.tracing import add_span_attributes, get_tracer, record_exception

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable, Sequence

    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.core.enums import HierarchyKind
    from org_hierarchy.core.settings import HierarchySettings, PaginationSettings
    from org_hierarchy.features.hierarchy.stores import TreeStore

# Standard logger for INFO/WARNING/ERROR
logger = logging.getLogger(__name__)
# Lazy logger for DEBUG (zero overhead when DEBUG disabled)
lazy_logger = get_lazy_logger(__name__)
tracer = get_tracer(__name__)

_UNAVAILABLE_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.TimeoutError,
    sa_exc.DisconnectionError,
)

# Placeholder for "keep the stored value" in rename and move
_KEEP: Any = object()

_IN_MEMORY_SORT_KEYS: dict[str, tuple[Callable[[HierarchyNode], Any], bool]] = {
    "name": (lambda n: (n.name, n.id), False),
    "-name": (lambda n: (n.name, n.id), True),
    "id": (lambda n: n.id, False),
    "-id": (lambda n: n.id, True),
}


class HierarchyEngine:
    """Create, move, delete and query the nodes of one hierarchy kind.

    Result orders:
        - children, search, list: (name, id)
        - descendants: breadth order (depth, name, id)
        - ancestors: leaf to root, parent first

    Example:
        engine = get_hierarchy_engine(session, HierarchyKind.DEPARTMENT)
        root = await engine.create("Engineering")
        child = await engine.create("Software", parent_id=root.id)
        await engine.update(child.id, "Platform")
    """

    def __init__(
        self,
        session: AsyncSession,
        kind: HierarchyKind,
        store: TreeStore,
        *,
        repo: NodeRepository | None = None,
        settings: HierarchySettings | None = None,
        pagination: PaginationSettings | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            session: Database session all operations run on
            kind: Hierarchy kind this engine serves
            store: Tree store implementing the kind's storage strategy
            repo: Node repository (optional, uses default if not provided)
            settings: Hierarchy settings (optional, loaded from environment)
            pagination: Pagination settings (optional, loaded from environment)
        """
        self._session = session
        self._kind = kind
        self._store = store
        self._repo = repo or get_node_repository()
        self._settings = settings or get_hierarchy_settings()
        self._pagination = pagination or get_pagination_settings()

    @property
    def kind(self) -> HierarchyKind:
        return self._kind

    @property
    def store(self) -> TreeStore:
        return self._store

    @property
    def session(self) -> AsyncSession:
        return self._session

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, name: str, parent_id: int | None = None) -> HierarchyNode:
        """Create a node under ``parent_id`` (or as a root).

        Raises:
            ValidationException: If the name is blank or too long
            ParentNotFoundException: If parent_id does not resolve within this kind
        """
        async with self._operation("create", parent_id=parent_id):
            clean_name = self._validate_name(name)
            async with self._unit_of_work():
                parent = None
                if parent_id is not None:
                    parent = await self._require_parent(parent_id)

                node = await self._repo.create(
                    self._session,
                    HierarchyNode(kind=self._kind, name=clean_name, parent_id=parent_id),
                )
                await self._store.attach(self._session, node, parent)

            logger.info(
                "Hierarchy node created",
                extra={
                    "node_id": node.id,
                    "parent_id": parent_id,
                    "kind": str(self._kind),
                    "strategy": str(self._store.strategy),
                },
            )
            return node

    async def update(
        self,
        node_id: int,
        name: str,
        new_parent_id: int | None = None,
    ) -> HierarchyNode:
        """Rename a node and, if the parent changed, move its subtree.

        ``new_parent_id`` None makes the node a root.

        Raises:
            ValidationException: If the name is blank or too long
            NodeNotFoundException: If node_id does not exist
            ParentNotFoundException: If new_parent_id does not resolve
            CircularReferenceException: If new_parent_id is the node or one of its descendants
        """
        return await self._apply_update("update", node_id, name, new_parent_id)

    async def rename(self, node_id: int, name: str) -> HierarchyNode:
        """Rename a node, keeping its current parent."""
        return await self._apply_update("rename", node_id, name, _KEEP)

    async def move(self, node_id: int, new_parent_id: int | None) -> HierarchyNode:
        """Move a node (and its subtree), keeping its current name."""
        return await self._apply_update("move", node_id, _KEEP, new_parent_id)

    async def delete(self, node_id: int, cascade: bool | None = None) -> list[int]:
        """Delete a node, or its whole subtree when cascading.

        ``cascade`` None applies HIERARCHY_CASCADE_DELETE_DEFAULT.

        Returns:
            Ids of every deleted node, the target first.

        Raises:
            NodeNotFoundException: If node_id does not exist
            DataIntegrityException: If not cascading and the node has children
        """
        cascade = self._settings.cascade_delete_default if cascade is None else cascade
        async with self._operation("delete", node_id=node_id, cascade=cascade):
            async with self._unit_of_work():
                node = await self._require_node(node_id, for_update=True)

                if cascade:
                    doomed = await self._store.subtree_ids(self._session, node)
                else:
                    if await self._repo.has_children(self._session, self._kind, node.id):
                        raise DataIntegrityException(
                            detail=f"Node {node_id} has children; delete them first or cascade",
                            type="node-has-children",
                            extra={"node_id": node_id, "kind": str(self._kind)},
                        )
                    doomed = [node.id]

                await self._store.detach(self._session, doomed)
                await self._repo.delete_many(self._session, doomed)

            track_nodes_deleted(str(self._kind), str(self._store.strategy), len(doomed))
            log = logger.warning if len(doomed) > 1 else logger.info
            log(
                "Hierarchy node deleted",
                extra={
                    "node_id": node_id,
                    "cascade": cascade,
                    "deleted": len(doomed),
                    "kind": str(self._kind),
                },
            )
            return doomed

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    async def get_node(self, node_id: int) -> HierarchyNode:
        """Get a node by id.

        Raises:
            NodeNotFoundException: If node_id does not exist in this kind
        """
        async with self._operation("get_node", node_id=node_id):
            return await self._require_node(node_id)

    async def exists(self, node_id: int) -> bool:
        async with self._operation("exists", node_id=node_id):
            return await self._repo.exists(self._session, self._kind, node_id)

    async def get_parent(self, node_id: int) -> HierarchyNode:
        """Get the direct parent of a node.

        Raises:
            NodeNotFoundException: If node_id does not exist
            NoParentException: If the node is a root
        """
        async with self._operation("get_parent", node_id=node_id):
            node = await self._require_node(node_id)
            if node.is_root:
                raise NoParentException(node_id, kind=str(self._kind))
            parent = await self._repo.get_in_kind(self._session, self._kind, node.parent_id)
            if parent is None:
                raise DataIntegrityException(
                    detail=f"Parent {node.parent_id} of node {node_id} is missing",
                    extra={"node_id": node_id, "parent_id": node.parent_id},
                )
            return parent

    async def get_children(self, node_id: int) -> list[HierarchyNode]:
        """Direct children ordered by (name, id)."""
        async with self._operation("get_children", node_id=node_id):
            node = await self._require_node(node_id)
            return await self._store.children(self._session, node)

    async def get_descendants(self, node_id: int) -> list[HierarchyNode]:
        """Every node below ``node_id``, in breadth order."""
        async with self._operation("get_descendants", node_id=node_id):
            node = await self._require_node(node_id)
            return await self._store.descendants(self._session, node)

    async def get_descendant_ids(self, node_id: int) -> list[int]:
        return [d.id for d in await self.get_descendants(node_id)]

    async def get_ancestors(self, node_id: int) -> list[HierarchyNode]:
        """Ancestors from the parent up to the root."""
        async with self._operation("get_ancestors", node_id=node_id):
            node = await self._require_node(node_id)
            return await self._store.ancestors(self._session, node)

    async def search(self, pattern: str) -> list[HierarchyNode]:
        """Case-insensitive substring search on names; empty list if nothing matches."""
        async with self._operation("search"):
            result = await self._session.execute(self._repo.search_statement(self._kind, pattern))
            return list(result.scalars().all())

    async def list_nodes(self) -> list[HierarchyNode]:
        async with self._operation("list_nodes"):
            result = await self._session.execute(self._repo.list_statement(self._kind))
            return list(result.scalars().all())

    async def list_roots(self) -> list[HierarchyNode]:
        async with self._operation("list_roots"):
            result = await self._session.execute(
                self._repo.list_statement(self._kind, roots_only=True)
            )
            return list(result.scalars().all())

    async def can_move(self, node_id: int, new_parent_id: int | None) -> bool:
        """Whether ``update(node_id, ..., new_parent_id)`` would pass the cycle check.

        Raises:
            NodeNotFoundException: If node_id does not exist
            ParentNotFoundException: If new_parent_id does not resolve
        """
        async with self._operation("can_move", node_id=node_id, new_parent_id=new_parent_id):
            node = await self._require_node(node_id)
            try:
                await self._validate_move(node, new_parent_id)
            except CircularReferenceException:
                return False
            return True

    async def get_subtree(self, node_id: int, max_depth: int | None = None) -> NodeTreeResponse:
        """Nested view of a node and its descendants.

        Args:
            node_id: Subtree root
            max_depth: Levels of children to include; None for all, 0 for the node alone

        Raises:
            NodeNotFoundException: If node_id does not exist
            ValidationException: If max_depth is negative
        """
        if max_depth is not None and max_depth < 0:
            raise ValidationException(
                detail="max_depth must be zero or positive",
                extra={"field": "max_depth", "value": max_depth},
            )
        async with self._operation("get_subtree", node_id=node_id):
            root = await self._require_node(node_id)
            descendants = await self._store.descendants(self._session, root)

            children_of: dict[int, list[HierarchyNode]] = defaultdict(list)
            for descendant in descendants:
                if descendant.parent_id is not None:
                    children_of[descendant.parent_id].append(descendant)

            def build(node: HierarchyNode, depth: int) -> NodeTreeResponse:
                kids = children_of.get(node.id, [])
                response = NodeTreeResponse.model_validate(node)
                response.child_count = len(kids)
                if max_depth is None or depth < max_depth:
                    response.children = [build(kid, depth + 1) for kid in kids]
                return response

            return build(root, 0)

    async def describe(self, node_id: int) -> NodeResponse:
        """Node representation including its direct child count."""
        node = await self.get_node(node_id)
        counts = await self._repo.count_children(self._session, self._kind, [node.id])
        return NodeResponse.from_node(node, child_count=counts[node.id])

    # ------------------------------------------------------------------
    # Paginated variants
    # ------------------------------------------------------------------

    async def get_children_page(
        self,
        node_id: int,
        *,
        limit: int | None = None,
        offset: int = 0,
        sort: str | None = None,
    ) -> SearchResult[HierarchyNode]:
        page = self._page_request(limit, offset, sort)
        async with self._operation("get_children_page", node_id=node_id):
            node = await self._require_node(node_id)
            statement = self._apply_sort(self._store.children_statement(node), page.sort)
            return await self._repo.search(
                self._session, statement, limit=page.limit, offset=page.offset
            )

    async def get_descendants_page(
        self,
        node_id: int,
        *,
        limit: int | None = None,
        offset: int = 0,
        sort: str | None = None,
    ) -> SearchResult[HierarchyNode]:
        page = self._page_request(limit, offset, sort)
        return self._slice(await self.get_descendants(node_id), page)

    async def get_ancestors_page(
        self,
        node_id: int,
        *,
        limit: int | None = None,
        offset: int = 0,
        sort: str | None = None,
    ) -> SearchResult[HierarchyNode]:
        page = self._page_request(limit, offset, sort)
        return self._slice(await self.get_ancestors(node_id), page)

    async def search_page(
        self,
        pattern: str,
        *,
        limit: int | None = None,
        offset: int = 0,
        sort: str | None = None,
    ) -> SearchResult[HierarchyNode]:
        page = self._page_request(limit, offset, sort)
        async with self._operation("search_page"):
            statement = self._apply_sort(self._repo.search_statement(self._kind, pattern), page.sort)
            return await self._repo.search(
                self._session, statement, limit=page.limit, offset=page.offset
            )

    async def list_nodes_page(
        self,
        *,
        roots_only: bool = False,
        limit: int | None = None,
        offset: int = 0,
        sort: str | None = None,
    ) -> SearchResult[HierarchyNode]:
        page = self._page_request(limit, offset, sort)
        async with self._operation("list_nodes_page"):
            statement = self._apply_sort(
                self._repo.list_statement(self._kind, roots_only=roots_only), page.sort
            )
            return await self._repo.search(
                self._session, statement, limit=page.limit, offset=page.offset
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _validate_name(self, name: str | None) -> str:
        if name is None or not name.strip():
            raise ValidationException(
                detail="Name must not be blank",
                extra={"field": "name"},
            )
        clean = name.strip()
        if len(clean) > self._settings.max_name_length:
            raise ValidationException(
                detail=f"Name must be at most {self._settings.max_name_length} characters",
                extra={"field": "name", "length": len(clean)},
            )
        return clean

    async def _apply_update(
        self,
        operation: str,
        node_id: int,
        name: Any,
        new_parent_id: Any,
    ) -> HierarchyNode:
        """Shared body of update, rename and move; ``_KEEP`` keeps the stored value."""
        attributes: dict[str, Any] = {"node_id": node_id}
        if new_parent_id is not _KEEP:
            attributes["new_parent_id"] = new_parent_id
        async with self._operation(operation, **attributes):
            clean_name = None if name is _KEEP else self._validate_name(name)
            async with self._unit_of_work():
                node = await self._require_node(node_id, for_update=True)
                if clean_name is None:
                    clean_name = node.name
                if new_parent_id is _KEEP:
                    new_parent_id = node.parent_id
                parent_changed = node.parent_id != new_parent_id

                if not parent_changed and node.name == clean_name:
                    lazy_logger.debug(lambda: f"engine.{operation}({node_id}) -> unchanged")
                    return node

                rewritten = 0
                if parent_changed:
                    new_parent = await self._validate_move(node, new_parent_id)
                    rewritten = await self._store.move(self._session, node, new_parent)

                node.name = clean_name
                await self._session.flush()

            track_nodes_rewritten(str(self._kind), str(self._store.strategy), rewritten)
            logger.info(
                "Hierarchy node updated",
                extra={
                    "node_id": node_id,
                    "new_parent_id": new_parent_id,
                    "moved": parent_changed,
                    "rewritten": rewritten,
                    "kind": str(self._kind),
                    "operation": operation,
                },
            )
            return node

    async def _require_node(self, node_id: int, *, for_update: bool = False) -> HierarchyNode:
        node = await self._repo.get_in_kind(
            self._session, self._kind, node_id, for_update=for_update
        )
        if node is None:
            raise NodeNotFoundException(node_id, kind=str(self._kind))
        return node

    async def _require_parent(self, parent_id: int) -> HierarchyNode:
        parent = await self._repo.get_in_kind(
            self._session, self._kind, parent_id, for_update=True
        )
        if parent is None:
            raise ParentNotFoundException(parent_id, kind=str(self._kind))
        return parent

    async def _validate_move(
        self,
        node: HierarchyNode,
        new_parent_id: int | None,
    ) -> HierarchyNode | None:
        """Resolve the new parent and reject moves that would close a cycle."""
        if new_parent_id is None:
            return None
        if new_parent_id == node.id:
            raise CircularReferenceException(node.id, new_parent_id, kind=str(self._kind))

        new_parent = await self._require_parent(new_parent_id)
        if await self._store.is_in_subtree(self._session, node, new_parent):
            raise CircularReferenceException(node.id, new_parent_id, kind=str(self._kind))
        return new_parent

    def _page_request(self, limit: int | None, offset: int, sort: str | None) -> PageRequest:
        effective_limit = self._pagination.default_limit if limit is None else limit
        try:
            page = PageRequest(limit=effective_limit, offset=offset, sort=sort)
        except ValidationError as e:
            raise ValidationException(
                detail="Invalid pagination parameters",
                extra={"errors": [err["msg"] for err in e.errors()]},
            ) from e
        if page.limit > self._pagination.max_limit:
            raise ValidationException(
                detail=f"limit must be at most {self._pagination.max_limit}",
                extra={"field": "limit", "value": page.limit},
            )
        return page

    @staticmethod
    def _apply_sort(
        statement: Select[tuple[HierarchyNode]],
        sort: str | None,
    ) -> Select[tuple[HierarchyNode]]:
        if sort is None:
            return statement
        return statement.order_by(None).order_by(*SORT_COLUMNS[sort])

    @staticmethod
    def _slice(nodes: Sequence[HierarchyNode], page: PageRequest) -> SearchResult[HierarchyNode]:
        if page.sort is not None:
            key, reverse = _IN_MEMORY_SORT_KEYS[page.sort]
            nodes = sorted(nodes, key=key, reverse=reverse)
        return SearchResult.from_sequence(nodes, limit=page.limit, offset=page.offset)

    @asynccontextmanager
    async def _unit_of_work(self) -> AsyncIterator[None]:
        """Run the block atomically; see the module docstring for who commits."""
        transaction = self._session.sync_session.get_transaction()
        if transaction is None:
            async with self._session.begin():
                yield
            return

        async with self._session.begin_nested():
            yield
        if transaction.origin is SessionTransactionOrigin.AUTOBEGIN and not self._session.in_nested_transaction():
            await self._session.commit()

    @asynccontextmanager
    async def _operation(self, name: str, **attributes: Any) -> AsyncIterator[None]:
        """Span, metrics and store-error translation around one engine operation."""
        kind = str(self._kind)
        strategy = str(self._store.strategy)
        with tracer.start_as_current_span(f"hierarchy.{name}", record_exception=False):
            add_span_attributes(
                {
                    "hierarchy.kind": kind,
                    "hierarchy.strategy": strategy,
                    **{f"hierarchy.{key}": value for key, value in attributes.items()},
                }
            )
            async with track_hierarchy_operation(kind, strategy, name):
                try:
                    yield
                except AppException as e:
                    record_exception(e)
                    logger.info(
                        "Hierarchy operation rejected",
                        extra={"operation": name, "kind": kind, "error_type": e.type, **attributes},
                    )
                    raise
                except sa_exc.IntegrityError as e:
                    record_exception(e)
                    logger.warning(
                        "Hierarchy operation violated a database constraint",
                        extra={"operation": name, "kind": kind, "error": str(e.orig)},
                    )
                    raise DataIntegrityException(
                        detail="The operation violates a database constraint",
                        extra={"operation": name},
                    ) from e
                except _UNAVAILABLE_ERRORS as e:
                    record_exception(e)
                    logger.error(
                        "Hierarchy store unavailable",
                        extra={"operation": name, "kind": kind, "error": str(e)},
                    )
                    raise StoreUnavailableException(extra={"operation": name}) from e


__all__ = ["HierarchyEngine"]
