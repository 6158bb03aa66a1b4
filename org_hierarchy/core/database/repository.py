"""Minimal generic repository for SQLAlchemy models.

Provides basic CRUD operations with explicit session passing.
For complex queries, use the session directly - this is a convenience, not a cage.

Example:
    class NodeRepository(BaseRepository[HierarchyNode]):
        async def children(self, session: AsyncSession, parent_id: int):
            stmt = select(HierarchyNode).where(HierarchyNode.parent_id == parent_id)
            result = await session.execute(stmt)
            return result.scalars().all()
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy import delete as sql_delete

from org_hierarchy.infra.logging import get_lazy_logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class SearchResult(Generic[T]):
    """Paginated search result container.

    Attributes:
        items: List of items for current page
        total: Total count across all pages
        limit: Page size
        offset: Current offset

    Example:
        result = await repo.search(session, stmt, limit=20, offset=0)
        print(f"Showing {len(result.items)} of {result.total}")
    """

    items: Sequence[T]
    total: int
    limit: int
    offset: int

    @property
    def page(self) -> int:
        """Current page number (1-indexed)."""
        return (self.offset // self.limit) + 1 if self.limit else 1

    @property
    def pages(self) -> int:
        """Total number of pages."""
        if self.limit == 0:
            return 1
        return (self.total + self.limit - 1) // self.limit

    @property
    def has_next(self) -> bool:
        """Whether there are more pages after current."""
        return self.offset + len(self.items) < self.total

    @property
    def has_prev(self) -> bool:
        """Whether there are pages before current."""
        return self.offset > 0

    @classmethod
    def from_sequence(cls, items: Sequence[T], *, limit: int, offset: int) -> SearchResult[T]:
        """Slice an already materialized sequence into a page."""
        return cls(
            items=list(items[offset : offset + limit]),
            total=len(items),
            limit=limit,
            offset=offset,
        )


class BaseRepository(Generic[T]):
    """Minimal generic repository for CRUD operations.

    Provides:
        - get(session, id, for_update=False) -> T | None
        - get_many(session, ids) -> Sequence[T]
        - search(session, statement, limit, offset) -> SearchResult[T]
        - create(session, instance) -> T
        - delete_many(session, ids) -> int

    Session is always explicit - no hidden state.
    """

    __slots__ = ("model", "_logger", "_lazy")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class.

        Args:
            model: SQLAlchemy model class
        """
        self.model = model
        # Standard logger for INFO/WARNING/ERROR
        self._logger = logging.getLogger(f"repository.{model.__name__}")
        # Lazy logger for DEBUG (zero overhead when DEBUG disabled)
        self._lazy = get_lazy_logger(f"repository.{model.__name__}")

    def _pk_attr(self) -> Any:
        return self.model.id  # type: ignore[attr-defined]

    async def get(
        self,
        session: AsyncSession,
        id: Any,  # noqa: A002
        *,
        for_update: bool = False,
    ) -> T | None:
        """Get entity by primary key.

        Args:
            session: Database session
            id: Primary key value
            for_update: Lock the row (SELECT ... FOR UPDATE) where the dialect supports it

        Returns:
            Entity if found, None otherwise
        """
        if for_update:
            stmt = (
                select(self.model)
                .where(self._pk_attr() == id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            instance = result.scalar_one_or_none()
        else:
            instance = await session.get(self.model, id)

        self._lazy.debug(
            lambda: f"db.get: {self.model.__name__}({id}) -> {'found' if instance else 'not found'}"
        )
        return instance

    async def get_many(self, session: AsyncSession, ids: Iterable[Any]) -> Sequence[T]:
        """Load every entity whose primary key is in ``ids``.

        Order is unspecified; callers sort as they need.
        """
        ids_list = list(ids)
        if not ids_list:
            return []
        stmt = select(self.model).where(self._pk_attr().in_(ids_list))
        result = await session.execute(stmt)
        items = result.scalars().all()

        self._lazy.debug(
            lambda: f"db.get_many: {self.model.__name__}({len(ids_list)} ids) -> {len(items)} items"
        )
        return items

    async def search(
        self,
        session: AsyncSession,
        statement: Select[tuple[T]],
        *,
        limit: int = 50,
        offset: int = 0,
    ) -> SearchResult[T]:
        """Execute paginated search with total count.

        Takes a pre-built statement (with filters and ordering applied)
        and adds pagination.

        Args:
            session: Database session
            statement: SQLAlchemy select statement
            limit: Page size
            offset: Results to skip

        Returns:
            SearchResult with items, total count, and pagination info
        """
        # Count total before pagination
        count_stmt = select(func.count()).select_from(statement.order_by(None).subquery())
        total = (await session.execute(count_stmt)).scalar_one()

        paginated = statement.limit(limit).offset(offset)
        result = await session.execute(paginated)
        items = result.scalars().all()

        search_result = SearchResult(items=items, total=total, limit=limit, offset=offset)
        self._lazy.debug(
            lambda: f"db.search: {self.model.__name__}(limit={limit}, offset={offset}) -> {len(items)}/{total} items, page {search_result.page}/{search_result.pages}"
        )
        return search_result

    async def create(self, session: AsyncSession, instance: T) -> T:
        """Persist a new entity.

        Adds to session, flushes to get generated values (like id),
        and refreshes to ensure instance is up-to-date.
        """
        session.add(instance)
        await session.flush()
        await session.refresh(instance)

        entity_id = getattr(instance, "id", None)
        self._lazy.debug(lambda: f"db.create: {self.model.__name__}(id={entity_id})")
        return instance

    async def delete_many(
        self,
        session: AsyncSession,
        ids: Iterable[Any],
    ) -> int:
        """Delete multiple entities by primary key.

        Uses a single DELETE statement. Does not load entities
        into session - directly executes DELETE WHERE id IN (...).

        Returns:
            Number of rows deleted
        """
        ids_list = list(ids)
        if not ids_list:
            return 0

        stmt = (
            sql_delete(self.model)
            .where(self._pk_attr().in_(ids_list))
            .execution_options(synchronize_session="fetch")
        )
        result = await session.execute(stmt)
        await session.flush()

        deleted_count: int = result.rowcount if hasattr(result, "rowcount") else 0

        # WARNING level for bulk deletes > 10 (audit-worthy)
        if deleted_count > 10:
            self._logger.warning(
                "Bulk delete executed",
                extra={
                    "entity": self.model.__name__,
                    "requested": len(ids_list),
                    "deleted": deleted_count,
                    "operation": "db.delete_many",
                },
            )
        else:
            self._lazy.debug(
                lambda: f"db.delete_many: {self.model.__name__} -> {deleted_count} deleted"
            )
        return deleted_count


__all__ = ["BaseRepository", "SearchResult"]
