"""Pydantic schemas for hierarchy payloads and responses."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ConfigDict, Field

from org_hierarchy.core.enums import HierarchyKind

if TYPE_CHECKING:
    from org_hierarchy.core.database import SearchResult
    from org_hierarchy.features.hierarchy.models import HierarchyNode

SortKey = Literal["name", "-name", "id", "-id"]


class PageRequest(BaseModel):
    """Offset pagination parameters for paged queries."""

    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=50, ge=1, description="Page size")
    offset: int = Field(default=0, ge=0, description="Items to skip")
    sort: SortKey | None = Field(
        default=None,
        description="Sort key; None keeps the query's natural order",
    )


class NodeResponse(BaseModel):
    """Representation of a single node."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: HierarchyKind
    name: str
    parent_id: int | None = None
    path: str | None = None
    child_count: int | None = Field(default=None, description="Number of direct children, if loaded")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_node(cls, node: HierarchyNode, *, child_count: int | None = None) -> NodeResponse:
        response = cls.model_validate(node)
        if child_count is not None:
            response.child_count = child_count
        return response


class NodeTreeResponse(NodeResponse):
    """Node with its nested children, down to a requested depth."""

    children: list[NodeTreeResponse] = Field(default_factory=list)


class NodePageResponse(BaseModel):
    """One page of nodes with the total count across all pages."""

    items: list[NodeResponse]
    total: int
    limit: int
    offset: int
    page: int
    pages: int
    has_next: bool

    @classmethod
    def from_result(cls, result: SearchResult[HierarchyNode]) -> NodePageResponse:
        return cls(
            items=[NodeResponse.from_node(node) for node in result.items],
            total=result.total,
            limit=result.limit,
            offset=result.offset,
            page=result.page,
            pages=result.pages,
            has_next=result.has_next,
        )


__all__ = [
    "NodePageResponse",
    "NodeResponse",
    "NodeTreeResponse",
    "PageRequest",
    "SortKey",
]
