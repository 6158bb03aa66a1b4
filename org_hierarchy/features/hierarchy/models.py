"""SQLAlchemy models for hierarchy nodes and closure rows."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Enum, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from org_hierarchy.core.database import Base, TimestampedBase
from org_hierarchy.core.database.hierarchy import MaterializedPath
from org_hierarchy.core.enums import HierarchyKind

MAX_PATH_LENGTH = 1024


class HierarchyNode(TimestampedBase):
    """One node of a department, job, team or project tree.

    The parent link is a plain foreign key; "children of X" is the indexed
    lookup ``parent_id == X``. There are deliberately no ORM relationships
    between nodes, so no object graph has to be kept in sync on moves.

    ``path`` is only maintained for kinds stored with the materialized path
    strategy; closure rows live in ``hierarchy_closure``.
    """

    __tablename__ = "hierarchy_nodes"
    __table_args__ = (
        Index("ix_hierarchy_nodes_kind_parent_id", "kind", "parent_id"),
        Index("ix_hierarchy_nodes_kind_name", "kind", "name"),
        CheckConstraint("parent_id IS NULL OR parent_id <> id", name="not_own_parent"),
    )

    kind: Mapped[HierarchyKind] = mapped_column(
        Enum(
            HierarchyKind,
            name="hierarchy_kind",
            native_enum=False,
            length=32,
            values_callable=lambda kinds: [k.value for k in kinds],
            validate_strings=True,
        ),
        nullable=False,
        index=True,
        comment="Hierarchy kind owning this node (department, job, team, project)",
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name, trimmed and non-empty",
    )
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("hierarchy_nodes.id"),
        nullable=True,
        index=True,
        comment="Parent node; NULL for roots",
    )
    path: Mapped[str | None] = mapped_column(
        String(MAX_PATH_LENGTH),
        nullable=True,
        index=True,
        comment="Materialized ancestor path such as /1/4/7/ (materialized path kinds only)",
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def materialized_path(self) -> MaterializedPath | None:
        return MaterializedPath(self.path) if self.path else None

    def __repr__(self) -> str:
        return (
            f"HierarchyNode(id={self.id!r}, kind={self.kind!s}, name={self.name!r}, "
            f"parent_id={self.parent_id!r}, path={self.path!r})"
        )


class HierarchyClosure(Base):
    """One (ancestor, descendant, level) pair of a closure-table tree.

    Every node has a self row at level 0 and one row per strict ancestor,
    with ``level`` equal to the number of parent hops between the two.
    """

    __tablename__ = "hierarchy_closure"
    __table_args__ = (
        Index("ix_hierarchy_closure_descendant_level", "descendant_id", "level"),
        CheckConstraint("level >= 0", name="level_non_negative"),
    )

    ancestor_id: Mapped[int] = mapped_column(
        ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"),
        primary_key=True,
    )
    descendant_id: Mapped[int] = mapped_column(
        ForeignKey("hierarchy_nodes.id", ondelete="CASCADE"),
        primary_key=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.ancestor_id, self.descendant_id, self.level)

    def __repr__(self) -> str:
        return f"HierarchyClosure({self.ancestor_id}, {self.descendant_id}, level={self.level})"


__all__ = ["MAX_PATH_LENGTH", "HierarchyClosure", "HierarchyNode"]
