"""create_hierarchy_tables

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c2b7d10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create hierarchy node and closure tables."""
    op.create_table(
        "hierarchy_nodes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        # Materialized path kinds only
        sa.Column("path", sa.String(length=1024), nullable=True),
        # Timestamps
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        # Constraints
        sa.PrimaryKeyConstraint("id", name=op.f("pk_hierarchy_nodes")),
        sa.ForeignKeyConstraint(
            ["parent_id"],
            ["hierarchy_nodes.id"],
            name=op.f("fk_hierarchy_nodes_parent_id_hierarchy_nodes"),
        ),
        sa.CheckConstraint(
            "parent_id IS NULL OR parent_id <> id",
            name=op.f("ck_hierarchy_nodes_not_own_parent"),
        ),
    )

    op.create_index("ix_hierarchy_nodes_kind", "hierarchy_nodes", ["kind"], unique=False)
    op.create_index("ix_hierarchy_nodes_parent_id", "hierarchy_nodes", ["parent_id"], unique=False)
    op.create_index("ix_hierarchy_nodes_path", "hierarchy_nodes", ["path"], unique=False)
    op.create_index(
        "ix_hierarchy_nodes_kind_parent_id", "hierarchy_nodes", ["kind", "parent_id"], unique=False
    )
    op.create_index("ix_hierarchy_nodes_kind_name", "hierarchy_nodes", ["kind", "name"], unique=False)

    op.create_table(
        "hierarchy_closure",
        sa.Column("ancestor_id", sa.Integer(), nullable=False),
        sa.Column("descendant_id", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("ancestor_id", "descendant_id", name=op.f("pk_hierarchy_closure")),
        sa.ForeignKeyConstraint(
            ["ancestor_id"],
            ["hierarchy_nodes.id"],
            name=op.f("fk_hierarchy_closure_ancestor_id_hierarchy_nodes"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["descendant_id"],
            ["hierarchy_nodes.id"],
            name=op.f("fk_hierarchy_closure_descendant_id_hierarchy_nodes"),
            ondelete="CASCADE",
        ),
        sa.CheckConstraint("level >= 0", name=op.f("ck_hierarchy_closure_level_non_negative")),
    )

    op.create_index(
        "ix_hierarchy_closure_descendant_level",
        "hierarchy_closure",
        ["descendant_id", "level"],
        unique=False,
    )


def downgrade() -> None:
    """Drop hierarchy tables."""
    op.drop_index("ix_hierarchy_closure_descendant_level", table_name="hierarchy_closure")
    op.drop_table("hierarchy_closure")

    op.drop_index("ix_hierarchy_nodes_kind_name", table_name="hierarchy_nodes")
    op.drop_index("ix_hierarchy_nodes_kind_parent_id", table_name="hierarchy_nodes")
    op.drop_index("ix_hierarchy_nodes_path", table_name="hierarchy_nodes")
    op.drop_index("ix_hierarchy_nodes_parent_id", table_name="hierarchy_nodes")
    op.drop_index("ix_hierarchy_nodes_kind", table_name="hierarchy_nodes")
    op.drop_table("hierarchy_nodes")
