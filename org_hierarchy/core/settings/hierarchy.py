"""Hierarchy engine settings.

Environment variables use HIERARCHY_ prefix.
Example: HIERARCHY_MAX_NAME_LENGTH=100, HIERARCHY_TEAM_STRATEGY=closure_table
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from org_hierarchy.core.enums import HierarchyKind, StorageStrategy


class HierarchySettings(BaseSettings):
    """Tree engine configuration.

    Each hierarchy kind is backed by exactly one storage strategy. Changing a
    kind's strategy on a populated database requires a data migration, since
    the derived state (paths or closure rows) of the new strategy is not
    maintained by the old one.
    """

    max_name_length: int = Field(
        default=100,
        ge=1,
        le=255,
        description="Maximum length of a node name after trimming whitespace.",
    )

    department_strategy: StorageStrategy = Field(
        default=StorageStrategy.CLOSURE_TABLE,
        description="Storage layout used for department trees.",
    )
    job_strategy: StorageStrategy = Field(
        default=StorageStrategy.MATERIALIZED_PATH,
        description="Storage layout used for job trees.",
    )
    team_strategy: StorageStrategy = Field(
        default=StorageStrategy.ADJACENCY_LIST,
        description="Storage layout used for team trees.",
    )
    project_strategy: StorageStrategy = Field(
        default=StorageStrategy.ADJACENCY_LIST,
        description="Storage layout used for project trees.",
    )

    cascade_delete_default: bool = Field(
        default=False,
        description="Delete policy applied when a caller does not choose one explicitly.",
    )

    model_config = SettingsConfigDict(
        env_prefix="HIERARCHY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    def strategy_for(self, kind: HierarchyKind | str) -> StorageStrategy:
        """Return the configured storage strategy for a hierarchy kind."""
        return getattr(self, f"{HierarchyKind(kind).value}_strategy")

    def strategy_map(self) -> dict[HierarchyKind, StorageStrategy]:
        return {kind: self.strategy_for(kind) for kind in HierarchyKind}
