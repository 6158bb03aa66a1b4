"""Enumerations shared by settings, models and the hierarchy engine."""

from __future__ import annotations

from enum import StrEnum


class HierarchyKind(StrEnum):
    """Domain tree types that share the hierarchy engine contract."""

    DEPARTMENT = "department"
    JOB = "job"
    TEAM = "team"
    PROJECT = "project"


class StorageStrategy(StrEnum):
    """Persistent layouts a hierarchy kind can be stored with."""

    ADJACENCY_LIST = "adjacency_list"
    MATERIALIZED_PATH = "materialized_path"
    CLOSURE_TABLE = "closure_table"


__all__ = ["HierarchyKind", "StorageStrategy"]
