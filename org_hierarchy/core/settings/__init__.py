"""Modular settings, one pydantic-settings model per concern."""

from __future__ import annotations

from .database import DatabaseSettings
from .hierarchy import HierarchySettings
from .loader import (
    clear_all_caches,
    get_db_settings,
    get_hierarchy_settings,
    get_logging_settings,
    get_pagination_settings,
)
from .logs import LoggingSettings
from .pagination import PaginationSettings

__all__ = [
    "DatabaseSettings",
    "HierarchySettings",
    "LoggingSettings",
    "PaginationSettings",
    "clear_all_caches",
    "get_db_settings",
    "get_hierarchy_settings",
    "get_logging_settings",
    "get_pagination_settings",
]
