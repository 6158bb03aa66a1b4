"""LRU-cached settings loaders.

Settings are loaded and validated once, then cached for the lifetime of the
process.

Testing:
    In tests, clear the cache to force reload:
    get_hierarchy_settings.cache_clear()

    Or pass explicit instances:
    settings = HierarchySettings(max_name_length=10)
"""

from __future__ import annotations

from functools import lru_cache

from .database import DatabaseSettings
from .hierarchy import HierarchySettings
from .logs import LoggingSettings
from .pagination import PaginationSettings


@lru_cache(maxsize=1)
def get_db_settings() -> DatabaseSettings:
    """Get cached database settings.

    Returns:
        Validated and frozen DatabaseSettings instance.
    """
    return DatabaseSettings()


@lru_cache(maxsize=1)
def get_hierarchy_settings() -> HierarchySettings:
    """Get cached hierarchy engine settings.

    Returns:
        Validated and frozen HierarchySettings instance.
    """
    return HierarchySettings()


@lru_cache(maxsize=1)
def get_logging_settings() -> LoggingSettings:
    """Get cached logging settings.

    Returns:
        Validated and frozen LoggingSettings instance.
    """
    return LoggingSettings()


@lru_cache(maxsize=1)
def get_pagination_settings() -> PaginationSettings:
    """Get cached pagination settings.

    Returns:
        Validated and frozen PaginationSettings instance.
    """
    return PaginationSettings()


def clear_all_caches() -> None:
    """Clear every settings cache so the next call re-reads the environment."""
    get_db_settings.cache_clear()
    get_hierarchy_settings.cache_clear()
    get_logging_settings.cache_clear()
    get_pagination_settings.cache_clear()
