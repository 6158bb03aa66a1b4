"""Pagination settings for paged hierarchy queries.

Environment variables use PAGINATION_ prefix.
Example: PAGINATION_DEFAULT_LIMIT=50, PAGINATION_MAX_LIMIT=100
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PaginationSettings(BaseSettings):
    """Pagination configuration settings.

    Attributes:
        default_limit: Default number of items per page when not specified.
        max_limit: Maximum allowed items per page (hard limit).
    """

    default_limit: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Default page size when limit not specified",
    )
    max_limit: int = Field(
        default=100,
        ge=1,
        le=10000,
        description="Maximum allowed page size (hard limit)",
    )

    model_config = SettingsConfigDict(
        env_prefix="PAGINATION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
    )
