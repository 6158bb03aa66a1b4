"""Database foundations: declarative base and generic repository."""

from __future__ import annotations

from .base import Base, IntegerPKMixin, TimestampedBase, TimestampMixin
from .repository import BaseRepository, SearchResult

__all__ = [
    "Base",
    "BaseRepository",
    "IntegerPKMixin",
    "SearchResult",
    "TimestampMixin",
    "TimestampedBase",
]
