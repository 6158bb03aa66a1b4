"""Database engine and session lifecycle."""

from __future__ import annotations

from .session import (
    build_engine,
    close_database,
    configure_sqlite_engine,
    get_async_session,
    get_engine,
    get_session_factory,
    init_database,
)

__all__ = [
    "build_engine",
    "close_database",
    "configure_sqlite_engine",
    "get_async_session",
    "get_engine",
    "get_session_factory",
    "init_database",
]
