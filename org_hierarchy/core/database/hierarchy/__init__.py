"""Helpers for tree-structured data stored in relational tables."""

from __future__ import annotations

from .path import DELIMITER, MaterializedPath

__all__ = ["DELIMITER", "MaterializedPath"]
