"""Adjacency list store: everything is derived from parent links."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select, text

from org_hierarchy.core.enums import StorageStrategy
from org_hierarchy.core.exceptions import DataIntegrityException
from org_hierarchy.features.hierarchy import HierarchyClosure, HierarchyNode

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.features.hierarchy import HierarchyEngine


@pytest.fixture
def strategy() -> StorageStrategy:
    return StorageStrategy.ADJACENCY_LIST


async def test_no_derived_state_written(
    engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession
) -> None:
    node_paths = (await db_session.execute(select(HierarchyNode.path))).scalars().all()
    closure = (await db_session.execute(select(HierarchyClosure))).scalars().all()

    assert set(node_paths) == {None}
    assert closure == []


async def test_descendants_walk_level_by_level(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    found = await engine.get_descendants(tree["Engineering"])
    assert [n.name for n in found] == ["Hardware", "Software", "Backend", "Frontend", "Web"]


async def test_ancestors_walk_parent_links(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    found = await engine.get_ancestors(tree["Web"])
    assert [n.id for n in found] == [tree["Frontend"], tree["Software"], tree["Engineering"]]


async def test_stored_cycle_is_reported(
    engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession
) -> None:
    # Bypass the engine to plant a cycle Engineering -> Web -> ... -> Engineering
    await db_session.execute(
        text("UPDATE hierarchy_nodes SET parent_id = :web WHERE id = :eng"),
        {"web": tree["Web"], "eng": tree["Engineering"]},
    )
    db_session.expire_all()

    with pytest.raises(DataIntegrityException) as exc_info:
        await engine.get_ancestors(tree["Web"])

    assert exc_info.value.type == "corrupted-hierarchy"
