"""Materialized path store: paths follow parent links through every change."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select, update

from org_hierarchy.core.enums import StorageStrategy
from org_hierarchy.core.exceptions import DataIntegrityException
from org_hierarchy.features.hierarchy import HierarchyNode
from org_hierarchy.features.hierarchy.stores import materialized_path

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.features.hierarchy import HierarchyEngine


@pytest.fixture
def strategy() -> StorageStrategy:
    return StorageStrategy.MATERIALIZED_PATH


async def paths(session: AsyncSession) -> dict[int, str | None]:
    return dict((await session.execute(select(HierarchyNode.id, HierarchyNode.path))).all())


async def test_create_sets_paths(engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession) -> None:
    stored = await paths(db_session)
    assert stored[tree["Engineering"]] == "/1/"
    assert stored[tree["Software"]] == "/1/2/"
    assert stored[tree["Web"]] == "/1/2/5/7/"
    assert stored[tree["Sales"]] == "/6/"


async def test_move_rewrites_descendant_paths(
    engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession
) -> None:
    await engine.move(tree["Software"], tree["Sales"])

    stored = await paths(db_session)
    assert stored[tree["Software"]] == "/6/2/"
    assert stored[tree["Backend"]] == "/6/2/4/"
    assert stored[tree["Frontend"]] == "/6/2/5/"
    assert stored[tree["Web"]] == "/6/2/5/7/"
    assert stored[tree["Hardware"]] == "/1/3/"


async def test_move_to_root(engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession) -> None:
    await engine.move(tree["Frontend"], None)

    stored = await paths(db_session)
    assert stored[tree["Frontend"]] == "/5/"
    assert stored[tree["Web"]] == "/5/7/"


async def test_prefix_query_does_not_match_longer_ids(engine: HierarchyEngine, db_session: AsyncSession) -> None:
    first = await engine.create("One")
    for i in range(10):
        await engine.create(f"Filler {i}")
    twelve = await engine.create("Twelve")
    assert twelve.id == 12
    await engine.create("Under twelve", twelve.id)

    assert await engine.get_descendants(first.id) == []


async def test_missing_path_is_reported(
    engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession
) -> None:
    await db_session.execute(
        update(HierarchyNode).where(HierarchyNode.id == tree["Software"]).values(path=None)
    )
    db_session.expire_all()

    with pytest.raises(DataIntegrityException) as exc_info:
        await engine.get_descendants(tree["Software"])

    assert exc_info.value.type == "corrupted-hierarchy"


async def test_path_length_limit_rolls_back_create(
    engine: HierarchyEngine, db_session: AsyncSession, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(materialized_path, "MAX_PATH_LENGTH", 8)
    root = await engine.create("A")
    child = await engine.create("B", root.id)
    grandchild = await engine.create("C", child.id)

    with pytest.raises(DataIntegrityException) as exc_info:
        await engine.create("D", grandchild.id)

    assert exc_info.value.type == "path-too-long"
    assert [n.name for n in await engine.list_nodes()] == ["A", "B", "C"]
