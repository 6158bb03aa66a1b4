"""Hierarchy engine behaviour, run against every storage strategy."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import func, select

from org_hierarchy.core.enums import HierarchyKind, StorageStrategy
from org_hierarchy.core.exceptions import (
    CircularReferenceException,
    DataIntegrityException,
    NodeNotFoundException,
    NoParentException,
    ParentNotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from org_hierarchy.core.settings import HierarchySettings
from org_hierarchy.features.hierarchy import HierarchyClosure, HierarchyNode

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from org_hierarchy.features.hierarchy import HierarchyEngine


async def parent_links(session: AsyncSession) -> dict[int, int | None]:
    return dict((await session.execute(select(HierarchyNode.id, HierarchyNode.parent_id))).all())


# ============================================================================
# Scenarios
# ============================================================================


async def test_root_then_child_gets_sequential_ids(engine: HierarchyEngine) -> None:
    root = await engine.create("Engineering")
    child = await engine.create("Software", root.id)

    assert (root.id, child.id) == (1, 2)
    assert root.parent_id is None
    assert child.parent_id == 1
    assert (await engine.get_parent(2)).id == 1


async def test_root_then_child_paths(make_engine: Callable[..., HierarchyEngine]) -> None:
    engine = make_engine(StorageStrategy.MATERIALIZED_PATH)
    root = await engine.create("Engineering")
    child = await engine.create("Software", root.id)

    assert (root.path, child.path) == ("/1/", "/1/2/")


async def test_root_then_child_closure_rows(
    make_engine: Callable[..., HierarchyEngine], db_session: AsyncSession
) -> None:
    engine = make_engine(StorageStrategy.CLOSURE_TABLE)
    root = await engine.create("Engineering")
    await engine.create("Software", root.id)

    rows = (await db_session.execute(select(HierarchyClosure))).scalars().all()
    assert {row.as_tuple() for row in rows} == {(1, 1, 0), (2, 2, 0), (1, 2, 1)}


async def test_move_under_own_descendant_rejected(
    engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession
) -> None:
    before = await parent_links(db_session)

    with pytest.raises(CircularReferenceException):
        await engine.move(tree["Engineering"], tree["Web"])
    with pytest.raises(CircularReferenceException):
        await engine.move(tree["Software"], tree["Software"])

    assert await parent_links(db_session) == before
    assert [n.id for n in await engine.get_ancestors(tree["Web"])] == [
        tree["Frontend"],
        tree["Software"],
        tree["Engineering"],
    ]


async def test_delete_with_children_requires_cascade(
    engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession
) -> None:
    with pytest.raises(DataIntegrityException) as exc_info:
        await engine.delete(tree["Software"], cascade=False)

    assert exc_info.value.type == "node-has-children"
    assert len(await parent_links(db_session)) == 7


async def test_cascade_delete_removes_subtree(
    engine: HierarchyEngine, tree: dict[str, int], db_session: AsyncSession
) -> None:
    deleted = await engine.delete(tree["Software"], cascade=True)

    assert deleted[0] == tree["Software"]
    assert sorted(deleted) == sorted([tree["Software"], tree["Backend"], tree["Frontend"], tree["Web"]])
    assert sorted(await parent_links(db_session)) == sorted(
        [tree["Engineering"], tree["Hardware"], tree["Sales"]]
    )
    with pytest.raises(NodeNotFoundException):
        await engine.get_node(tree["Web"])
    assert [n.name for n in await engine.get_children(tree["Engineering"])] == ["Hardware"]


# ============================================================================
# Create / update / delete
# ============================================================================


async def test_create_trims_name(engine: HierarchyEngine) -> None:
    node = await engine.create("  Engineering  ")
    assert node.name == "Engineering"
    assert node.kind is HierarchyKind.DEPARTMENT


@pytest.mark.parametrize("name", ["", "   ", "x" * 101])
async def test_create_rejects_bad_names(engine: HierarchyEngine, name: str) -> None:
    with pytest.raises(ValidationException):
        await engine.create(name)
    assert await engine.list_nodes() == []


async def test_create_with_unknown_parent(engine: HierarchyEngine) -> None:
    with pytest.raises(ParentNotFoundException) as exc_info:
        await engine.create("Software", 42)

    assert exc_info.value.extra["parent_id"] == 42
    assert await engine.list_nodes() == []


async def test_rename_keeps_parent(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    node = await engine.rename(tree["Backend"], "Services")

    assert node.name == "Services"
    assert node.parent_id == tree["Software"]
    assert [n.name for n in await engine.get_children(tree["Software"])] == ["Frontend", "Services"]


async def test_update_renames_and_moves_together(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    node = await engine.update(tree["Frontend"], "Client", tree["Sales"])

    assert (node.name, node.parent_id) == ("Client", tree["Sales"])
    assert [n.id for n in await engine.get_ancestors(tree["Web"])] == [tree["Frontend"], tree["Sales"]]
    assert [n.name for n in await engine.get_descendants(tree["Sales"])] == ["Client", "Web"]


async def test_update_without_changes_is_noop(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    node = await engine.update(tree["Backend"], "Backend", tree["Software"])
    assert (node.name, node.parent_id) == ("Backend", tree["Software"])


async def test_move_to_root(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    await engine.move(tree["Software"], None)

    assert {n.name for n in await engine.list_roots()} == {"Engineering", "Sales", "Software"}
    assert [n.id for n in await engine.get_ancestors(tree["Web"])] == [tree["Frontend"], tree["Software"]]
    with pytest.raises(NoParentException):
        await engine.get_parent(tree["Software"])


async def test_move_to_unknown_parent(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    with pytest.raises(ParentNotFoundException):
        await engine.move(tree["Backend"], 404)


async def test_update_unknown_node(engine: HierarchyEngine) -> None:
    with pytest.raises(NodeNotFoundException):
        await engine.update(99, "Ghost", None)


async def test_delete_leaf(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    assert await engine.delete(tree["Web"]) == [tree["Web"]]
    assert not await engine.exists(tree["Web"])
    assert await engine.get_children(tree["Frontend"]) == []


async def test_delete_unknown_node(engine: HierarchyEngine) -> None:
    with pytest.raises(NodeNotFoundException):
        await engine.delete(5, cascade=True)


async def test_cascade_default_from_settings(
    make_engine: Callable[..., HierarchyEngine], strategy: StorageStrategy, db_session: AsyncSession
) -> None:
    engine = make_engine(strategy, settings=HierarchySettings(cascade_delete_default=True))
    root = await engine.create("Engineering")
    await engine.create("Software", root.id)

    assert len(await engine.delete(root.id)) == 2
    assert (await db_session.execute(select(func.count(HierarchyNode.id)))).scalar_one() == 0


# ============================================================================
# Queries
# ============================================================================


async def test_get_parent_of_root_is_distinct_error(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    with pytest.raises(NoParentException) as exc_info:
        await engine.get_parent(tree["Engineering"])

    assert not isinstance(exc_info.value, NodeNotFoundException)
    with pytest.raises(NodeNotFoundException):
        await engine.get_parent(999)


async def test_children_ordered_by_name(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    await engine.create("Analog", tree["Engineering"])

    names = [n.name for n in await engine.get_children(tree["Engineering"])]
    assert names == ["Analog", "Hardware", "Software"]
    assert await engine.get_children(tree["Web"]) == []


async def test_descendants_in_breadth_order(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    assert await engine.get_descendant_ids(tree["Engineering"]) == [
        tree["Hardware"],
        tree["Software"],
        tree["Backend"],
        tree["Frontend"],
        tree["Web"],
    ]
    assert await engine.get_descendants(tree["Sales"]) == []


async def test_ancestors_of_root_are_empty(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    assert await engine.get_ancestors(tree["Sales"]) == []


async def test_search_is_case_insensitive(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    assert [n.name for n in await engine.search("WARE")] == ["Hardware", "Software"]
    assert await engine.search("nothing") == []


async def test_search_treats_wildcards_literally(engine: HierarchyEngine) -> None:
    await engine.create("100% Remote")
    await engine.create("Remote")

    assert [n.name for n in await engine.search("%")] == ["100% Remote"]


async def test_kinds_are_isolated(
    make_engine: Callable[..., HierarchyEngine], strategy: StorageStrategy, tree: dict[str, int]
) -> None:
    jobs = make_engine(strategy, kind=HierarchyKind.JOB)

    with pytest.raises(NodeNotFoundException):
        await jobs.get_node(tree["Engineering"])
    with pytest.raises(ParentNotFoundException):
        await jobs.create("Engineer", tree["Engineering"])
    assert not await jobs.exists(tree["Engineering"])
    assert await jobs.search("Engineering") == []


async def test_can_move(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    assert await engine.can_move(tree["Frontend"], tree["Hardware"])
    assert await engine.can_move(tree["Frontend"], None)
    assert not await engine.can_move(tree["Software"], tree["Web"])
    assert not await engine.can_move(tree["Software"], tree["Software"])


async def test_subtree_respects_max_depth(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    full = await engine.get_subtree(tree["Engineering"])
    shallow = await engine.get_subtree(tree["Engineering"], max_depth=1)

    assert [c.name for c in full.children] == ["Hardware", "Software"]
    software = full.children[1]
    assert [c.name for c in software.children] == ["Backend", "Frontend"]
    assert software.children[1].children[0].name == "Web"

    assert [c.name for c in shallow.children] == ["Hardware", "Software"]
    assert shallow.children[1].children == []
    assert shallow.children[1].child_count == 2

    with pytest.raises(ValidationException):
        await engine.get_subtree(tree["Engineering"], max_depth=-1)


async def test_describe_counts_children(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    response = await engine.describe(tree["Software"])
    assert response.child_count == 2
    assert response.parent_id == tree["Engineering"]
    assert (await engine.describe(tree["Web"])).child_count == 0


# ============================================================================
# Store error translation
# ============================================================================


async def test_operational_errors_become_store_unavailable(
    engine: HierarchyEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def unavailable(*args, **kwargs):
        raise sa_exc.OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(engine._repo, "get_in_kind", unavailable)

    with pytest.raises(StoreUnavailableException) as exc_info:
        await engine.get_node(1)

    assert isinstance(exc_info.value.__cause__, sa_exc.OperationalError)


async def test_integrity_errors_become_data_integrity(
    engine: HierarchyEngine, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def violate(*args, **kwargs):
        raise sa_exc.IntegrityError("INSERT", {}, Exception("constraint failed"))

    monkeypatch.setattr(engine.store, "attach", violate)

    with pytest.raises(DataIntegrityException):
        await engine.create("Engineering")
    monkeypatch.undo()
    assert await engine.list_nodes() == []
