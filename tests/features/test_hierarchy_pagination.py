"""Paginated query variants: page slicing, totals, sorting and validation.

The test pagination settings use default_limit=2 and max_limit=5.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from org_hierarchy.core.exceptions import NodeNotFoundException, ValidationException
from org_hierarchy.features.hierarchy import NodePageResponse

if TYPE_CHECKING:
    from org_hierarchy.features.hierarchy import HierarchyEngine


async def test_descendants_pages(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    first = await engine.get_descendants_page(tree["Engineering"])
    last = await engine.get_descendants_page(tree["Engineering"], offset=4)

    assert [n.name for n in first.items] == ["Hardware", "Software"]
    assert (first.total, first.page, first.pages, first.has_next, first.has_prev) == (5, 1, 3, True, False)
    assert [n.name for n in last.items] == ["Web"]
    assert (last.page, last.has_next, last.has_prev) == (3, False, True)


async def test_descendants_page_sorted(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    result = await engine.get_descendants_page(tree["Engineering"], limit=5, sort="-name")
    assert [n.name for n in result.items] == ["Web", "Software", "Hardware", "Frontend", "Backend"]


async def test_children_page_sorted_in_sql(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    result = await engine.get_children_page(tree["Engineering"], sort="-name")

    assert [n.name for n in result.items] == ["Software", "Hardware"]
    assert result.total == 2
    assert not result.has_next


async def test_ancestors_page(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    result = await engine.get_ancestors_page(tree["Web"])

    assert [n.id for n in result.items] == [tree["Frontend"], tree["Software"]]
    assert result.total == 3


async def test_search_page(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    result = await engine.search_page("e", limit=5, sort="-id")

    assert [n.id for n in result.items] == [7, 6, 5, 4, 3]
    assert result.total == 7
    assert result.pages == 2


async def test_empty_search_page(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    result = await engine.search_page("zzz")
    assert (result.items, result.total, result.has_next) == ([], 0, False)


async def test_list_nodes_page(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    everything = await engine.list_nodes_page(limit=3, sort="id")
    roots = await engine.list_nodes_page(roots_only=True)

    assert [n.id for n in everything.items] == [1, 2, 3]
    assert everything.total == 7
    assert [n.name for n in roots.items] == ["Engineering", "Sales"]
    assert roots.total == 2


@pytest.mark.parametrize(
    "params",
    [
        {"limit": 0},
        {"limit": 6},
        {"offset": -1},
        {"sort": "depth"},
    ],
)
async def test_invalid_page_parameters(engine: HierarchyEngine, tree: dict[str, int], params: dict) -> None:
    with pytest.raises(ValidationException):
        await engine.get_children_page(tree["Engineering"], **params)
    with pytest.raises(ValidationException):
        await engine.get_descendants_page(tree["Engineering"], **params)


async def test_page_of_missing_node(engine: HierarchyEngine) -> None:
    with pytest.raises(NodeNotFoundException):
        await engine.get_children_page(404)


async def test_page_response_schema(engine: HierarchyEngine, tree: dict[str, int]) -> None:
    result = await engine.get_children_page(tree["Software"], limit=1)
    page = NodePageResponse.from_result(result)

    assert page.total == 2
    assert page.items[0].name == "Backend"
    assert page.items[0].parent_id == tree["Software"]
    assert page.has_next
    assert page.model_dump(mode="json")["items"][0]["kind"] == "department"
