"""Tests for the MaterializedPath helper."""

import pytest

from org_hierarchy.core.database.hierarchy import MaterializedPath


def test_root_path() -> None:
    path = MaterializedPath.root(1)
    assert str(path) == "/1/"
    assert path.depth == 1
    assert path.ancestor_ids == []


def test_nested_path_properties() -> None:
    path = MaterializedPath("/1/4/7/")
    assert path.depth == 3
    assert path.ancestor_ids == [1, 4]


def test_child_appends_id() -> None:
    assert MaterializedPath("/1/2/").child(5) == MaterializedPath("/1/2/5/")


@pytest.mark.parametrize("bad", ["", "/", "1/2/", "/1/2", "/0/", "/1//2/", "/a/", "/-1/"])
def test_invalid_paths_rejected(bad: str) -> None:
    with pytest.raises(ValueError, match="Invalid materialized path"):
        MaterializedPath(bad)


def test_prefix_checks_respect_delimiters() -> None:
    parent = MaterializedPath("/1/")
    assert parent.is_ancestor_of("/1/12/")
    assert parent.is_ancestor_of(MaterializedPath("/1/12/3/"))
    assert not parent.is_ancestor_of("/1/")
    assert not parent.is_ancestor_of("/12/")


def test_equality_and_hash() -> None:
    assert MaterializedPath("/1/2/") == "/1/2/"
    assert {MaterializedPath("/1/2/"), MaterializedPath("/1/2/")} == {MaterializedPath("/1/2/")}
    assert repr(MaterializedPath("/1/")) == "MaterializedPath('/1/')"
