"""Python wrapper for slash-delimited materialized paths.

A materialized path encodes a node's full ancestor chain, root first,
followed by the node's own id:

- "/1/"      root node 1
- "/1/4/7/"  node 7 under 4 under 1

Every path starts and ends with the delimiter, so a plain string prefix
test never confuses "/1/" with "/12/". The delimiter cannot occur in the
decimal form of an integer id.
"""

from __future__ import annotations

import re

DELIMITER = "/"

PATH_PATTERN = re.compile(r"^/(?:[1-9][0-9]*/)+$")


class MaterializedPath:
    """Immutable view over a materialized path string.

    Example:
        >>> path = MaterializedPath("/1/4/7/")
        >>> path.depth
        3
        >>> path.ancestor_ids
        [1, 4]
        >>> path.child(9)
        MaterializedPath('/1/4/7/9/')
        >>> MaterializedPath("/1/").is_ancestor_of("/1/4/7/")
        True
    """

    __slots__ = ("_ids", "_path")

    _path: str
    _ids: tuple[int, ...]

    def __init__(self, path: str | MaterializedPath) -> None:
        """Initialize from a path string or another MaterializedPath.

        Raises:
            ValueError: If the string is not a well-formed path.
        """
        if isinstance(path, MaterializedPath):
            self._path = path._path
            self._ids = path._ids
            return
        text = str(path).strip()
        if not PATH_PATTERN.match(text):
            raise ValueError(
                f"Invalid materialized path: {text!r}. "
                "Expected positive integer ids wrapped in '/', e.g. '/1/4/7/'."
            )
        self._path = text
        self._ids = tuple(int(segment) for segment in text.strip(DELIMITER).split(DELIMITER))

    @classmethod
    def root(cls, node_id: int) -> MaterializedPath:
        """Path of a root node."""
        return cls(f"{DELIMITER}{node_id}{DELIMITER}")

    @property
    def depth(self) -> int:
        """Number of ids in the path (1 for a root)."""
        return len(self._ids)

    @property
    def ancestor_ids(self) -> list[int]:
        """Strict ancestor ids, root first."""
        return list(self._ids[:-1])

    def child(self, node_id: int) -> MaterializedPath:
        """Path of a direct child with the given id."""
        return MaterializedPath(f"{self._path}{node_id}{DELIMITER}")

    def is_ancestor_of(self, other: str | MaterializedPath) -> bool:
        """True if ``other`` lies strictly below this path."""
        other_path = str(other)
        return other_path != self._path and other_path.startswith(self._path)

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"MaterializedPath({self._path!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MaterializedPath):
            return self._path == other._path
        if isinstance(other, str):
            return self._path == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._path)


__all__ = ["DELIMITER", "MaterializedPath"]
