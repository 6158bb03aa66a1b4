"""Custom exception classes for the hierarchy engine."""

from __future__ import annotations

from typing import Any


class AppException(Exception):
    """Base application exception.

    All custom exceptions should inherit from this class.
    Follows RFC 7807 Problem Details so a transport layer can map each
    kind to a stable status code without inspecting messages.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Error type identifier (used in RFC 7807 problem details).
        title: Short, human-readable summary of the problem type.
        instance: URI reference that identifies the specific occurrence of the problem.
        extra: Additional context-specific information about the error.

    Example:
        raise AppException(
            status_code=404,
            detail="Node 7 not found",
            type="hierarchy-node-not-found",
            extra={"node_id": 7, "kind": "department"},
        )
    """

    def __init__(
        self,
        status_code: int,
        detail: str,
        type: str = "about:blank",
        title: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize application exception.

        Args:
            status_code: HTTP status code.
            detail: Human-readable error message.
            type: Error type identifier.
            title: Short summary of the problem type.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        self.status_code = status_code
        self.detail = detail
        self.type = type
        self.title = title or self._default_title(status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    @staticmethod
    def _default_title(status_code: int) -> str:
        """Get default title for HTTP status code.

        Args:
            status_code: HTTP status code.

        Returns:
            Human-readable title for the status code.
        """
        titles = {
            400: "Bad Request",
            404: "Not Found",
            409: "Conflict",
            500: "Internal Server Error",
            503: "Service Unavailable",
        }
        return titles.get(status_code, "Error")

    def to_problem_detail(self) -> dict[str, Any]:
        """Render the exception as an RFC 7807 problem document."""
        problem: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if self.instance:
            problem["instance"] = self.instance
        if self.extra:
            problem.update(self.extra)
        return problem


class NotFoundException(AppException):
    """Exception raised when a referenced resource does not exist."""

    def __init__(
        self,
        detail: str,
        type: str = "not-found",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not found exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=404,
            detail=detail,
            type=type,
            title="Not Found",
            instance=instance,
            extra=extra,
        )


class NodeNotFoundException(NotFoundException):
    """Raised when an operation targets a node id that does not exist.

    Example:
        raise NodeNotFoundException(7, kind="department")
    """

    def __init__(self, node_id: int, *, kind: str | None = None) -> None:
        self.node_id = node_id
        self.kind = kind
        label = f"{kind.capitalize()} node" if kind else "Node"
        super().__init__(
            detail=f"{label} with id {node_id} not found",
            type="hierarchy-node-not-found",
            extra={"node_id": node_id, "kind": kind},
        )


class ParentNotFoundException(NotFoundException):
    """Raised when the requested parent of a create or move does not resolve."""

    def __init__(self, parent_id: int, *, kind: str | None = None) -> None:
        self.parent_id = parent_id
        self.kind = kind
        super().__init__(
            detail=f"Parent node with id {parent_id} not found",
            type="parent-node-not-found",
            extra={"parent_id": parent_id, "kind": kind},
        )


class NoParentException(AppException):
    """Raised when the parent of a root node is requested.

    Deliberately not a NotFoundException subclass: callers must be able to tell
    "the node is missing" apart from "the node is a root".
    """

    def __init__(self, node_id: int, *, kind: str | None = None) -> None:
        self.node_id = node_id
        self.kind = kind
        super().__init__(
            status_code=404,
            detail=f"Node with id {node_id} is a root and has no parent",
            type="node-has-no-parent",
            title="No Parent",
            extra={"node_id": node_id, "kind": kind},
        )


class ValidationException(AppException):
    """Exception raised for malformed input (blank names, bad pagination).

    Example:
        raise ValidationException(
            detail="Name must not be blank",
            extra={"field": "name"},
        )
    """

    def __init__(
        self,
        detail: str,
        type: str = "validation-error",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=400,
            detail=detail,
            type=type,
            title="Validation Error",
            instance=instance,
            extra=extra,
        )


class DataIntegrityException(AppException):
    """Exception raised when an operation would break a structural invariant.

    Covers cycles, deleting a node that still has children under a
    non-cascading policy, and constraint violations reported by the database.
    """

    def __init__(
        self,
        detail: str,
        type: str = "data-integrity",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize data integrity exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=409,
            detail=detail,
            type=type,
            title="Conflict",
            instance=instance,
            extra=extra,
        )


class CircularReferenceException(DataIntegrityException):
    """Raised when a move would make a node its own ancestor."""

    def __init__(self, node_id: int, new_parent_id: int, *, kind: str | None = None) -> None:
        self.node_id = node_id
        self.new_parent_id = new_parent_id
        super().__init__(
            detail=(
                f"Cannot move node {node_id} under {new_parent_id}: "
                "the new parent is the node itself or one of its descendants"
            ),
            type="circular-reference",
            extra={"node_id": node_id, "new_parent_id": new_parent_id, "kind": kind},
        )


class StoreUnavailableException(AppException):
    """Exception raised when the persistence engine fails or times out."""

    def __init__(
        self,
        detail: str = "Hierarchy store is temporarily unavailable",
        type: str = "store-unavailable",
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Initialize store unavailable exception.

        Args:
            detail: Human-readable error message.
            type: Error type identifier.
            instance: URI reference identifying this specific occurrence.
            extra: Additional context about the error.
        """
        super().__init__(
            status_code=503,
            detail=detail,
            type=type,
            title="Service Unavailable",
            instance=instance,
            extra=extra,
        )
