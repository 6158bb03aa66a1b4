"""Helper functions for tracking hierarchy metrics."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from org_hierarchy.core.exceptions import (
    AppException,
    DataIntegrityException,
    NotFoundException,
    StoreUnavailableException,
    ValidationException,
)
from org_hierarchy.infra.metrics import hierarchy

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


def outcome_for(exc: BaseException | None) -> str:
    """Map an exception to the ``outcome`` label value."""
    if exc is None:
        return "success"
    if isinstance(exc, NotFoundException):
        return "not_found"
    if isinstance(exc, ValidationException):
        return "validation_error"
    if isinstance(exc, DataIntegrityException):
        return "integrity_error"
    if isinstance(exc, StoreUnavailableException):
        return "store_unavailable"
    if isinstance(exc, AppException):
        return exc.type.replace("-", "_")
    return "error"


@asynccontextmanager
async def track_hierarchy_operation(kind: str, strategy: str, operation: str) -> AsyncIterator[None]:
    """Context manager that times an engine operation and counts its outcome.

    Example:
        async with track_hierarchy_operation("department", "closure_table", "update"):
            await store.move(session, node, new_parent)
    """
    start_time = time.perf_counter()
    outcome = "success"

    try:
        yield
    except BaseException as e:
        outcome = outcome_for(e)
        raise
    finally:
        duration = time.perf_counter() - start_time
        hierarchy.hierarchy_operation_duration_seconds.labels(
            kind=kind, strategy=strategy, operation=operation
        ).observe(duration)
        hierarchy.hierarchy_operations_total.labels(
            kind=kind, strategy=strategy, operation=operation, outcome=outcome
        ).inc()
        if duration > 1.0:
            logger.warning(
                "Slow hierarchy operation",
                extra={"kind": kind, "strategy": strategy, "operation": operation, "duration": duration},
            )


def track_nodes_rewritten(kind: str, strategy: str, count: int) -> None:
    if count:
        hierarchy.hierarchy_nodes_rewritten_total.labels(kind=kind, strategy=strategy).inc(count)


def track_nodes_deleted(kind: str, strategy: str, count: int) -> None:
    if count:
        hierarchy.hierarchy_nodes_deleted_total.labels(kind=kind, strategy=strategy).inc(count)
