"""Hierarchy engine metrics."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

from org_hierarchy.infra.metrics.prometheus import DEFAULT_LATENCY_BUCKETS, REGISTRY

hierarchy_operations_total = Counter(
    "hierarchy_operations_total",
    "Total number of hierarchy engine operations",
    ["kind", "strategy", "operation", "outcome"],  # outcome: success, not_found, ...
    registry=REGISTRY,
)

hierarchy_operation_duration_seconds = Histogram(
    "hierarchy_operation_duration_seconds",
    "Hierarchy engine operation duration in seconds",
    ["kind", "strategy", "operation"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

hierarchy_nodes_rewritten_total = Counter(
    "hierarchy_nodes_rewritten_total",
    "Nodes whose derived structure (path or closure rows) was rewritten by a move",
    ["kind", "strategy"],
    registry=REGISTRY,
)

hierarchy_nodes_deleted_total = Counter(
    "hierarchy_nodes_deleted_total",
    "Nodes removed by delete operations, including cascaded descendants",
    ["kind", "strategy"],
    registry=REGISTRY,
)
