"""Prometheus registry shared by all metric modules."""

from __future__ import annotations

from prometheus_client import CollectorRegistry

# Custom registry so tests and embedding processes control what is exported
REGISTRY = CollectorRegistry()

# Covers operation times from 1ms to 10s
DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
)
