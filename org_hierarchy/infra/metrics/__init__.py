"""Prometheus metrics for the hierarchy engine."""

from __future__ import annotations

from .prometheus import DEFAULT_LATENCY_BUCKETS, REGISTRY

__all__ = ["DEFAULT_LATENCY_BUCKETS", "REGISTRY"]
