"""Distributed tracing helpers."""

from __future__ import annotations

from .opentelemetry import add_span_attributes, get_tracer, record_exception

__all__ = ["add_span_attributes", "get_tracer", "record_exception"]
