"""OpenTelemetry tracing helpers.

Only the API package is required: without a configured SDK the tracer is a
no-op, so instrumented code costs almost nothing in tests and the CLI.
"""

from __future__ import annotations

from typing import Any

from opentelemetry import trace


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance for creating custom spans.

    Args:
        name: Tracer name, typically __name__ of the module.

    Example:
        tracer = get_tracer(__name__)

        async def move(node_id: int):
            with tracer.start_as_current_span("hierarchy.update") as span:
                span.set_attribute("hierarchy.node_id", node_id)
    """
    return trace.get_tracer(name)


def add_span_attributes(attributes: dict[str, Any]) -> None:
    """Add attributes to the current span, skipping None values."""
    span = trace.get_current_span()
    if span.is_recording():
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, value)


def record_exception(exception: BaseException) -> None:
    """Record an exception in the current span and mark it failed."""
    span = trace.get_current_span()
    if span.is_recording():
        span.record_exception(exception)
        span.set_status(trace.Status(trace.StatusCode.ERROR))
