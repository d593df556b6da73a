"""
Distributed tracing with OpenTelemetry.

Spans cover store queries, chunk transmissions, partition runs and whole
driver invocations.
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, instrument_requests, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "instrument_requests",
    "trace_operation",
    "add_span_attributes",
    "add_span_event",
]
