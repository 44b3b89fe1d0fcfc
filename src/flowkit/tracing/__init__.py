"""Span recording for flowkit actions."""

from flowkit.tracing.sinks import InMemorySpanSink, MultiSpanSink, SpanSink
from flowkit.tracing.span import (
    SpanMetadata,
    SpanRecord,
    SpanStatus,
    current_span,
    current_span_name,
    run_in_new_span,
    span,
)
from flowkit.tracing.store import JsonlSpanStore

__all__ = [
    "InMemorySpanSink",
    "JsonlSpanStore",
    "MultiSpanSink",
    "SpanMetadata",
    "SpanRecord",
    "SpanSink",
    "SpanStatus",
    "current_span",
    "current_span_name",
    "run_in_new_span",
    "span",
]
