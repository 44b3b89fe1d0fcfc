"""Scoped span recording.

A span wraps one operation and records what went in and what came out.
The record is exported exactly once, when the scope exits, whatever the
exit path: a normal return keeps ``output``, an exception keeps ``error``
and cancellation is marked ``cancelled``. Spans opened inside another
span's scope pick it up as their parent, so nesting follows the call
structure.

Each span is mirrored as a ``logfire.span`` so OpenTelemetry backends see
the same tree.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextvars import ContextVar
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import logfire
from loguru import logger
from pydantic_core import to_jsonable_python

if TYPE_CHECKING:
    from flowkit.tracing.sinks import SpanSink


class SpanStatus(StrEnum):
    OK = "ok"
    ERROR = "error"
    CANCELLED = "cancelled"


@dataclass
class SpanMetadata:
    """Mutable handle given to the wrapped operation."""

    name: str
    span_id: str
    parent_id: str | None = None
    input: Any = None
    output: Any = None
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SpanRecord:
    """Immutable record of one closed span."""

    span_id: str
    parent_id: str | None
    name: str
    status: SpanStatus
    input: Any
    output: Any
    error: str | None
    start_time: float
    end_time: float
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    def to_payload(self) -> dict[str, Any]:
        return {
            "span_id": self.span_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "status": self.status.value,
            "input": self.input,
            "output": self.output,
            "error": self.error,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_payload(cls, payload: object) -> SpanRecord | None:
        if not isinstance(payload, dict):
            return None
        span_id = payload.get("span_id")
        name = payload.get("name")
        if not isinstance(span_id, str) or not isinstance(name, str):
            return None
        try:
            status = SpanStatus(payload.get("status"))
        except ValueError:
            return None
        attributes = payload.get("attributes")
        try:
            start_time = float(payload.get("start_time", 0.0))
            end_time = float(payload.get("end_time", 0.0))
        except (TypeError, ValueError):
            return None
        return cls(
            span_id=span_id,
            parent_id=payload.get("parent_id"),
            name=name,
            status=status,
            input=payload.get("input"),
            output=payload.get("output"),
            error=payload.get("error"),
            start_time=start_time,
            end_time=end_time,
            attributes=dict(attributes) if isinstance(attributes, dict) else {},
        )


_current_span: ContextVar[SpanMetadata] = ContextVar("flowkit_span")


def current_span() -> SpanMetadata | None:
    """Return the innermost open span of the running task, if any."""
    return _current_span.get(None)


def current_span_name() -> str:
    """Get the name of the current span in context."""
    metadata = current_span()
    if metadata is None:
        return "-"
    return metadata.name


@contextlib.asynccontextmanager
async def span(
    name: str,
    *,
    sink: SpanSink | None = None,
    attributes: dict[str, Any] | None = None,
) -> AsyncIterator[SpanMetadata]:
    """Open a span for the enclosed block and export its record on exit."""
    parent = current_span()
    metadata = SpanMetadata(
        name=name,
        span_id=uuid.uuid4().hex[:16],
        parent_id=parent.span_id if parent is not None else None,
        attributes=dict(attributes or {}),
    )
    token = _current_span.set(metadata)
    start = time.time()
    status = SpanStatus.ERROR
    error: str | None = None
    try:
        with logfire.span("flowkit {span}", span=name, _span_name=name) as otel_span:
            try:
                yield metadata
            finally:
                otel_span.set_attribute("flowkit.input", _snapshot(metadata.input))
        status = SpanStatus.OK
    except asyncio.CancelledError:
        status = SpanStatus.CANCELLED
        error = "cancelled"
        raise
    except BaseException as exc:
        error = f"{type(exc).__name__}: {exc}"
        raise
    finally:
        _current_span.reset(token)
        record = SpanRecord(
            span_id=metadata.span_id,
            parent_id=metadata.parent_id,
            name=name,
            status=status,
            input=_snapshot(metadata.input),
            output=_snapshot(metadata.output) if status is SpanStatus.OK else None,
            error=error,
            start_time=start,
            end_time=time.time(),
            attributes=_snapshot(metadata.attributes),
        )
        _export(sink, record)


async def run_in_new_span[T](
    name: str,
    operation: Callable[[SpanMetadata], Awaitable[T]],
    *,
    sink: SpanSink | None = None,
    attributes: dict[str, Any] | None = None,
) -> T:
    """Run ``operation`` inside a new span and return its result."""
    async with span(name, sink=sink, attributes=attributes) as metadata:
        return await operation(metadata)


def _snapshot(value: Any) -> Any:
    try:
        return to_jsonable_python(value, fallback=repr)
    except Exception:
        logger.opt(exception=True).warning("span.snapshot_failed type={}", type(value).__name__)
    try:
        return repr(value)
    except Exception:
        return None


def _export(sink: SpanSink | None, record: SpanRecord) -> None:
    logger.debug(
        "span.end name={} status={} duration={:.3f}ms",
        record.name,
        record.status.value,
        record.duration_ms,
    )
    if sink is None:
        return
    try:
        sink.export(record)
    except Exception:
        logger.opt(exception=True).warning("span.export_failed name={} span_id={}", record.name, record.span_id)
