"""Span sinks."""

from __future__ import annotations

import threading
from collections.abc import Iterable
from typing import Protocol

from loguru import logger

from flowkit.tracing.span import SpanRecord, SpanStatus


class SpanSink(Protocol):
    """Receives every closed span record."""

    def export(self, record: SpanRecord) -> None: ...


class InMemorySpanSink:
    """Keeps span records in memory, in closing order."""

    def __init__(self) -> None:
        self._records: list[SpanRecord] = []
        self._lock = threading.Lock()

    def export(self, record: SpanRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> list[SpanRecord]:
        with self._lock:
            return list(self._records)

    def by_name(self, name: str) -> list[SpanRecord]:
        return [record for record in self.records if record.name == name]

    def by_status(self, status: SpanStatus) -> list[SpanRecord]:
        return [record for record in self.records if record.status is status]

    def children_of(self, record: SpanRecord) -> list[SpanRecord]:
        return [candidate for candidate in self.records if candidate.parent_id == record.span_id]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()


class MultiSpanSink:
    """Fans one record out to several sinks; a failing sink does not stop the others."""

    def __init__(self, sinks: Iterable[SpanSink]) -> None:
        self._sinks = list(sinks)

    def export(self, record: SpanRecord) -> None:
        for sink in self._sinks:
            try:
                sink.export(record)
            except Exception:
                logger.opt(exception=True).warning(
                    "span.sink_failed sink={} name={}", type(sink).__name__, record.name
                )
