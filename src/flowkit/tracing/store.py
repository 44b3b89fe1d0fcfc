"""Append-only JSONL span store."""

from __future__ import annotations

import json
import threading
from datetime import UTC, datetime
from pathlib import Path

from flowkit.tracing.span import SpanRecord

TRACE_FILE_SUFFIX = ".jsonl"


def _parse_line(line: str) -> SpanRecord | None:
    line = line.strip()
    if not line:
        return None
    try:
        return SpanRecord.from_payload(json.loads(line))
    except json.JSONDecodeError:
        return None


class JsonlSpanStore:
    """Span sink writing one JSON line per closed span.

    ``read`` only parses lines appended since the previous call; a file
    that shrank is re-read from the start.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()
        self._cache: list[SpanRecord] = []
        self._offset = 0

    def export(self, record: SpanRecord) -> None:
        line = json.dumps(record.to_payload(), ensure_ascii=False, default=repr)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    def read(self) -> list[SpanRecord]:
        with self._lock:
            if not self.path.exists():
                self._forget()
                return []
            if self.path.stat().st_size < self._offset:
                self._forget()
            with self.path.open("r", encoding="utf-8") as handle:
                handle.seek(self._offset)
                self._cache.extend(record for record in map(_parse_line, handle) if record is not None)
                self._offset = handle.tell()
            return list(self._cache)

    def find(self, span_id: str) -> SpanRecord | None:
        return next((record for record in self.read() if record.span_id == span_id), None)

    def reset(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)
            self._forget()

    def archive(self) -> Path | None:
        """Move the current file aside under a timestamped name and start empty."""
        with self._lock:
            if not self.path.exists():
                return None
            stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
            target = self.path.with_suffix(f"{TRACE_FILE_SUFFIX}.{stamp}.bak")
            self.path.replace(target)
            self._forget()
            return target

    def _forget(self) -> None:
        self._cache = []
        self._offset = 0
