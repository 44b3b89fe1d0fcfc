from __future__ import annotations

import asyncio

import pytest
from loguru import logger

from flowkit.logging_utils import configure_logging
from flowkit.tracing import (
    InMemorySpanSink,
    MultiSpanSink,
    SpanRecord,
    SpanStatus,
    current_span_name,
    run_in_new_span,
    span,
)


class _BrokenSink:
    def export(self, record: SpanRecord) -> None:
        raise RuntimeError("sink down")


@pytest.mark.asyncio
async def test_span_records_input_and_output() -> None:
    sink = InMemorySpanSink()

    async with span("lookup", sink=sink) as metadata:
        metadata.input = {"query": "weather"}
        metadata.output = ["sunny"]

    [record] = sink.records
    assert record.name == "lookup"
    assert record.status is SpanStatus.OK
    assert record.input == {"query": "weather"}
    assert record.output == ["sunny"]
    assert record.error is None
    assert record.end_time >= record.start_time


@pytest.mark.asyncio
async def test_nested_spans_follow_call_structure() -> None:
    sink = InMemorySpanSink()

    async with span("outer", sink=sink):
        assert current_span_name() == "outer"
        async with span("inner", sink=sink):
            assert current_span_name() == "inner"
        assert current_span_name() == "outer"
    assert current_span_name() == "-"

    [outer] = sink.by_name("outer")
    [inner] = sink.by_name("inner")
    assert outer.parent_id is None
    assert inner.parent_id == outer.span_id
    assert sink.children_of(outer) == [inner]
    # Inner closes first.
    assert [record.name for record in sink.records] == ["inner", "outer"]


@pytest.mark.asyncio
async def test_span_marks_error_and_drops_output() -> None:
    sink = InMemorySpanSink()

    with pytest.raises(ValueError, match="bad value"):
        async with span("parse", sink=sink) as metadata:
            metadata.input = "x"
            metadata.output = "partial"
            raise ValueError("bad value")

    [record] = sink.records
    assert record.status is SpanStatus.ERROR
    assert record.error == "ValueError: bad value"
    assert record.output is None
    assert record.input == "x"


@pytest.mark.asyncio
async def test_unserializable_input_keeps_original_error() -> None:
    sink = InMemorySpanSink()
    looped: dict[str, object] = {}
    looped["self"] = looped

    with pytest.raises(RuntimeError, match="original"):
        async with span("loop", sink=sink) as metadata:
            metadata.input = looped
            raise RuntimeError("original")

    [record] = sink.records
    assert record.status is SpanStatus.ERROR
    assert record.error == "RuntimeError: original"
    assert isinstance(record.input, str)


@pytest.mark.asyncio
async def test_span_marks_cancelled() -> None:
    sink = InMemorySpanSink()
    started = asyncio.Event()

    async def work() -> None:
        async with span("slow", sink=sink):
            started.set()
            await asyncio.Event().wait()

    task = asyncio.create_task(work())
    await started.wait()
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    [record] = sink.records
    assert record.status is SpanStatus.CANCELLED
    assert record.error == "cancelled"


@pytest.mark.asyncio
async def test_concurrent_spans_get_their_own_parents() -> None:
    sink = InMemorySpanSink()

    async def child(name: str) -> None:
        async with span(name, sink=sink):
            await asyncio.sleep(0)

    async with span("root", sink=sink):
        await asyncio.gather(child("a"), child("b"))

    [root] = sink.by_name("root")
    assert sorted(record.name for record in sink.children_of(root)) == ["a", "b"]


@pytest.mark.asyncio
async def test_sink_failure_does_not_break_the_operation() -> None:
    kept = InMemorySpanSink()
    sink = MultiSpanSink([_BrokenSink(), kept])

    async def operation(metadata) -> int:
        metadata.input = 1
        return 2

    assert await run_in_new_span("safe", operation, sink=sink) == 2
    assert [record.name for record in kept.records] == ["safe"]

    assert await run_in_new_span("alone", operation, sink=_BrokenSink()) == 2


def test_span_record_payload_round_trip() -> None:
    record = SpanRecord(
        span_id="abc",
        parent_id=None,
        name="tool",
        status=SpanStatus.ERROR,
        input={"a": 1},
        output=None,
        error="RuntimeError: boom",
        start_time=1.0,
        end_time=1.5,
        attributes={"flowkit.kind": "tool"},
    )

    assert SpanRecord.from_payload(record.to_payload()) == record
    assert record.duration_ms == 500.0
    assert SpanRecord.from_payload({"span_id": "x"}) is None
    assert SpanRecord.from_payload({"span_id": "x", "name": "y", "status": "weird"}) is None


@pytest.mark.asyncio
async def test_log_records_carry_span_name() -> None:
    configure_logging(profile="default", level="DEBUG")
    seen: list[str] = []
    handler_id = logger.add(lambda message: seen.append(message.record["extra"]["span"]), level="DEBUG")
    try:
        async with span("tagged"):
            logger.info("inside")
        logger.info("outside")
    finally:
        logger.remove(handler_id)

    assert "tagged" in seen
    assert seen[-1] == "-"
