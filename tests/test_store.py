from __future__ import annotations

from pathlib import Path

import pytest

from flowkit.tracing import JsonlSpanStore, SpanStatus, span


@pytest.mark.asyncio
async def test_store_round_trips_span_records(tmp_path: Path) -> None:
    store = JsonlSpanStore(tmp_path / "traces" / "spans.jsonl")

    async with span("outer", sink=store) as outer:
        outer.input = {"prompt": "hi"}
        async with span("inner", sink=store) as inner:
            inner.output = [1, 2]
        outer.output = "done"

    records = store.read()
    assert [record.name for record in records] == ["inner", "outer"]
    assert records[0].parent_id == records[1].span_id
    assert records[0].output == [1, 2]
    assert records[1].input == {"prompt": "hi"}
    assert store.find(records[1].span_id) == records[1]
    assert store.find("missing") is None


@pytest.mark.asyncio
async def test_store_read_is_incremental(tmp_path: Path) -> None:
    store = JsonlSpanStore(tmp_path / "spans.jsonl")

    async with span("first", sink=store):
        pass
    assert [record.name for record in store.read()] == ["first"]

    with pytest.raises(RuntimeError):
        async with span("second", sink=store):
            raise RuntimeError("boom")

    records = store.read()
    assert [record.name for record in records] == ["first", "second"]
    assert records[1].status is SpanStatus.ERROR


def test_store_skips_malformed_lines(tmp_path: Path) -> None:
    path = tmp_path / "spans.jsonl"
    path.write_text(
        "not json\n"
        '{"span_id":"a","name":"ok","status":"ok","start_time":1,"end_time":2}\n'
        '{"span_id":"b","name":"null time","status":"ok","start_time":null,"end_time":2}\n'
        '{"span_id":"c","name":"text time","status":"ok","start_time":1,"end_time":"later"}\n'
        '{"name":"no id"}\n',
        encoding="utf-8",
    )

    records = JsonlSpanStore(path).read()

    assert [record.span_id for record in records] == ["a"]


@pytest.mark.asyncio
async def test_archive_then_reset(tmp_path: Path) -> None:
    store = JsonlSpanStore(tmp_path / "spans.jsonl")

    async with span("one", sink=store):
        pass
    archive = store.archive()

    assert archive is not None
    assert archive.exists()
    assert store.read() == []
    assert store.archive() is None

    async with span("two", sink=store):
        pass
    store.reset()
    assert store.read() == []
