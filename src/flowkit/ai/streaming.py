"""Streaming delivery of response chunks.

A model streams by awaiting ``ChunkSink.send``. The sink awaits the
caller's callback before returning, so chunks reach the caller in
emission order and never overlap. If the callback fails, ``send`` raises
``StreamAbortedError`` into the model handler and every later ``send``
does the same; the orchestrator then surfaces the callback's exception.
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TYPE_CHECKING, Any

from loguru import logger

from flowkit.ai.document import Message, Part, Role, TextPart
from flowkit.ai.model import GenerateResponseChunk
from flowkit.errors import StreamAbortedError

if TYPE_CHECKING:
    from flowkit.ai.generate import GenerateResult

type StreamingCallback = Callable[[GenerateResponseChunk], Awaitable[None] | None]


class ChunkSink:
    """Delivers one turn's chunks to the caller's callback."""

    def __init__(self, callback: StreamingCallback, *, turn: int = 0) -> None:
        self._callback = callback
        self._turn = turn
        self.chunks: list[GenerateResponseChunk] = []
        self.error: Exception | None = None

    @property
    def turn(self) -> int:
        return self._turn

    async def send(self, chunk: GenerateResponseChunk | str) -> None:
        if self.error is not None:
            raise StreamAbortedError("stream consumer already failed") from self.error
        if isinstance(chunk, str):
            chunk = GenerateResponseChunk.of_text(chunk)
        chunk = chunk.model_copy(update={"turn": self._turn})
        self.chunks.append(chunk)
        try:
            result = self._callback(chunk)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            self.error = exc
            logger.warning("stream.callback_failed turn={} chunks={}", self._turn, len(self.chunks))
            raise StreamAbortedError("stream consumer failed") from exc

    def assemble(self) -> Message:
        """Build the model message from the chunks seen so far, in emission order."""
        parts: list[Part] = []
        for chunk in self.chunks:
            for part in chunk.content:
                if isinstance(part, TextPart) and parts and isinstance(parts[-1], TextPart) and part.metadata is None:
                    parts[-1] = TextPart(text=parts[-1].text + part.text, metadata=parts[-1].metadata)
                else:
                    parts.append(part)
        return Message(role=Role.MODEL, content=parts)


_END = object()


class GenerateStream:
    """Async iterator of chunks plus the final result of one generate call.

    The producer waits after each chunk until the consumer asks for the
    next one. Closing the stream early cancels the producer. A stream can
    be iterated once.
    """

    def __init__(self, run: Callable[[StreamingCallback], Awaitable[GenerateResult]]) -> None:
        self._run = run
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._ack = asyncio.Event()
        self._draining = False
        self._task: asyncio.Task[GenerateResult] | None = None
        self._iterated = False

    def _ensure_started(self) -> asyncio.Task[GenerateResult]:
        if self._task is None:
            self._task = asyncio.create_task(self._run(self._deliver))
            self._task.add_done_callback(lambda _: self._queue.put_nowait(_END))
        return self._task

    async def _deliver(self, chunk: GenerateResponseChunk) -> None:
        if self._draining:
            return
        self._ack.clear()
        self._queue.put_nowait(chunk)
        await self._ack.wait()

    def __aiter__(self) -> AsyncIterator[GenerateResponseChunk]:
        if self._iterated:
            raise RuntimeError("GenerateStream can only be iterated once")
        self._iterated = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[GenerateResponseChunk]:
        task = self._ensure_started()
        try:
            while True:
                item = await self._queue.get()
                if item is _END:
                    break
                yield item
                self._ack.set()
        finally:
            if not task.done():
                task.cancel()
        if not task.cancelled() and (error := task.exception()) is not None:
            raise error

    @property
    def response(self) -> Awaitable[GenerateResult]:
        return self._wait_response()

    async def _wait_response(self) -> GenerateResult:
        task = self._ensure_started()
        # Nobody is pulling chunks any more; let the producer run to completion.
        self._draining = True
        self._ack.set()
        return await task

    async def aclose(self) -> None:
        if self._task is None or self._task.done():
            return
        self._task.cancel()
        await asyncio.wait([self._task])

    async def __aenter__(self) -> GenerateStream:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()
