"""Action registry and invoker."""

from __future__ import annotations

import inspect
import json
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic_core import to_jsonable_python

from flowkit.action import Action, ActionKind
from flowkit.errors import (
    DuplicateActionError,
    InvalidInputError,
    InvalidOutputError,
    NotFoundError,
    SchemaValidationError,
    ToolNotFoundError,
)
from flowkit.schema import Shape
from flowkit.tracing.span import span
from flowkit.types import Handler

if TYPE_CHECKING:
    from flowkit.ai.streaming import ChunkSink
    from flowkit.tracing.sinks import SpanSink


def _shorten_text(text: str, width: int = 30, placeholder: str = "...") -> str:
    """Shorten text to width characters, cutting in the middle of words if needed."""
    if len(text) <= width:
        return text

    available = width - len(placeholder)
    if available <= 0:
        return placeholder

    return text[:available] + placeholder


class Registry:
    """Registry for models, tools, evaluators, embedders, retrievers and indexers.

    Created once, filled at startup, then read concurrently by invocations.
    Writes take a lock; lookups do not.
    """

    def __init__(self, *, sink: SpanSink | None = None) -> None:
        self._actions: dict[str, Action] = {}
        self._lock = threading.Lock()
        self.sink = sink

    def register(self, action: Action) -> None:
        with self._lock:
            if self.has(action.name):
                raise DuplicateActionError(action.name)
            # Copy-on-write keeps concurrent readers on a consistent dict.
            actions = dict(self._actions)
            actions[action.name] = action
            self._actions = actions
        logger.debug("action.registered key={}", action.key)

    def define(
        self,
        kind: ActionKind,
        name: str,
        *,
        input_type: Any = Any,
        output_type: Any = Any,
        description: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> Callable[[Handler], Action]:
        """Decorator form of ``register``."""

        def decorator(fn: Handler) -> Action:
            action = Action(
                name=name,
                kind=kind,
                fn=fn,
                input_shape=Shape.of(input_type),
                output_shape=Shape.of(output_type),
                description=description or (inspect.getdoc(fn) or ""),
                metadata=dict(metadata or {}),
            )
            self.register(action)
            return action

        return decorator

    def has(self, name: str) -> bool:
        return name in self._actions

    def lookup(self, name: str, kind: ActionKind | None = None) -> Action:
        action = self._actions.get(name)
        if action is None or (kind is not None and action.kind is not kind):
            if kind is ActionKind.TOOL:
                raise ToolNotFoundError(name)
            raise NotFoundError(name, kind.value if kind is not None else None)
        return action

    def list_actions(self, kind: ActionKind | None = None) -> list[Action]:
        actions = self._actions.values()
        return sorted(
            (action for action in actions if kind is None or action.kind is kind),
            key=lambda item: item.name,
        )

    async def invoke(
        self,
        name: str,
        input: Any,
        *,
        kind: ActionKind | None = None,
        streaming: ChunkSink | None = None,
    ) -> Any:
        """Validate ``input``, run the handler, validate and return its output."""
        action = self.lookup(name, kind)
        async with span(action.name, sink=self.sink, attributes={"flowkit.kind": action.kind.value}) as metadata:
            metadata.input = input
            try:
                value = action.input_shape.validate(input)
            except SchemaValidationError as exc:
                raise InvalidInputError(action.name, exc) from exc

            self._log_call(action, value)
            start = time.monotonic()
            try:
                result = await self._dispatch(action, value, streaming)
            except Exception:
                logger.exception("action.invoke.error name={}", action.name)
                raise
            finally:
                duration = time.monotonic() - start
                logger.info("action.invoke.end name={} duration={:.3f}ms", action.name, duration * 1000)

            try:
                output = action.output_shape.validate(result)
            except SchemaValidationError as exc:
                raise InvalidOutputError(action.name, exc) from exc
            metadata.output = output
            return output

    async def _dispatch(self, action: Action, value: Any, streaming: ChunkSink | None) -> Any:
        match action.kind:
            case ActionKind.MODEL:
                result = action.fn(value, streaming)
            case _:
                if streaming is not None:
                    logger.warning("action.streaming_ignored name={} kind={}", action.name, action.kind.value)
                result = action.fn(value)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _log_call(self, action: Action, value: Any) -> None:
        try:
            rendered = json.dumps(to_jsonable_python(value, fallback=repr), ensure_ascii=False)
        except (TypeError, ValueError):
            rendered = repr(value)
        logger.info(
            "action.invoke.start name={} kind={} {{ {} }}",
            action.name,
            action.kind.value,
            _shorten_text(rendered, width=60),
        )
