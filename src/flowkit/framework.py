"""Flowkit facade: one registry plus the operations that drive it."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any, overload

from loguru import logger

from flowkit.action import Action, ActionKind
from flowkit.ai import embedder as _embedder
from flowkit.ai import evaluator as _evaluator
from flowkit.ai import generate as _generate
from flowkit.ai import model as _model
from flowkit.ai import retriever as _retriever
from flowkit.ai import tool as _tool
from flowkit.ai.document import Document, Message
from flowkit.ai.embedder import Embedding
from flowkit.ai.evaluator import BaseEvalDataPoint, EvalResponse
from flowkit.ai.generate import GenerateResult, Prompt
from flowkit.ai.model import GenerationConfig
from flowkit.ai.streaming import GenerateStream, StreamingCallback
from flowkit.config import Settings, get_settings
from flowkit.errors import ConfigurationError
from flowkit.logging_utils import configure_logging
from flowkit.registry import Registry
from flowkit.tracing.sinks import InMemorySpanSink, MultiSpanSink, SpanSink
from flowkit.tracing.store import JsonlSpanStore

if TYPE_CHECKING:
    from flowkit.plugins.checks.metrics import EvaluationMetric
    from flowkit.plugins.checks.transport import EvaluationTransport, TokenProvider

type Define = Callable[[Callable[..., Any]], Action]


class Flowkit:
    """Entry point for defining actions and running flows.

    Spans of every invocation are kept in ``spans`` and, when
    ``settings.trace_file`` is set, appended to that JSONL file.
    """

    def __init__(self, *, settings: Settings | None = None, sink: SpanSink | None = None) -> None:
        self.settings = settings or get_settings()
        configure_logging(profile=self.settings.log_profile, level=self.settings.log_level)
        self.spans = InMemorySpanSink()
        sinks: list[SpanSink] = [self.spans]
        if sink is not None:
            sinks.append(sink)
        self.store: JsonlSpanStore | None = None
        if self.settings.trace_file is not None:
            self.store = JsonlSpanStore(self.settings.trace_file)
            sinks.append(self.store)
        self.registry = Registry(sink=MultiSpanSink(sinks))
        self._owned_transports: list[Any] = []
        logger.debug("flowkit.init sinks={} max_turns={}", len(sinks), self.settings.max_turns)

    # Definitions. Each works as a plain call or, without ``fn``, as a decorator.

    @overload
    def define_model(self, name: str, fn: None = None, **kwargs: Any) -> Define: ...
    @overload
    def define_model(self, name: str, fn: _model.ModelHandler, **kwargs: Any) -> Action: ...
    def define_model(self, name: str, fn: Any = None, **kwargs: Any) -> Action | Define:
        return self._define(_model.define_model, name, fn, kwargs)

    @overload
    def define_tool(self, name: str, fn: None = None, **kwargs: Any) -> Define: ...
    @overload
    def define_tool(self, name: str, fn: Callable[..., Any], **kwargs: Any) -> Action: ...
    def define_tool(self, name: str, fn: Any = None, **kwargs: Any) -> Action | Define:
        kwargs.setdefault("description", "")
        return self._define(_tool.define_tool, name, fn, kwargs)

    def define_evaluator(self, name: str, fn: Any = None, **kwargs: Any) -> Action | Define:
        return self._define(_evaluator.define_evaluator, name, fn, kwargs)

    def define_embedder(self, name: str, fn: Any = None, **kwargs: Any) -> Action | Define:
        return self._define(_embedder.define_embedder, name, fn, kwargs)

    def define_retriever(self, name: str, fn: Any = None, **kwargs: Any) -> Action | Define:
        return self._define(_retriever.define_retriever, name, fn, kwargs)

    def define_indexer(self, name: str, fn: Any = None, **kwargs: Any) -> Action | Define:
        return self._define(_retriever.define_indexer, name, fn, kwargs)

    def _define(self, define: Callable[..., Action], name: str, fn: Any, kwargs: dict[str, Any]) -> Action | Define:
        if fn is not None:
            return define(self.registry, name, fn, **kwargs)

        def decorator(handler: Callable[..., Any]) -> Action:
            return define(self.registry, name, handler, **kwargs)

        return decorator

    # Operations

    async def generate(
        self,
        model: str,
        *,
        prompt: Prompt | None = None,
        messages: Sequence[Message | dict[str, Any]] | None = None,
        system: str | None = None,
        config: GenerationConfig | dict[str, Any] | None = None,
        tools: Sequence[str] = (),
        on_chunk: StreamingCallback | None = None,
        max_turns: int | None = None,
    ) -> GenerateResult:
        return await _generate.generate(
            self.registry,
            model,
            prompt=prompt,
            messages=messages,
            system=system,
            config=config,
            tools=tools,
            on_chunk=on_chunk,
            max_turns=self.settings.max_turns if max_turns is None else max_turns,
        )

    def generate_stream(self, model: str, **kwargs: Any) -> GenerateStream:
        kwargs.setdefault("max_turns", self.settings.max_turns)
        return _generate.generate_stream(self.registry, model, **kwargs)

    async def evaluate(
        self,
        evaluator: str,
        dataset: Sequence[BaseEvalDataPoint | dict[str, Any]],
        *,
        concurrency: int | None = None,
    ) -> list[EvalResponse]:
        return await _evaluator.evaluate(
            self.registry,
            evaluator,
            dataset,
            concurrency=self.settings.eval_concurrency if concurrency is None else concurrency,
        )

    async def embed(
        self, embedder: str, content: str | Document | Sequence[str | Document], *, options: Any = None
    ) -> list[Embedding]:
        return await _embedder.embed(self.registry, embedder, content, options=options)

    async def retrieve(self, retriever: str, query: str | Document, *, options: Any = None) -> list[Document]:
        return await _retriever.retrieve(self.registry, retriever, query, options=options)

    async def index(self, indexer: str, documents: Sequence[str | Document], *, options: Any = None) -> None:
        await _retriever.index(self.registry, indexer, documents, options=options)

    def list_actions(self, kind: ActionKind | None = None) -> list[Action]:
        return self.registry.list_actions(kind)

    def has(self, name: str) -> bool:
        return self.registry.has(name)

    def use_checks(
        self,
        metrics: Sequence[EvaluationMetric],
        *,
        token_provider: TokenProvider | None = None,
        transport: EvaluationTransport | None = None,
    ) -> list[Action]:
        """Register Checks and Vertex evaluators for ``metrics`` using the evaluation settings.

        Without ``transport`` an ``HttpxTransport`` is built with
        ``settings.http_timeout_seconds`` and closed by ``aclose``.

        Raises:
            ConfigurationError: ``settings.eval_project_id`` is not set
        """
        from flowkit.plugins.checks import EvaluatorFactory, HttpxTransport, checks_evaluators

        if not self.settings.eval_project_id:
            raise ConfigurationError("eval_project_id must be set to use Checks evaluators")
        if transport is None:
            transport = HttpxTransport(token_provider=token_provider, timeout=self.settings.http_timeout_seconds)
            self._owned_transports.append(transport)
        factory = EvaluatorFactory(
            transport,
            project_id=self.settings.eval_project_id,
            location=self.settings.eval_location,
        )
        actions = checks_evaluators(self.registry, factory, metrics)
        logger.info("flowkit.checks_registered evaluators={}", [action.name for action in actions])
        return actions

    async def aclose(self) -> None:
        for transport in self._owned_transports:
            await transport.aclose()
        self._owned_transports.clear()
