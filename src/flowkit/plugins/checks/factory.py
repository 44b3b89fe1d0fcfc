"""Build evaluator actions backed by a remote scoring endpoint."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from flowkit.action import Action
from flowkit.ai.evaluator import BaseEvalDataPoint, EvalResponse, Score, define_evaluator
from flowkit.errors import EvaluationRequestError, ResponseParseError, SchemaValidationError
from flowkit.plugins.checks.endpoints import ClassifyContentEndpoint, EvaluateInstancesEndpoint, EvaluationEndpoint
from flowkit.plugins.checks.transport import EvaluationTransport
from flowkit.schema import Shape
from flowkit.tracing.span import SpanMetadata, run_in_new_span

if TYPE_CHECKING:
    from flowkit.registry import Registry


@dataclass(frozen=True)
class MetricConfig:
    metric: str
    display_name: str
    definition: str
    response_shape: Any
    checks_eval: bool = False


class EvaluatorFactory:
    """Create evaluators that score one datapoint per provider call."""

    def __init__(self, transport: EvaluationTransport, *, project_id: str, location: str = "us-central1") -> None:
        self._transport = transport
        self.project_id = project_id
        self.location = location

    def endpoint_for(self, config: MetricConfig) -> EvaluationEndpoint:
        if config.checks_eval:
            return ClassifyContentEndpoint(self.project_id)
        return EvaluateInstancesEndpoint(self.project_id, self.location)

    def create[R](
        self,
        registry: Registry,
        config: MetricConfig,
        to_request: Callable[[BaseEvalDataPoint], dict[str, Any]],
        response_handler: Callable[[R], Score],
    ) -> Action:
        endpoint = self.endpoint_for(config)
        shape: Shape[R] = Shape.of(config.response_shape)

        async def score(datapoint: BaseEvalDataPoint) -> EvalResponse:
            response = await self._call(registry, endpoint, to_request(datapoint), shape)
            return EvalResponse(test_case_id=datapoint.test_case_id, evaluation=response_handler(response))

        return define_evaluator(
            registry,
            f"checks/{config.metric.lower()}",
            score,
            display_name=config.display_name,
            definition=config.definition,
            is_billed=True,
        )

    async def _call[R](
        self,
        registry: Registry,
        endpoint: EvaluationEndpoint,
        partial: dict[str, Any],
        shape: Shape[R],
    ) -> R:
        url = endpoint.url
        body = endpoint.build_body(partial)

        async def operation(metadata: SpanMetadata) -> R:
            metadata.input = body
            try:
                raw = await self._transport.post(url, body, endpoint.headers())
            except EvaluationRequestError:
                raise
            except Exception as exc:
                raise EvaluationRequestError(url, exc) from exc
            metadata.output = raw
            try:
                return shape.validate(raw)
            except SchemaValidationError as exc:
                logger.warning("evaluator.response_invalid url={} path={}", url, exc.path)
                raise ResponseParseError(url, exc) from exc

        return await run_in_new_span(endpoint.span_name, operation, sink=registry.sink)
