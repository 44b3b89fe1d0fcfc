"""Evaluator actions and batch evaluation."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Sequence
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, Field

from flowkit.action import Action, ActionKind
from flowkit.schema import Shape
from flowkit.tracing.span import span

if TYPE_CHECKING:
    from flowkit.registry import Registry


class EvalStatus(StrEnum):
    PASS = "PASS"
    FAIL = "FAIL"
    UNKNOWN = "UNKNOWN"


class BaseEvalDataPoint(BaseModel):
    """One test case submitted to an evaluator."""

    test_case_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    input: Any = None
    output: Any = None
    context: list[Any] | None = None
    reference: Any = None
    trace_ids: list[str] | None = None


class ScoreDetails(BaseModel):
    reasoning: str | None = None


class Score(BaseModel):
    score: float | bool | str | None = None
    status: EvalStatus | None = None
    error: str | None = None
    details: ScoreDetails | None = None


class EvalResponse(BaseModel):
    test_case_id: str
    evaluation: Score
    sample_index: int | None = None
    trace_id: str | None = None


type EvaluatorFn = Callable[[BaseEvalDataPoint], EvalResponse | Awaitable[EvalResponse]]


def define_evaluator(
    registry: Registry,
    name: str,
    fn: EvaluatorFn,
    *,
    display_name: str,
    definition: str,
    is_billed: bool = False,
) -> Action:
    """Register an evaluator scoring one datapoint per call."""
    action = Action(
        name=name,
        kind=ActionKind.EVALUATOR,
        fn=fn,
        input_shape=Shape.of(BaseEvalDataPoint),
        output_shape=Shape.of(EvalResponse),
        description=definition,
        metadata={"evaluator": {"display_name": display_name, "definition": definition, "is_billed": is_billed}},
    )
    registry.register(action)
    return action


async def evaluate(
    registry: Registry,
    evaluator: str,
    dataset: Sequence[BaseEvalDataPoint | dict[str, Any]],
    *,
    concurrency: int = 8,
) -> list[EvalResponse]:
    """Score every datapoint; a failing datapoint gets an error score instead of failing the batch.

    Datapoints are independent and run concurrently, at most ``concurrency``
    at a time. Results come back in dataset order.
    """
    registry.lookup(evaluator, ActionKind.EVALUATOR)
    datapoints = [BaseEvalDataPoint.model_validate(item) for item in dataset]
    results: list[EvalResponse | None] = [None] * len(datapoints)
    semaphore = asyncio.Semaphore(concurrency)

    async def run_one(index: int, datapoint: BaseEvalDataPoint) -> None:
        async with semaphore:
            try:
                response = await registry.invoke(evaluator, datapoint, kind=ActionKind.EVALUATOR)
            except Exception as exc:
                logger.warning(
                    "evaluate.datapoint_failed evaluator={} test_case_id={} error={}",
                    evaluator,
                    datapoint.test_case_id,
                    exc,
                )
                response = EvalResponse(
                    test_case_id=datapoint.test_case_id,
                    evaluation=Score(status=EvalStatus.UNKNOWN, error=f"{type(exc).__name__}: {exc}"),
                )
        results[index] = response.model_copy(update={"sample_index": index})

    async with span(f"evaluate/{evaluator}", sink=registry.sink) as metadata:
        metadata.input = {"evaluator": evaluator, "datapoints": len(datapoints)}
        async with asyncio.TaskGroup() as group:
            for index, datapoint in enumerate(datapoints):
                group.create_task(run_one(index, datapoint))
        collected = [result for result in results if result is not None]
        metadata.output = {"scored": len(collected)}
    return collected
