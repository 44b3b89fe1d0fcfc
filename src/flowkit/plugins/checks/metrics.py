"""Built-in Checks policies and Vertex pointwise metrics."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, create_model

from flowkit.action import Action
from flowkit.ai.evaluator import BaseEvalDataPoint, EvalStatus, Score, ScoreDetails
from flowkit.errors import EvaluationError
from flowkit.plugins.checks.factory import EvaluatorFactory, MetricConfig

if TYPE_CHECKING:
    from flowkit.registry import Registry


class ChecksEvaluationMetricType(StrEnum):
    DANGEROUS_CONTENT = "DANGEROUS_CONTENT"
    PII_SOLICITING_RECITING = "PII_SOLICITING_RECITING"
    HARASSMENT = "HARASSMENT"
    SEXUALLY_EXPLICIT = "SEXUALLY_EXPLICIT"
    HATE_SPEECH = "HATE_SPEECH"
    MEDICAL_INFO = "MEDICAL_INFO"
    VIOLENCE_AND_GORE = "VIOLENCE_AND_GORE"
    OBSCENITY_AND_PROFANITY = "OBSCENITY_AND_PROFANITY"


class VertexEvaluationMetricType(StrEnum):
    FLUENCY = "FLUENCY"
    SAFETY = "SAFETY"
    GROUNDEDNESS = "GROUNDEDNESS"


@dataclass(frozen=True)
class ChecksEvaluationMetricConfig:
    type: ChecksEvaluationMetricType
    threshold: float | None = None


type EvaluationMetric = ChecksEvaluationMetricType | ChecksEvaluationMetricConfig | VertexEvaluationMetricType


class PolicyResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    policy_type: str = Field(alias="policyType")
    score: float | None = None
    violation_result: str = Field(default="CLASSIFICATION_UNSPECIFIED", alias="violationResult")


class ClassifyContentResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    policy_results: list[PolicyResult] = Field(default_factory=list, alias="policyResults")


class PointwiseMetricResult(BaseModel):
    score: float
    explanation: str | None = None
    confidence: float | None = None


_CHECKS_DEFINITIONS = {
    ChecksEvaluationMetricType.DANGEROUS_CONTENT: (
        "Content that facilitates or promotes harmful goods, services or activities."
    ),
    ChecksEvaluationMetricType.PII_SOLICITING_RECITING: (
        "Content that reveals or asks for personal identifiable information."
    ),
    ChecksEvaluationMetricType.HARASSMENT: (
        "Content that is malicious, intimidating, bullying or abusive toward another person."
    ),
    ChecksEvaluationMetricType.SEXUALLY_EXPLICIT: "Content that is sexually explicit in nature.",
    ChecksEvaluationMetricType.HATE_SPEECH: "Content that is generally accepted as hate speech.",
    ChecksEvaluationMetricType.MEDICAL_INFO: "Content that facilitates harm by giving medical advice.",
    ChecksEvaluationMetricType.VIOLENCE_AND_GORE: (
        "Content that contains gratuitous descriptions of violence or gore."
    ),
    ChecksEvaluationMetricType.OBSCENITY_AND_PROFANITY: "Content that contains vulgar, profane or offensive language.",
}

_VERTEX_DEFINITIONS = {
    VertexEvaluationMetricType.FLUENCY: "Assesses the language mastery of an output",
    VertexEvaluationMetricType.SAFETY: "Assesses the level of safety of an output",
    VertexEvaluationMetricType.GROUNDEDNESS: (
        "Assesses the ability to provide or reference information included only in the context"
    ),
}


def _output_text(datapoint: BaseEvalDataPoint) -> str:
    if datapoint.output is None:
        raise EvaluationError(f"Datapoint '{datapoint.test_case_id}' has no output to evaluate")
    if isinstance(datapoint.output, str):
        return datapoint.output
    return json.dumps(datapoint.output, ensure_ascii=False)


def create_checks_evaluator(
    registry: Registry,
    factory: EvaluatorFactory,
    metric: ChecksEvaluationMetricType | ChecksEvaluationMetricConfig,
) -> Action:
    """Score a datapoint output against one Checks policy via classifyContent."""
    if not isinstance(metric, ChecksEvaluationMetricConfig):
        metric = ChecksEvaluationMetricConfig(type=metric)
    policy_type = metric.type

    def to_request(datapoint: BaseEvalDataPoint) -> dict[str, Any]:
        policy: dict[str, Any] = {"policy_type": policy_type.value}
        if metric.threshold is not None:
            policy["threshold"] = metric.threshold
        return {"input": {"text_input": {"content": _output_text(datapoint)}}, "policies": [policy]}

    def response_handler(response: ClassifyContentResponse) -> Score:
        for result in response.policy_results:
            if result.policy_type != policy_type.value:
                continue
            status = EvalStatus.FAIL if result.violation_result == "VIOLATIVE" else EvalStatus.PASS
            return Score(
                score=result.score,
                status=status,
                details=ScoreDetails(reasoning=f"Status {result.violation_result}"),
            )
        return Score(status=EvalStatus.UNKNOWN, error=f"No result for policy {policy_type.value} in response")

    config = MetricConfig(
        metric=policy_type.value,
        display_name=policy_type.value.replace("_", " ").title(),
        definition=_CHECKS_DEFINITIONS[policy_type],
        response_shape=ClassifyContentResponse,
        checks_eval=True,
    )
    return factory.create(registry, config, to_request, response_handler)


def create_vertex_evaluator(
    registry: Registry, factory: EvaluatorFactory, metric: VertexEvaluationMetricType
) -> Action:
    """Score a datapoint with a Vertex pointwise metric via evaluateInstances."""
    prefix = metric.value.lower()
    result_key = f"{prefix}Result"
    response_shape = create_model(f"{metric.value.title()}Response", **{result_key: (PointwiseMetricResult, ...)})

    def to_request(datapoint: BaseEvalDataPoint) -> dict[str, Any]:
        instance: dict[str, Any] = {"prediction": _output_text(datapoint)}
        if metric is VertexEvaluationMetricType.GROUNDEDNESS:
            instance["context"] = " ".join(str(item) for item in datapoint.context or ())
        return {f"{prefix}_input": {"metric_spec": {}, "instance": instance}}

    def response_handler(response: BaseModel) -> Score:
        result: PointwiseMetricResult = getattr(response, result_key)
        return Score(score=result.score, details=ScoreDetails(reasoning=result.explanation))

    config = MetricConfig(
        metric=metric.value,
        display_name=metric.value.title(),
        definition=_VERTEX_DEFINITIONS[metric],
        response_shape=response_shape,
    )
    return factory.create(registry, config, to_request, response_handler)


def checks_evaluators(
    registry: Registry, factory: EvaluatorFactory, metrics: Sequence[EvaluationMetric]
) -> list[Action]:
    """Register one evaluator per metric."""
    actions: list[Action] = []
    for metric in metrics:
        if isinstance(metric, VertexEvaluationMetricType):
            actions.append(create_vertex_evaluator(registry, factory, metric))
        else:
            actions.append(create_checks_evaluator(registry, factory, metric))
    return actions
