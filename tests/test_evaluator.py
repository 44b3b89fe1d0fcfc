from __future__ import annotations

from typing import Any

import pytest

from flowkit.ai.evaluator import BaseEvalDataPoint, EvalResponse, EvalStatus, Score, define_evaluator, evaluate
from flowkit.errors import EvaluationError, EvaluationRequestError, ResponseParseError
from flowkit.plugins.checks import (
    ChecksEvaluationMetricConfig,
    ChecksEvaluationMetricType,
    EvaluatorFactory,
    VertexEvaluationMetricType,
    checks_evaluators,
)
from flowkit.registry import Registry
from flowkit.tracing import InMemorySpanSink, SpanStatus


class FakeTransport:
    def __init__(self, response: Any = None, *, error: Exception | None = None) -> None:
        self.response = response
        self.error = error
        self.calls: list[tuple[str, dict[str, Any], dict[str, str]]] = []

    async def post(self, url: str, body: dict[str, Any], headers: dict[str, str]) -> Any:
        self.calls.append((url, body, headers))
        if self.error is not None:
            raise self.error
        return self.response


def _harassment_response(violation: str) -> dict[str, Any]:
    return {"policyResults": [{"policyType": "HARASSMENT", "score": 0.8, "violationResult": violation}]}


@pytest.mark.asyncio
async def test_checks_metric_calls_classify_content_once() -> None:
    sink = InMemorySpanSink()
    registry = Registry(sink=sink)
    transport = FakeTransport(_harassment_response("VIOLATIVE"))
    factory = EvaluatorFactory(transport, project_id="my-project")
    [action] = checks_evaluators(registry, factory, [ChecksEvaluationMetricType.HARASSMENT])

    response = await registry.invoke(action.name, {"test_case_id": "case-1", "output": "I hate you"})

    assert action.name == "checks/harassment"
    assert response == EvalResponse(
        test_case_id="case-1",
        evaluation=Score(score=0.8, status=EvalStatus.FAIL, details={"reasoning": "Status VIOLATIVE"}),
    )
    [(url, body, headers)] = transport.calls
    assert url == "https://checks.googleapis.com/v1alpha/aisafety:classifyContent"
    assert headers == {"X-Goog-User-Project": "my-project"}
    assert body == {
        "input": {"text_input": {"content": "I hate you"}},
        "policies": [{"policy_type": "HARASSMENT"}],
    }
    [record] = sink.by_name("ChecksService#classifyContent")
    assert record.status is SpanStatus.OK
    assert record.input == body
    assert record.output == _harassment_response("VIOLATIVE")


@pytest.mark.asyncio
async def test_checks_metric_threshold_and_pass_status() -> None:
    registry = Registry()
    transport = FakeTransport(_harassment_response("NON_VIOLATIVE"))
    factory = EvaluatorFactory(transport, project_id="p")
    checks_evaluators(
        registry,
        factory,
        [ChecksEvaluationMetricConfig(type=ChecksEvaluationMetricType.HARASSMENT, threshold=0.5)],
    )

    response = await registry.invoke("checks/harassment", {"output": "hello"})

    assert response.evaluation.status is EvalStatus.PASS
    assert transport.calls[0][1]["policies"] == [{"policy_type": "HARASSMENT", "threshold": 0.5}]


@pytest.mark.asyncio
async def test_checks_metric_without_matching_policy_is_unknown() -> None:
    registry = Registry()
    factory = EvaluatorFactory(FakeTransport({"policyResults": []}), project_id="p")
    checks_evaluators(registry, factory, [ChecksEvaluationMetricType.HATE_SPEECH])

    response = await registry.invoke("checks/hate_speech", {"output": "hello"})

    assert response.evaluation.status is EvalStatus.UNKNOWN
    assert response.evaluation.error is not None


@pytest.mark.asyncio
async def test_vertex_metric_calls_evaluate_instances() -> None:
    sink = InMemorySpanSink()
    registry = Registry(sink=sink)
    transport = FakeTransport({"groundednessResult": {"score": 1, "explanation": "supported", "confidence": 0.9}})
    factory = EvaluatorFactory(transport, project_id="proj", location="europe-west4")
    checks_evaluators(registry, factory, [VertexEvaluationMetricType.GROUNDEDNESS])

    response = await registry.invoke(
        "checks/groundedness",
        {"test_case_id": "g1", "output": "Paris", "context": ["Paris is the capital of France."]},
    )

    assert response.evaluation.score == 1
    assert response.evaluation.details.reasoning == "supported"
    [(url, body, headers)] = transport.calls
    assert url == (
        "https://europe-west4-aiplatform.googleapis.com/v1beta1/"
        "projects/proj/locations/europe-west4:evaluateInstances"
    )
    assert headers == {}
    assert body == {
        "location": "projects/proj/locations/europe-west4",
        "groundedness_input": {
            "metric_spec": {},
            "instance": {"prediction": "Paris", "context": "Paris is the capital of France."},
        },
    }
    assert len(sink.by_name("EvaluationService#evaluateInstances")) == 1


@pytest.mark.asyncio
async def test_malformed_response_raises_parse_error() -> None:
    registry = Registry()
    factory = EvaluatorFactory(FakeTransport({"fluencyResult": {"explanation": "no score"}}), project_id="p")
    checks_evaluators(registry, factory, [VertexEvaluationMetricType.FLUENCY])

    with pytest.raises(ResponseParseError) as exc_info:
        await registry.invoke("checks/fluency", {"output": "text"})

    assert exc_info.value.url.endswith(":evaluateInstances")
    assert str(exc_info.value).startswith(f"Error parsing {exc_info.value.url} API response:")


@pytest.mark.asyncio
async def test_transport_failure_raises_request_error() -> None:
    registry = Registry()
    factory = EvaluatorFactory(FakeTransport(error=ConnectionError("refused")), project_id="p")
    checks_evaluators(registry, factory, [ChecksEvaluationMetricType.MEDICAL_INFO])

    with pytest.raises(EvaluationRequestError) as exc_info:
        await registry.invoke("checks/medical_info", {"output": "take two"})

    assert exc_info.value.url == "https://checks.googleapis.com/v1alpha/aisafety:classifyContent"


@pytest.mark.asyncio
async def test_datapoint_without_output_is_rejected_before_the_call() -> None:
    registry = Registry()
    transport = FakeTransport(_harassment_response("VIOLATIVE"))
    checks_evaluators(registry, EvaluatorFactory(transport, project_id="p"), [ChecksEvaluationMetricType.HARASSMENT])

    with pytest.raises(EvaluationError):
        await registry.invoke("checks/harassment", {"input": "question only"})

    assert transport.calls == []


@pytest.mark.asyncio
async def test_batch_evaluation_keeps_order_and_captures_failures() -> None:
    sink = InMemorySpanSink()
    registry = Registry(sink=sink)

    async def length_judge(datapoint: BaseEvalDataPoint) -> EvalResponse:
        if datapoint.output == "boom":
            raise RuntimeError("judge crashed")
        return EvalResponse(
            test_case_id=datapoint.test_case_id,
            evaluation=Score(score=len(datapoint.output), status=EvalStatus.PASS),
        )

    define_evaluator(registry, "custom/length", length_judge, display_name="Length", definition="Counts characters")
    dataset = [
        {"test_case_id": "a", "output": "one"},
        BaseEvalDataPoint(test_case_id="b", output="boom"),
        {"test_case_id": "c", "output": "three"},
    ]

    results = await evaluate(registry, "custom/length", dataset, concurrency=2)

    assert [result.test_case_id for result in results] == ["a", "b", "c"]
    assert [result.sample_index for result in results] == [0, 1, 2]
    assert results[0].evaluation.score == 3
    assert results[1].evaluation.status is EvalStatus.UNKNOWN
    assert results[1].evaluation.error == "RuntimeError: judge crashed"
    assert results[2].evaluation.score == 5
    [batch] = sink.by_name("evaluate/custom/length")
    assert batch.status is SpanStatus.OK
    assert len(sink.children_of(batch)) == 3


def test_datapoint_gets_generated_test_case_id() -> None:
    first = BaseEvalDataPoint(output="x")
    second = BaseEvalDataPoint(output="x")

    assert first.test_case_id
    assert first.test_case_id != second.test_case_id
