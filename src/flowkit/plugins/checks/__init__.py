"""Evaluators scored by Google Checks and Vertex AI evaluation endpoints."""

from flowkit.plugins.checks.endpoints import ClassifyContentEndpoint, EvaluateInstancesEndpoint, EvaluationEndpoint
from flowkit.plugins.checks.factory import EvaluatorFactory, MetricConfig
from flowkit.plugins.checks.metrics import (
    ChecksEvaluationMetricConfig,
    ChecksEvaluationMetricType,
    ClassifyContentResponse,
    PointwiseMetricResult,
    VertexEvaluationMetricType,
    checks_evaluators,
    create_checks_evaluator,
    create_vertex_evaluator,
)
from flowkit.plugins.checks.transport import CLIENT_HEADER, EvaluationTransport, HttpxTransport

__all__ = [
    "CLIENT_HEADER",
    "ChecksEvaluationMetricConfig",
    "ChecksEvaluationMetricType",
    "ClassifyContentEndpoint",
    "ClassifyContentResponse",
    "EvaluateInstancesEndpoint",
    "EvaluationEndpoint",
    "EvaluationTransport",
    "EvaluatorFactory",
    "HttpxTransport",
    "MetricConfig",
    "PointwiseMetricResult",
    "VertexEvaluationMetricType",
    "checks_evaluators",
    "create_checks_evaluator",
    "create_vertex_evaluator",
]
