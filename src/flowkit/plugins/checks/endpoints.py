"""Evaluation endpoint strategies.

A metric is scored by exactly one endpoint. Each endpoint knows its URL,
the fixed span name its calls are recorded under, how to complete a
partial request body, and which extra headers it needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

CHECKS_CLASSIFY_URL = "https://checks.googleapis.com/v1alpha/aisafety:classifyContent"


class EvaluationEndpoint(Protocol):
    span_name: str

    @property
    def url(self) -> str: ...

    def build_body(self, partial: dict[str, Any]) -> dict[str, Any]: ...

    def headers(self) -> dict[str, str]: ...


@dataclass(frozen=True)
class EvaluateInstancesEndpoint:
    project_id: str
    location: str
    span_name: str = "EvaluationService#evaluateInstances"

    @property
    def location_name(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}"

    @property
    def url(self) -> str:
        return f"https://{self.location}-aiplatform.googleapis.com/v1beta1/{self.location_name}:evaluateInstances"

    def build_body(self, partial: dict[str, Any]) -> dict[str, Any]:
        return {"location": self.location_name, **partial}

    def headers(self) -> dict[str, str]:
        return {}


@dataclass(frozen=True)
class ClassifyContentEndpoint:
    project_id: str
    span_name: str = "ChecksService#classifyContent"

    @property
    def url(self) -> str:
        return CHECKS_CLASSIFY_URL

    def build_body(self, partial: dict[str, Any]) -> dict[str, Any]:
        return dict(partial)

    def headers(self) -> dict[str, str]:
        return {"X-Goog-User-Project": self.project_id}
