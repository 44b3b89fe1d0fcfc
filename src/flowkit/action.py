"""Action descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from flowkit.schema import Shape
from flowkit.types import Handler


class ActionKind(StrEnum):
    MODEL = "model"
    TOOL = "tool"
    EVALUATOR = "evaluator"
    EMBEDDER = "embedder"
    RETRIEVER = "retriever"
    INDEXER = "indexer"


@dataclass(frozen=True)
class Action:
    """Named, typed unit of work and its runtime handle."""

    name: str
    kind: ActionKind
    fn: Handler
    input_shape: Shape[Any] = field(default_factory=Shape.any)
    output_shape: Shape[Any] = field(default_factory=Shape.any)
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return f"/{self.kind.value}/{self.name}"
