"""Tool actions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from flowkit.action import Action, ActionKind
from flowkit.ai.model import ToolDefinition
from flowkit.schema import Shape
from flowkit.types import Handler

if TYPE_CHECKING:
    from flowkit.registry import Registry


def define_tool(
    registry: Registry,
    name: str,
    fn: Handler,
    *,
    description: str,
    input_type: Any = Any,
    output_type: Any = Any,
    metadata: dict[str, Any] | None = None,
) -> Action:
    """Register a tool; the handler receives the validated input value."""
    action = Action(
        name=name,
        kind=ActionKind.TOOL,
        fn=fn,
        input_shape=Shape.of(input_type),
        output_shape=Shape.of(output_type),
        description=description,
        metadata=dict(metadata or {}),
    )
    registry.register(action)
    return action


def to_tool_definition(action: Action) -> ToolDefinition:
    return ToolDefinition(
        name=action.name,
        description=action.description,
        input_schema=action.input_shape.json_schema(),
        output_schema=action.output_shape.json_schema(),
    )
