"""Application-level exception types for flowkit."""

from __future__ import annotations

from typing import Any


class FlowkitError(Exception):
    """Base exception for flowkit."""


class ConfigurationError(FlowkitError):
    """Raised when settings fail validation."""


class SchemaValidationError(FlowkitError):
    """Raised when a value does not match a declared shape."""

    def __init__(self, path: str, expected: str, actual: Any) -> None:
        super().__init__(f"{path or '<root>'}: expected {expected}, got {actual!r}")
        self.path = path
        self.expected = expected
        self.actual = actual


class ActionError(FlowkitError):
    """Base exception for registry and invocation errors."""


class NotFoundError(ActionError):
    """Raised when no action is registered under a name."""

    def __init__(self, name: str, kind: str | None = None) -> None:
        label = f"{kind} action" if kind else "action"
        super().__init__(f"No {label} registered with name '{name}'")
        self.name = name
        self.kind = kind


class ToolNotFoundError(NotFoundError):
    """Raised when a model requests a tool that is not registered."""

    def __init__(self, name: str) -> None:
        super().__init__(name, "tool")


class DuplicateActionError(ActionError):
    """Raised when registering a name that is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Action '{name}' is already registered")
        self.name = name


class InvalidInputError(ActionError):
    """Raised when an action input fails its declared input shape."""

    def __init__(self, name: str, cause: SchemaValidationError) -> None:
        super().__init__(f"Invalid input for action '{name}': {cause}")
        self.name = name
        self.cause = cause


class InvalidOutputError(ActionError):
    """Raised when a handler returns a value that fails its declared output shape."""

    def __init__(self, name: str, cause: SchemaValidationError) -> None:
        super().__init__(f"Action '{name}' produced invalid output: {cause}")
        self.name = name
        self.cause = cause


class GenerationError(FlowkitError):
    """Base exception for orchestrated generation errors."""


class TurnLimitExceededError(GenerationError):
    """Raised when a model keeps requesting tools past the turn budget."""

    def __init__(self, max_turns: int) -> None:
        super().__init__(f"Exceeded maximum of {max_turns} model turns while resolving tool requests")
        self.max_turns = max_turns


class ToolExecutionError(GenerationError):
    """Raised when a requested tool fails during orchestration."""

    def __init__(self, tool_name: str, ref: str | None, cause: BaseException) -> None:
        super().__init__(f"Tool '{tool_name}' failed: {cause}")
        self.tool_name = tool_name
        self.ref = ref
        self.cause = cause


class OrphanToolResponseError(GenerationError):
    """Raised when a tool response has no matching earlier tool request."""

    def __init__(self, name: str, ref: str | None) -> None:
        super().__init__(f"Tool response '{name}' (ref={ref}) has no matching tool request")
        self.name = name
        self.ref = ref


class StreamAbortedError(GenerationError):
    """Raised into a streaming producer when the consumer callback failed."""


class EvaluationError(FlowkitError):
    """Base exception for evaluator errors."""


class EvaluationRequestError(EvaluationError):
    """Raised when the evaluation provider call fails."""

    def __init__(self, url: str, cause: BaseException, *, status_code: int | None = None) -> None:
        super().__init__(f"Error calling {url}: {cause}")
        self.url = url
        self.cause = cause
        self.status_code = status_code


class ResponseParseError(EvaluationError):
    """Raised when the evaluation provider response fails its declared shape."""

    def __init__(self, url: str, cause: SchemaValidationError) -> None:
        super().__init__(f"Error parsing {url} API response: {cause}")
        self.url = url
        self.cause = cause
