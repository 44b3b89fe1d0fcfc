"""Model request/response contract and model action definition."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from flowkit.action import Action, ActionKind
from flowkit.ai.document import Message, Part, TextPart, ToolRequest, text_of
from flowkit.schema import Shape

if TYPE_CHECKING:
    from flowkit.ai.streaming import ChunkSink
    from flowkit.registry import Registry


class FinishReason(StrEnum):
    STOP = "stop"
    LENGTH = "length"
    BLOCKED = "blocked"
    INTERRUPTED = "interrupted"
    OTHER = "other"
    UNKNOWN = "unknown"


class GenerationConfig(BaseModel):
    # Provider-specific options pass through untouched.
    model_config = ConfigDict(extra="allow")

    candidates: int = Field(default=1, ge=1)
    temperature: float | None = None
    max_output_tokens: int | None = None
    top_k: int | None = None
    top_p: float | None = None
    stop_sequences: list[str] | None = None


class ToolDefinition(BaseModel):
    name: str
    description: str = ""
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None


class GenerationUsage(BaseModel):
    input_tokens: int = Field(default=0, ge=0)
    output_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    input_characters: int = Field(default=0, ge=0)
    output_characters: int = Field(default=0, ge=0)

    def __add__(self, other: GenerationUsage) -> GenerationUsage:
        return GenerationUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            input_characters=self.input_characters + other.input_characters,
            output_characters=self.output_characters + other.output_characters,
        )


class GenerateRequest(BaseModel):
    messages: list[Message]
    config: GenerationConfig = Field(default_factory=GenerationConfig)
    tools: list[ToolDefinition] = Field(default_factory=list)


class Candidate(BaseModel):
    index: int = 0
    message: Message
    finish_reason: FinishReason = FinishReason.UNKNOWN
    finish_message: str | None = None

    @property
    def text(self) -> str:
        return self.message.text


class GenerateResponse(BaseModel):
    candidates: list[Candidate] = Field(default_factory=list)
    usage: GenerationUsage = Field(default_factory=GenerationUsage)
    request: GenerateRequest | None = None
    custom: Any = None

    @property
    def text(self) -> str:
        if not self.candidates:
            return ""
        return self.candidates[0].text

    @property
    def tool_requests(self) -> list[ToolRequest]:
        if not self.candidates:
            return []
        return self.candidates[0].message.tool_requests


class GenerateResponseChunk(BaseModel):
    """Incremental piece of a streamed response."""

    index: int = 0
    turn: int = 0
    content: list[Part] = Field(default_factory=list)
    custom: Any = None

    @classmethod
    def of_text(cls, text: str, *, index: int = 0) -> GenerateResponseChunk:
        return cls(index=index, content=[TextPart(text=text)])

    @property
    def text(self) -> str:
        return text_of(self.content)


type ModelHandler = Callable[
    [GenerateRequest, ChunkSink | None],
    GenerateResponse | dict[str, Any] | Awaitable[GenerateResponse | dict[str, Any]],
]


def define_model(
    registry: Registry,
    name: str,
    fn: ModelHandler,
    *,
    description: str = "",
    metadata: dict[str, Any] | None = None,
) -> Action:
    """Register a model action.

    The handler receives the request and, when the caller streams, a
    ``ChunkSink`` to push partial content through. It returns the complete
    response either way.
    """
    action = Action(
        name=name,
        kind=ActionKind.MODEL,
        fn=fn,
        input_shape=Shape.of(GenerateRequest),
        output_shape=Shape.of(GenerateResponse),
        description=description,
        metadata=dict(metadata or {}),
    )
    registry.register(action)
    return action
