"""Messages, content parts and documents."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Role(StrEnum):
    USER = "user"
    MODEL = "model"
    TOOL = "tool"
    SYSTEM = "system"


class Media(BaseModel):
    url: str
    content_type: str | None = None


class ToolRequest(BaseModel):
    name: str
    ref: str | None = None
    input: Any = None


class ToolResponse(BaseModel):
    name: str
    ref: str | None = None
    output: Any = None


class _PartBase(BaseModel):
    # Unknown keys are rejected so that each payload matches one variant only.
    model_config = ConfigDict(extra="forbid", frozen=True)

    metadata: dict[str, Any] | None = None


class TextPart(_PartBase):
    text: str


class MediaPart(_PartBase):
    media: Media


class ToolRequestPart(_PartBase):
    tool_request: ToolRequest


class ToolResponsePart(_PartBase):
    tool_response: ToolResponse


Part = TextPart | MediaPart | ToolRequestPart | ToolResponsePart


def text_of(parts: list[Part]) -> str:
    return "".join(part.text for part in parts if isinstance(part, TextPart))


class Message(BaseModel):
    """One turn of a generation exchange."""

    role: Role
    content: list[Part] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role=Role.USER, content=[TextPart(text=text)])

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role=Role.SYSTEM, content=[TextPart(text=text)])

    @property
    def text(self) -> str:
        return text_of(self.content)

    @property
    def media(self) -> list[Media]:
        return [part.media for part in self.content if isinstance(part, MediaPart)]

    @property
    def tool_requests(self) -> list[ToolRequest]:
        return [part.tool_request for part in self.content if isinstance(part, ToolRequestPart)]

    @property
    def tool_responses(self) -> list[ToolResponse]:
        return [part.tool_response for part in self.content if isinstance(part, ToolResponsePart)]


class Document(BaseModel):
    """Retrievable unit of content."""

    content: list[Part] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None

    @classmethod
    def from_text(cls, text: str, metadata: dict[str, Any] | None = None) -> Document:
        return cls(content=[TextPart(text=text)], metadata=metadata)

    @property
    def text(self) -> str:
        return text_of(self.content)
