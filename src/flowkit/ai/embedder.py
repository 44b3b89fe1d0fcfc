"""Embedder actions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from flowkit.action import Action, ActionKind
from flowkit.ai.document import Document
from flowkit.schema import Shape

if TYPE_CHECKING:
    from flowkit.registry import Registry


class Embedding(BaseModel):
    embedding: list[float]
    metadata: dict[str, Any] | None = None


class EmbedRequest(BaseModel):
    input: list[Document]
    options: Any = None


class EmbedResponse(BaseModel):
    embeddings: list[Embedding] = Field(default_factory=list)


type EmbedderFn = Callable[[EmbedRequest], EmbedResponse | dict[str, Any] | Awaitable[EmbedResponse | dict[str, Any]]]


def define_embedder(registry: Registry, name: str, fn: EmbedderFn, *, metadata: dict[str, Any] | None = None) -> Action:
    action = Action(
        name=name,
        kind=ActionKind.EMBEDDER,
        fn=fn,
        input_shape=Shape.of(EmbedRequest),
        output_shape=Shape.of(EmbedResponse),
        metadata=dict(metadata or {}),
    )
    registry.register(action)
    return action


async def embed(
    registry: Registry,
    embedder: str,
    content: str | Document | Sequence[str | Document],
    *,
    options: Any = None,
) -> list[Embedding]:
    """Embed text or documents; one embedding per input, in input order."""
    items = [content] if isinstance(content, (str, Document)) else list(content)
    documents = [Document.from_text(item) if isinstance(item, str) else item for item in items]
    response: EmbedResponse = await registry.invoke(
        embedder,
        EmbedRequest(input=documents, options=options),
        kind=ActionKind.EMBEDDER,
    )
    return response.embeddings
