"""Retriever and indexer actions."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from flowkit.action import Action, ActionKind
from flowkit.ai.document import Document
from flowkit.schema import Shape

if TYPE_CHECKING:
    from flowkit.registry import Registry


class RetrieverRequest(BaseModel):
    query: Document
    options: Any = None


class RetrieverResponse(BaseModel):
    documents: list[Document] = Field(default_factory=list)


class IndexerRequest(BaseModel):
    documents: list[Document]
    options: Any = None


type RetrieverFn = Callable[[RetrieverRequest], RetrieverResponse | dict[str, Any] | Awaitable[Any]]
type IndexerFn = Callable[[IndexerRequest], None | Awaitable[None]]


def define_retriever(
    registry: Registry, name: str, fn: RetrieverFn, *, metadata: dict[str, Any] | None = None
) -> Action:
    action = Action(
        name=name,
        kind=ActionKind.RETRIEVER,
        fn=fn,
        input_shape=Shape.of(RetrieverRequest),
        output_shape=Shape.of(RetrieverResponse),
        metadata=dict(metadata or {}),
    )
    registry.register(action)
    return action


def define_indexer(registry: Registry, name: str, fn: IndexerFn, *, metadata: dict[str, Any] | None = None) -> Action:
    action = Action(
        name=name,
        kind=ActionKind.INDEXER,
        fn=fn,
        input_shape=Shape.of(IndexerRequest),
        output_shape=Shape.of(None),
        metadata=dict(metadata or {}),
    )
    registry.register(action)
    return action


async def retrieve(
    registry: Registry,
    retriever: str,
    query: str | Document,
    *,
    options: Any = None,
) -> list[Document]:
    document = Document.from_text(query) if isinstance(query, str) else query
    response: RetrieverResponse = await registry.invoke(
        retriever,
        RetrieverRequest(query=document, options=options),
        kind=ActionKind.RETRIEVER,
    )
    return response.documents


async def index(
    registry: Registry,
    indexer: str,
    documents: Sequence[str | Document],
    *,
    options: Any = None,
) -> None:
    docs = [Document.from_text(item) if isinstance(item, str) else item for item in documents]
    await registry.invoke(indexer, IndexerRequest(documents=docs, options=options), kind=ActionKind.INDEXER)
