"""Multi-turn generation with tool calling.

One call moves through these phases::

    BUILD_REQUEST -> AWAIT_RESPONSE -> STREAMING | COMPLETE
        -> TOOL_CALLS_PENDING -> BUILD_REQUEST   (model asked for tools)
        -> TERMINAL                              (plain answer)

Every model call and every tool call goes through ``Registry.invoke`` and
therefore runs inside its own span. Tools requested in one turn run
concurrently; their responses are appended in request order.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from loguru import logger

from flowkit.action import Action, ActionKind
from flowkit.ai.document import (
    Message,
    Part,
    Role,
    TextPart,
    ToolRequest,
    ToolResponse,
    ToolResponsePart,
)
from flowkit.ai.model import (
    Candidate,
    FinishReason,
    GenerateRequest,
    GenerateResponse,
    GenerationConfig,
    GenerationUsage,
)
from flowkit.ai.streaming import ChunkSink, GenerateStream, StreamingCallback
from flowkit.ai.tool import to_tool_definition
from flowkit.config import DEFAULT_MAX_TURNS
from flowkit.errors import (
    GenerationError,
    OrphanToolResponseError,
    StreamAbortedError,
    ToolExecutionError,
    TurnLimitExceededError,
)
from flowkit.registry import Registry
from flowkit.tracing.span import span

type Prompt = str | Part | Sequence[Part]


class GenerationPhase(StrEnum):
    BUILD_REQUEST = "build_request"
    AWAIT_RESPONSE = "await_response"
    STREAMING = "streaming"
    COMPLETE = "complete"
    TOOL_CALLS_PENDING = "tool_calls_pending"
    TERMINAL = "terminal"


@dataclass
class GenerationState:
    """Accumulated state of one orchestrated call."""

    messages: list[Message]
    max_turns: int
    usage: GenerationUsage = field(default_factory=GenerationUsage)
    turn: int = 0
    phase: GenerationPhase = GenerationPhase.BUILD_REQUEST

    @property
    def remaining_turns(self) -> int:
        return self.max_turns - self.turn

    def enter(self, phase: GenerationPhase) -> None:
        logger.debug("generate.phase turn={} phase={}", self.turn, phase.value)
        self.phase = phase


@dataclass(frozen=True)
class GenerateResult:
    """Final outcome of one orchestrated call."""

    message: Message
    messages: list[Message]
    usage: GenerationUsage
    turns: int
    finish_reason: FinishReason
    request: GenerateRequest
    response: GenerateResponse

    @property
    def text(self) -> str:
        return self.message.text

    @property
    def tool_requests(self) -> list[ToolRequest]:
        return [request for message in self.messages for request in message.tool_requests]


async def generate(
    registry: Registry,
    model: str,
    *,
    prompt: Prompt | None = None,
    messages: Sequence[Message | dict[str, Any]] | None = None,
    system: str | None = None,
    config: GenerationConfig | dict[str, Any] | None = None,
    tools: Sequence[str] = (),
    on_chunk: StreamingCallback | None = None,
    max_turns: int = DEFAULT_MAX_TURNS,
) -> GenerateResult:
    """Generate a response, resolving tool requests until the model answers.

    Args:
        registry: Registry holding the model and tool actions
        model: Name of the model action
        prompt: User prompt appended after ``messages``
        messages: Prior history
        system: Optional system instruction placed first
        config: Generation options passed to the model
        tools: Names of tools the model may call
        on_chunk: Streaming callback; chunks of every turn are delivered in order
        max_turns: Maximum number of model calls

    Raises:
        ToolNotFoundError: A declared or requested tool is not registered
        ToolExecutionError: A tool failed; the whole call is aborted
        TurnLimitExceededError: The model still requested tools on the last allowed turn
        OrphanToolResponseError: ``messages`` holds a tool response without a request
    """
    if max_turns < 1:
        raise ValueError("max_turns must be at least 1")

    history = _initial_messages(prompt=prompt, messages=messages, system=system)
    _check_tool_pairs(history)
    model_action = registry.lookup(model, ActionKind.MODEL)
    tool_actions = [registry.lookup(name, ActionKind.TOOL) for name in tools]
    request_config = GenerationConfig.model_validate(config or {})
    definitions = [to_tool_definition(action) for action in tool_actions]

    state = GenerationState(messages=history, max_turns=max_turns)
    async with span("generate", sink=registry.sink, attributes={"model": model_action.name}) as metadata:
        metadata.input = {"model": model_action.name, "messages": history, "tools": list(tools)}
        while True:
            state.turn += 1
            state.enter(GenerationPhase.BUILD_REQUEST)
            logger.info("generate.turn turn={} model={}", state.turn, model_action.name)
            request = GenerateRequest(messages=list(state.messages), config=request_config, tools=definitions)

            response = await _await_response(registry, model_action, request, state, on_chunk)
            state.usage = state.usage + response.usage
            candidate = _selected_candidate(model_action, response)
            tool_requests = candidate.message.tool_requests
            if not tool_requests:
                state.enter(GenerationPhase.TERMINAL)
                state.messages.append(candidate.message)
                result = GenerateResult(
                    message=candidate.message,
                    messages=list(state.messages),
                    usage=state.usage,
                    turns=state.turn,
                    finish_reason=candidate.finish_reason,
                    request=request,
                    response=response,
                )
                metadata.output = {"text": result.text, "turns": result.turns, "usage": result.usage}
                return result

            state.enter(GenerationPhase.TOOL_CALLS_PENDING)
            if state.remaining_turns <= 0:
                raise TurnLimitExceededError(state.max_turns)
            tool_message = await _resolve_tool_requests(registry, tool_requests)
            state.messages.extend([candidate.message, tool_message])


def generate_stream(registry: Registry, model: str, **kwargs: Any) -> GenerateStream:
    """Start a streaming generate call; iterate for chunks, await ``response`` for the result."""
    if "on_chunk" in kwargs:
        raise TypeError("generate_stream() delivers chunks by iteration; do not pass on_chunk")

    async def run(callback: StreamingCallback) -> GenerateResult:
        return await generate(registry, model, on_chunk=callback, **kwargs)

    return GenerateStream(run)


async def _await_response(
    registry: Registry,
    model_action: Action,
    request: GenerateRequest,
    state: GenerationState,
    on_chunk: StreamingCallback | None,
) -> GenerateResponse:
    if on_chunk is None:
        state.enter(GenerationPhase.AWAIT_RESPONSE)
        response: GenerateResponse = await registry.invoke(model_action.name, request, kind=ActionKind.MODEL)
        state.enter(GenerationPhase.COMPLETE)
        return response

    state.enter(GenerationPhase.STREAMING)
    sink = ChunkSink(on_chunk, turn=state.turn - 1)
    try:
        response = await registry.invoke(model_action.name, request, kind=ActionKind.MODEL, streaming=sink)
    except StreamAbortedError:
        if sink.error is not None:
            raise sink.error
        raise
    if sink.error is not None:
        # The handler swallowed the abort signal; the consumer failure still wins.
        raise sink.error
    state.enter(GenerationPhase.COMPLETE)
    if not response.candidates and sink.chunks:
        assembled = Candidate(message=sink.assemble(), finish_reason=FinishReason.STOP)
        response = response.model_copy(update={"candidates": [assembled]})
    return response


def _selected_candidate(model_action: Action, response: GenerateResponse) -> Candidate:
    if not response.candidates:
        raise GenerationError(f"Model '{model_action.name}' returned no candidates")
    candidate = response.candidates[0]
    if candidate.message.role is not Role.MODEL:
        candidate = candidate.model_copy(update={"message": candidate.message.model_copy(update={"role": Role.MODEL})})
    return candidate


async def _resolve_tool_requests(registry: Registry, requests: list[ToolRequest]) -> Message:
    # Resolve everything first so an unknown tool fails before any tool runs.
    actions = [registry.lookup(request.name, ActionKind.TOOL) for request in requests]
    outputs: list[Any] = [None] * len(requests)

    async def run_tool(index: int, action: Action, request: ToolRequest) -> None:
        try:
            outputs[index] = await registry.invoke(action.name, request.input, kind=ActionKind.TOOL)
        except Exception as exc:
            raise ToolExecutionError(action.name, request.ref, exc) from exc

    try:
        async with asyncio.TaskGroup() as group:
            for index, (action, request) in enumerate(zip(actions, requests, strict=True)):
                group.create_task(run_tool(index, action, request))
    except ExceptionGroup as errors:
        raise errors.exceptions[0]

    content: list[Part] = [
        ToolResponsePart(tool_response=ToolResponse(name=request.name, ref=request.ref, output=output))
        for request, output in zip(requests, outputs, strict=True)
    ]
    return Message(role=Role.TOOL, content=content)


def _initial_messages(
    *,
    prompt: Prompt | None,
    messages: Sequence[Message | dict[str, Any]] | None,
    system: str | None,
) -> list[Message]:
    history = [Message.model_validate(message) for message in messages or ()]
    if system:
        history.insert(0, Message.system(system))
    if prompt is not None:
        history.append(Message(role=Role.USER, content=_prompt_parts(prompt)))
    if not history:
        raise ValueError("generate() needs a prompt or messages")
    return history


def _prompt_parts(prompt: Prompt) -> list[Part]:
    if isinstance(prompt, str):
        return [TextPart(text=prompt)]
    if isinstance(prompt, Part):
        return [prompt]
    return list(prompt)


def _check_tool_pairs(messages: list[Message]) -> None:
    pending: list[tuple[str, str | None]] = []
    for message in messages:
        for request in message.tool_requests:
            pending.append((request.name, request.ref))
        for response in message.tool_responses:
            key = (response.name, response.ref)
            if key not in pending:
                raise OrphanToolResponseError(response.name, response.ref)
            pending.remove(key)
