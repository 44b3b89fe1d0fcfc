"""Generation, tools, evaluators, embedders and retrievers."""

from flowkit.ai.document import (
    Document,
    Media,
    MediaPart,
    Message,
    Part,
    Role,
    TextPart,
    ToolRequest,
    ToolRequestPart,
    ToolResponse,
    ToolResponsePart,
)
from flowkit.ai.embedder import Embedding, EmbedRequest, EmbedResponse
from flowkit.ai.evaluator import BaseEvalDataPoint, EvalResponse, EvalStatus, Score, ScoreDetails
from flowkit.ai.generate import GenerateResult, GenerationPhase, GenerationState
from flowkit.ai.model import (
    Candidate,
    FinishReason,
    GenerateRequest,
    GenerateResponse,
    GenerateResponseChunk,
    GenerationConfig,
    GenerationUsage,
    ToolDefinition,
)
from flowkit.ai.retriever import IndexerRequest, RetrieverRequest, RetrieverResponse
from flowkit.ai.streaming import ChunkSink, GenerateStream

__all__ = [
    "BaseEvalDataPoint",
    "Candidate",
    "ChunkSink",
    "Document",
    "EmbedRequest",
    "EmbedResponse",
    "Embedding",
    "EvalResponse",
    "EvalStatus",
    "FinishReason",
    "GenerateRequest",
    "GenerateResponse",
    "GenerateResponseChunk",
    "GenerateResult",
    "GenerateStream",
    "GenerationConfig",
    "GenerationPhase",
    "GenerationState",
    "GenerationUsage",
    "IndexerRequest",
    "Media",
    "MediaPart",
    "Message",
    "Part",
    "RetrieverRequest",
    "RetrieverResponse",
    "Role",
    "Score",
    "ScoreDetails",
    "TextPart",
    "ToolDefinition",
    "ToolRequest",
    "ToolRequestPart",
    "ToolResponse",
    "ToolResponsePart",
]
