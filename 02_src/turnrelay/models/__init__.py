"""Core data models for the turn relay."""

from .classification import (
    AssistantText,
    Classification,
    EndMarker,
    Ignored,
    KnowledgeRetrieval,
    ModelInvocation,
)
from .events import (
    AiInvocationPayload,
    EventKind,
    KnowledgeChunk,
    KnowledgeQuery,
    TokenRegime,
    TraceEvent,
)
from .spans import Span, SpanKind, SpanRecord, SpanStatus, SpanTree, new_span_id
from .turns import RelayMode, Turn, TurnRequest, TurnState

__all__ = [
    # Events
    "TraceEvent",
    "EventKind",
    "TokenRegime",
    "AiInvocationPayload",
    "KnowledgeChunk",
    "KnowledgeQuery",
    # Classification
    "Classification",
    "EndMarker",
    "AssistantText",
    "KnowledgeRetrieval",
    "ModelInvocation",
    "Ignored",
    # Spans
    "Span",
    "SpanKind",
    "SpanStatus",
    "SpanTree",
    "SpanRecord",
    "new_span_id",
    # Turns
    "RelayMode",
    "Turn",
    "TurnRequest",
    "TurnState",
]
