"""Classified trace events."""

from dataclasses import dataclass, field

from .events import AiInvocationPayload, KnowledgeChunk, KnowledgeQuery


@dataclass(frozen=True)
class EndMarker:
    """End of the conversation was reached in this turn."""


@dataclass(frozen=True)
class AssistantText:
    """AI-generated text shown to the user."""

    message: str


@dataclass(frozen=True)
class KnowledgeRetrieval:
    """A knowledge-base lookup and its results."""

    query: KnowledgeQuery
    chunks: list[KnowledgeChunk] = field(default_factory=list)


@dataclass(frozen=True)
class ModelInvocation:
    """A model call described by a debug event."""

    parameters: AiInvocationPayload
    debug_type: str | None = None


@dataclass(frozen=True)
class Ignored:
    """Event that produces no span."""

    reason: str = "unrecognized"


Classification = EndMarker | AssistantText | KnowledgeRetrieval | ModelInvocation | Ignored
