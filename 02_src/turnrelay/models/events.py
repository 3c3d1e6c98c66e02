"""Dialogue-engine trace event models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class EventKind(str, Enum):
    """Trace event types reported by the dialogue engine."""

    TEXT = "text"
    DEBUG = "debug"
    KNOWLEDGE_BASE = "knowledgeBase"
    END = "end"
    OTHER = "other"

    @classmethod
    def parse(cls, value: Any) -> "EventKind":
        """Map a raw `type` string to a kind; unknown values become OTHER."""
        try:
            return cls(value)
        except ValueError:
            return cls.OTHER


class TokenRegime(str, Enum):
    """Which token-consumption figures a debug message is read for."""

    RAW = "raw"
    POST_MULTIPLIER = "post_multiplier"


@dataclass
class TraceEvent:
    """One trace record returned by the dialogue engine for a turn."""

    index: int
    kind: EventKind
    timestamp: datetime
    payload: dict[str, Any] = field(default_factory=dict)
    raw_type: str | None = None  # original `type` string, kept for OTHER events

    @property
    def message(self) -> str | None:
        """The `message` field of the payload, if it is a string."""
        message = self.payload.get("message")
        return message if isinstance(message, str) else None


@dataclass
class AiInvocationPayload:
    """Model parameters reported for one AI step. Every field is optional."""

    system_prompt: str | None = None
    assistant_prompt: str | None = None
    output: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    query_tokens: int | None = None
    answer_tokens: int | None = None
    total_tokens: int | None = None
    multiplier: float | None = None
    parse_failed: bool = False

    def is_empty(self) -> bool:
        """True when nothing beyond the parse flag was populated."""
        return all(
            value is None
            for name, value in vars(self).items()
            if name != "parse_failed"
        )

    def merged_over(self, fallback: "AiInvocationPayload") -> "AiInvocationPayload":
        """Return a payload taking our fields first and `fallback` for the gaps."""
        merged = {
            name: value if value is not None else getattr(fallback, name)
            for name, value in vars(self).items()
            if name != "parse_failed"
        }
        return AiInvocationPayload(
            **merged, parse_failed=self.parse_failed or fallback.parse_failed
        )


@dataclass
class KnowledgeChunk:
    """A single document chunk returned by a knowledge-base lookup."""

    document_id: str | None
    document_name: str | None
    score: float | None
    metadata: dict[str, Any] = field(default_factory=dict)
    content: str | None = None


@dataclass
class KnowledgeQuery:
    """The query issued for a knowledge-base lookup."""

    text: str | None = None
    output: str | None = None
