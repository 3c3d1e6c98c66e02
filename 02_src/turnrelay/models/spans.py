"""Synthesized span models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class SpanKind(str, Enum):
    """Kind of work a span represents."""

    CHAIN = "chain"
    LLM = "llm"
    RETRIEVER = "retriever"


class SpanStatus(str, Enum):
    """Outcome of a span."""

    OK = "ok"
    ERROR = "error"


def new_span_id() -> str:
    """Generate a 16 hex character span identifier."""
    return uuid.uuid4().hex[:16]


@dataclass
class Span:
    """One timed, attributed unit of work in a reconstructed trace."""

    name: str
    kind: SpanKind
    start_time: datetime
    end_time: datetime
    id: str = field(default_factory=new_span_id)
    parent_id: str | None = None
    status: SpanStatus = SpanStatus.OK
    status_message: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)
    event_index: int | None = None  # index of the event that produced it

    def __post_init__(self) -> None:
        if self.end_time < self.start_time:
            raise ValueError(
                f"Span {self.name} ends ({self.end_time}) before it starts ({self.start_time})"
            )


@dataclass
class SpanTree:
    """A root span with its ordered children."""

    root: Span
    children: list[Span] = field(default_factory=list)

    def __iter__(self):
        yield self.root
        yield from self.children


@dataclass
class SpanRecord:
    """Persisted pointer to an emitted root span, used for span browsing."""

    span_id: str
    user_id: str
    start_time: int  # epoch milliseconds
    end_time: int  # epoch milliseconds
    is_current: bool = False
