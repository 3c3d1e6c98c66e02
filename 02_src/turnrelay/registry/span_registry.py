"""Bounded registry of recently emitted root span ids."""

from collections import deque
from typing import Protocol


class ISpanRegistry(Protocol):
    """Recent span ids, for next/previous browsing."""

    def add(self, span_id: str) -> None:
        """Record a span id, evicting the oldest when full."""
        ...

    def current(self) -> str | None:
        """Most recently added span id."""
        ...

    def next_after(self, span_id: str) -> str | None:
        """Span id recorded right after `span_id`."""
        ...

    def all(self) -> list[str]:
        """All span ids, newest first."""
        ...


class SpanRegistry:
    """In-memory ring buffer of span ids."""

    def __init__(self, capacity: int = 50):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._span_ids: deque[str] = deque(maxlen=capacity)

    def add(self, span_id: str) -> None:
        self._span_ids.append(span_id)

    def current(self) -> str | None:
        return self._span_ids[-1] if self._span_ids else None

    def next_after(self, span_id: str) -> str | None:
        try:
            index = self._span_ids.index(span_id)
        except ValueError:
            return None
        if index == len(self._span_ids) - 1:
            return None
        return self._span_ids[index + 1]

    def all(self) -> list[str]:
        return list(reversed(self._span_ids))

    def __len__(self) -> int:
        return len(self._span_ids)
