"""Dialogue-engine response shapes.

The engine answers an interact call either with a bare list of trace
objects or with an object whose `trace` key holds that list. Each shape is
a strategy that knows how to read events out of a body and how to produce
the client-safe copy of it.
"""

from datetime import datetime, timezone
from typing import Any, Protocol

from ..models import EventKind, TraceEvent

CLIENT_HIDDEN_TYPES = frozenset({EventKind.DEBUG.value})

# Epoch values above this are milliseconds.
_MS_THRESHOLD = 100_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Read an engine timestamp (epoch seconds/milliseconds or ISO-8601)."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            seconds = value / 1000 if value > _MS_THRESHOLD else value
            return datetime.fromtimestamp(seconds, timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        try:
            return parse_timestamp(float(value))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def build_events(items: list[Any], turn_start: datetime) -> list[TraceEvent]:
    """Convert raw trace objects into an ordered, non-decreasing event list."""
    events: list[TraceEvent] = []
    previous: datetime | None = None
    for raw in items:
        if not isinstance(raw, dict):
            continue
        raw_type = raw.get("type")
        timestamp = parse_timestamp(raw.get("time", raw.get("timestamp")))
        if timestamp is None:
            timestamp = previous or turn_start
        elif previous is not None and timestamp < previous:
            timestamp = previous
        payload = raw.get("payload")
        events.append(
            TraceEvent(
                index=len(events),
                kind=EventKind.parse(raw_type),
                timestamp=timestamp,
                payload=payload if isinstance(payload, dict) else {},
                raw_type=raw_type if isinstance(raw_type, str) else None,
            )
        )
        previous = timestamp
    return events


def _visible(items: list[Any]) -> list[Any]:
    return [
        item
        for item in items
        if not (isinstance(item, dict) and item.get("type") in CLIENT_HIDDEN_TYPES)
    ]


class ResponseShape(Protocol):
    """Strategy for one dialogue-engine response layout."""

    name: str

    def events(self, body: Any, turn_start: datetime) -> list[TraceEvent]:
        """Ordered trace events carried by the body."""
        ...

    def sanitize(self, body: Any) -> Any:
        """Copy of the body with debug traces removed."""
        ...


class BareListShape:
    """Body is the list of trace objects itself."""

    name = "list"

    def events(self, body: list, turn_start: datetime) -> list[TraceEvent]:
        return build_events(body, turn_start)

    def sanitize(self, body: list) -> list:
        return _visible(body)


class EnvelopeShape:
    """Body is an object with the trace list under `trace`."""

    name = "envelope"

    def events(self, body: dict, turn_start: datetime) -> list[TraceEvent]:
        return build_events(body["trace"], turn_start)

    def sanitize(self, body: dict) -> dict:
        return {**body, "trace": _visible(body["trace"])}


class OpaqueShape:
    """Anything else: no events, relayed unchanged."""

    name = "opaque"

    def events(self, body: Any, turn_start: datetime) -> list[TraceEvent]:
        return []

    def sanitize(self, body: Any) -> Any:
        return body


def detect_shape(body: Any) -> ResponseShape:
    """Pick the strategy matching the body's layout."""
    if isinstance(body, list):
        return BareListShape()
    if isinstance(body, dict) and isinstance(body.get("trace"), list):
        return EnvelopeShape()
    return OpaqueShape()
