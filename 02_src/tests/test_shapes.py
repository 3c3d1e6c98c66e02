"""Tests for response shapes and event parsing."""

import copy
from datetime import datetime, timezone

from conftest import T0, at
from turnrelay.engine import (
    BareListShape,
    EnvelopeShape,
    OpaqueShape,
    build_events,
    detect_shape,
    parse_timestamp,
)
from turnrelay.models import EventKind

EPOCH_S = 1_700_000_000
EXPECTED = datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)


class TestParseTimestamp:
    """Tests for timestamp parsing."""

    def test_epoch_seconds(self):
        assert parse_timestamp(EPOCH_S) == EXPECTED

    def test_epoch_milliseconds(self):
        assert parse_timestamp(EPOCH_S * 1000) == EXPECTED

    def test_numeric_string(self):
        assert parse_timestamp(str(EPOCH_S * 1000)) == EXPECTED

    def test_iso_string(self):
        assert parse_timestamp("2023-11-14T22:13:20Z") == EXPECTED

    def test_naive_iso_is_utc(self):
        assert parse_timestamp("2023-11-14T22:13:20") == EXPECTED

    def test_unparseable(self):
        """Test that junk gives None rather than raising."""
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None
        assert parse_timestamp(True) is None
        assert parse_timestamp({"t": 1}) is None

    def test_out_of_range(self):
        """Test that numbers beyond the datetime range give None."""
        assert parse_timestamp(10**400) is None
        assert parse_timestamp(float("inf")) is None
        assert parse_timestamp(float("nan")) is None
        assert parse_timestamp("1e400") is None


class TestBuildEvents:
    """Tests for building ordered events."""

    def test_kinds_and_indices(self):
        """Test that events keep order and get contiguous indices."""
        events = build_events(
            [{"type": "text"}, "noise", {"type": "knowledgeBase"}, {"type": "visual"}], T0
        )

        assert [e.index for e in events] == [0, 1, 2]
        assert [e.kind for e in events] == [EventKind.TEXT, EventKind.KNOWLEDGE_BASE, EventKind.OTHER]
        assert events[2].raw_type == "visual"

    def test_missing_timestamp_inherits(self):
        """Test that a missing timestamp takes the previous one, or the turn start."""
        ms = int(at(5).timestamp() * 1000)
        events = build_events([{"type": "debug"}, {"type": "text", "time": ms}, {"type": "end"}], T0)

        assert events[0].timestamp == T0
        assert events[1].timestamp == at(5)
        assert events[2].timestamp == at(5)

    def test_out_of_order_clamped(self):
        """Test that timestamps never decrease."""
        later = int(at(10).timestamp() * 1000)
        earlier = int(at(3).timestamp() * 1000)
        events = build_events([{"type": "debug", "time": later}, {"type": "text", "time": earlier}], T0)

        assert events[1].timestamp == at(10)

    def test_out_of_range_timestamp_inherits(self):
        """Test that an unrepresentable timestamp is treated as missing."""
        ms = int(at(2).timestamp() * 1000)
        events = build_events(
            [{"type": "debug", "time": ms}, {"type": "text", "time": 10**400, "payload": {"message": "a"}}],
            T0,
        )

        assert events[1].timestamp == at(2)

    def test_non_dict_payload(self):
        """Test that a non-object payload becomes empty."""
        events = build_events([{"type": "text", "payload": "hi"}], T0)

        assert events[0].payload == {}


class TestShapes:
    """Tests for shape detection and sanitizing."""

    def test_detect(self):
        """Test picking the strategy for each layout."""
        assert isinstance(detect_shape([]), BareListShape)
        assert isinstance(detect_shape({"trace": []}), EnvelopeShape)
        assert isinstance(detect_shape({"trace": "x"}), OpaqueShape)
        assert isinstance(detect_shape("ok"), OpaqueShape)

    def test_bare_list_sanitize(self):
        """Test that debug traces are removed without touching the input."""
        body = [{"type": "debug", "payload": {}}, {"type": "text", "payload": {"message": "Hi"}}]
        original = copy.deepcopy(body)

        sanitized = BareListShape().sanitize(body)

        assert sanitized == [{"type": "text", "payload": {"message": "Hi"}}]
        assert body == original

    def test_envelope(self):
        """Test events and sanitizing for the envelope layout."""
        body = {"trace": [{"type": "debug"}, {"type": "end"}], "state": {"turn": 2}}
        shape = detect_shape(body)

        assert [e.kind for e in shape.events(body, T0)] == [EventKind.DEBUG, EventKind.END]
        assert shape.sanitize(body) == {"trace": [{"type": "end"}], "state": {"turn": 2}}
        assert len(body["trace"]) == 2

    def test_opaque(self):
        """Test that unknown bodies yield no events and pass through."""
        body = {"status": "ok"}
        shape = detect_shape(body)

        assert shape.events(body, T0) == []
        assert shape.sanitize(body) is body
