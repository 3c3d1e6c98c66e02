"""Trace event classification."""

import math
from typing import Any

from ..models import (
    AiInvocationPayload,
    AssistantText,
    Classification,
    EndMarker,
    EventKind,
    Ignored,
    KnowledgeChunk,
    KnowledgeQuery,
    KnowledgeRetrieval,
    ModelInvocation,
    TraceEvent,
)
from .extractor import DebugParameterExtractor, payload_from_structured

NESTED_EVENT_KEYS = ("nestedEvent", "event")


def _float_or_none(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _parse_chunk(raw: Any) -> KnowledgeChunk:
    if not isinstance(raw, dict):
        raise ValueError(f"chunk is not an object: {raw!r}")

    document = raw.get("documentData") if isinstance(raw.get("documentData"), dict) else {}
    document_id = raw.get("documentId", raw.get("documentID"))
    name = raw.get("documentName", document.get("name"))
    metadata = raw.get("metadata", document.get("metadata"))
    content = raw.get("content", document.get("content"))

    return KnowledgeChunk(
        document_id=str(document_id) if document_id is not None else None,
        document_name=str(name) if name is not None else None,
        score=_float_or_none(raw.get("score")),
        metadata=metadata if isinstance(metadata, dict) else {},
        content=content if isinstance(content, str) else None,
    )


def _parse_query(raw: Any) -> KnowledgeQuery:
    if isinstance(raw, str):
        return KnowledgeQuery(text=raw)
    if not isinstance(raw, dict):
        return KnowledgeQuery()
    text = raw.get("text", raw.get("query"))
    output = raw.get("output")
    return KnowledgeQuery(
        text=text if isinstance(text, str) else None,
        output=output if isinstance(output, str) else None,
    )


class TraceEventClassifier:
    """Maps a TraceEvent to what it means for the trace.

    Rules are evaluated in order and the first match wins. The classifier
    keeps no state between calls.
    """

    def __init__(self, extractor: DebugParameterExtractor | None = None):
        self._extractor = extractor or DebugParameterExtractor()

    def classify(self, event: TraceEvent) -> Classification:
        if event.kind is EventKind.END:
            return EndMarker()

        if event.kind is EventKind.TEXT:
            if event.payload.get("ai") is True or event.payload.get("isAiGenerated") is True:
                if event.message is None:
                    return Ignored("text event without message")
                return AssistantText(event.message)
            return Ignored("text not generated by AI")

        if event.kind is EventKind.KNOWLEDGE_BASE:
            return self._classify_retrieval(event)

        if event.kind is EventKind.DEBUG:
            return self._classify_debug(event)

        return Ignored(f"unhandled event type {event.raw_type!r}")

    def _classify_retrieval(self, event: TraceEvent) -> Classification:
        chunks = event.payload.get("chunks", [])
        if not isinstance(chunks, list):
            return Ignored("knowledge base chunks are not a list")
        try:
            parsed = [_parse_chunk(chunk) for chunk in chunks]
        except ValueError as e:
            return Ignored(f"malformed knowledge base chunk: {e}")
        return KnowledgeRetrieval(query=_parse_query(event.payload.get("query")), chunks=parsed)

    def _classify_debug(self, event: TraceEvent) -> Classification:
        nested_kind, structured = self._nested_payload(event.payload)
        parsed = self._extractor.extract(event.message)

        if structured.is_empty() and parsed.is_empty() and not parsed.parse_failed:
            if event.message is None:
                return Ignored("debug event without message")
            return Ignored("debug event without AI parameters")

        debug_type = event.payload.get("type")
        if not isinstance(debug_type, str):
            debug_type = nested_kind

        # Structured values take precedence over those read from the text.
        return ModelInvocation(parameters=structured.merged_over(parsed), debug_type=debug_type)

    @staticmethod
    def _nested_payload(payload: dict) -> tuple[str | None, AiInvocationPayload]:
        for key in NESTED_EVENT_KEYS:
            nested = payload.get(key)
            if isinstance(nested, dict) and isinstance(nested.get("payload"), dict):
                kind = nested.get("kind", nested.get("type"))
                return (kind if isinstance(kind, str) else None), payload_from_structured(
                    nested["payload"]
                )
        return None, AiInvocationPayload()
