"""Logging of already-completed chat exchanges as LLM spans."""

import json
from datetime import datetime, timezone
from typing import Any

from .. import semconv
from ..errors import InvalidTurnRequest
from ..models import Span, SpanKind, SpanTree
from ..sink import ITraceSink

TRANSCRIPT_SPAN_NAME = "chat"


class TranscriptLogger:
    """Turns a submitted message list into a single LLM span."""

    def __init__(self, sink: ITraceSink):
        self._sink = sink

    def build_span(
        self,
        messages: Any,
        metadata: dict | None = None,
        user: str = "unknown",
        tags: list[str] | None = None,
        model_name: str | None = None,
    ) -> Span:
        if not isinstance(messages, list) or not messages:
            raise InvalidTurnRequest("messages are required in the request body")

        dict_messages = [m for m in messages if isinstance(m, dict)]
        input_messages = [m for m in dict_messages if m.get("role") != "assistant"]
        reply = next((m for m in dict_messages if m.get("role") == "assistant"), None)
        reply_content = reply.get("content") if reply else None

        now = datetime.now(timezone.utc)
        attributes: dict[str, Any] = {
            semconv.INPUT_VALUE: json.dumps({"messages": input_messages}),
            semconv.INPUT_MIME_TYPE: semconv.MIME_JSON,
            semconv.LLM_MODEL_NAME: model_name,
            semconv.METADATA: metadata or {},
            semconv.USER_ID: user,
            semconv.TAG_TAGS: [str(tag) for tag in tags or []] or None,
            semconv.LLM_INPUT_MESSAGES: [
                {
                    semconv.MESSAGE_ROLE: m.get("role"),
                    semconv.MESSAGE_CONTENT: m.get("content"),
                }
                for m in input_messages
            ]
            or None,
        }
        if reply_content is not None:
            attributes.update(
                {
                    semconv.OUTPUT_VALUE: json.dumps(
                        {"messages": [{"role": "assistant", "content": reply_content}]}
                    ),
                    semconv.OUTPUT_MIME_TYPE: semconv.MIME_JSON,
                    semconv.LLM_OUTPUT_MESSAGES: [
                        {
                            semconv.MESSAGE_ROLE: "assistant",
                            semconv.MESSAGE_CONTENT: reply_content,
                        }
                    ],
                }
            )

        return Span(
            name=TRANSCRIPT_SPAN_NAME,
            kind=SpanKind.LLM,
            start_time=now,
            end_time=now,
            attributes=attributes,
        )

    def log_transcript(
        self,
        messages: Any,
        metadata: dict | None = None,
        user: str = "unknown",
        tags: list[str] | None = None,
        model_name: str | None = None,
    ) -> str | None:
        """Emit the exchange; returns the span id, or None if it was not sent."""
        span = self.build_span(messages, metadata, user, tags, model_name)
        return self._sink.emit(SpanTree(root=span))
