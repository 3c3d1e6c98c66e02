"""Span synthesis for one conversational turn."""

from datetime import datetime
from typing import Any

from .. import semconv
from ..logging_config import get_logger
from ..models import (
    AssistantText,
    EndMarker,
    Ignored,
    KnowledgeRetrieval,
    ModelInvocation,
    RelayMode,
    Span,
    SpanKind,
    SpanStatus,
    SpanTree,
    TraceEvent,
    TurnRequest,
)
from .classifier import TraceEventClassifier

logger = get_logger(__name__)

ROOT_SPAN_NAME = "conversation_turn"
LLM_SPAN_NAME = "llm_invocation"
RETRIEVER_SPAN_NAME = "knowledge_base_retrieval"
QUERY_PREFIX = "Query received:"


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def strip_query_prefix(message: str) -> str:
    text = message.strip()
    if text.startswith(QUERY_PREFIX):
        text = text[len(QUERY_PREFIX):]
    return text.strip()


class SpanSynthesizer:
    """Rebuilds a span tree from the trace events of one turn.

    The engine reports when a step finished, not when it started, so a child
    span runs from the previous event's timestamp (the turn start for the
    first event) to its own event's timestamp.
    """

    def __init__(self, classifier: TraceEventClassifier | None = None):
        self._classifier = classifier or TraceEventClassifier()

    def synthesize(
        self,
        events: list[TraceEvent],
        turn_start: datetime,
        request: TurnRequest,
        upstream_error: str | None = None,
    ) -> SpanTree:
        """Build the root span and its ordered children."""
        if upstream_error is not None:
            root = Span(
                name=ROOT_SPAN_NAME,
                kind=SpanKind.CHAIN,
                start_time=turn_start,
                end_time=turn_start,
                status=SpanStatus.ERROR,
                status_message=upstream_error,
                attributes=self._root_attributes(request, output=None, ended=False),
            )
            return SpanTree(root=root)

        end_time = max(events[-1].timestamp, turn_start) if events else turn_start
        root = Span(
            name=ROOT_SPAN_NAME,
            kind=SpanKind.CHAIN,
            start_time=turn_start,
            end_time=end_time,
        )

        texts: list[str] = []
        ended = False
        children: list[Span] = []
        skipped = 0

        for position, event in enumerate(events):
            try:
                classification = self._classifier.classify(event)
            except (ArithmeticError, TypeError, ValueError) as e:
                skipped += 1
                logger.warning(
                    "Skipping unclassifiable %s event %s: %s",
                    event.kind.value,
                    event.index,
                    e,
                )
                continue

            if isinstance(classification, EndMarker):
                ended = True
            elif isinstance(classification, AssistantText):
                texts.append(classification.message)
            elif isinstance(classification, (ModelInvocation, KnowledgeRetrieval)):
                try:
                    children.append(
                        self._child_span(classification, position, events, root)
                    )
                except (TypeError, ValueError) as e:
                    skipped += 1
                    logger.warning(
                        "Skipping uninterpretable %s event %s: %s",
                        event.kind.value,
                        event.index,
                        e,
                    )
            elif isinstance(classification, Ignored):
                skipped += 1

        if skipped:
            logger.debug("Skipped %s of %s events without spans", skipped, len(events))

        root.attributes = self._root_attributes(
            request, output="\n".join(texts), ended=ended
        )
        return SpanTree(root=root, children=children)

    @staticmethod
    def _window(
        position: int, events: list[TraceEvent], root: Span
    ) -> tuple[datetime, datetime]:
        start = events[position - 1].timestamp if position > 0 else root.start_time
        return start, max(events[position].timestamp, start)

    def _child_span(
        self,
        classification: ModelInvocation | KnowledgeRetrieval,
        position: int,
        events: list[TraceEvent],
        root: Span,
    ) -> Span:
        event = events[position]
        start, end = self._window(position, events, root)
        if isinstance(classification, ModelInvocation):
            name, kind = LLM_SPAN_NAME, SpanKind.LLM
            attributes = self._llm_attributes(classification)
        else:
            name, kind = RETRIEVER_SPAN_NAME, SpanKind.RETRIEVER
            attributes = self._retriever_attributes(classification, position, events)

        return Span(
            name=name,
            kind=kind,
            start_time=start,
            end_time=end,
            parent_id=root.id,
            attributes=attributes,
            event_index=event.index,
        )

    @staticmethod
    def _root_attributes(
        request: TurnRequest, output: str | None, ended: bool
    ) -> dict[str, Any]:
        metadata = _drop_none(
            {
                "versionID": request.version_id,
                "origin": request.origin,
                "mode": request.mode.value,
                "projectID": request.project_id,
                "actionType": request.action_type,
                "userAgent": request.user_agent if request.mode is RelayMode.WIDGET else None,
            }
        )
        return _drop_none(
            {
                semconv.OPENINFERENCE_SPAN_KIND: semconv.KIND_CHAIN,
                semconv.INPUT_VALUE: request.user_message,
                semconv.INPUT_MIME_TYPE: semconv.MIME_TEXT,
                semconv.OUTPUT_VALUE: output,
                semconv.OUTPUT_MIME_TYPE: semconv.MIME_TEXT if output is not None else None,
                semconv.CONVERSATION_ENDED: ended,
                semconv.SESSION_ID: request.session_id or request.user_id,
                semconv.USER_ID: request.user_id,
                semconv.METADATA: metadata,
                semconv.TAG_TAGS: list(request.tags) or None,
            }
        )

    @staticmethod
    def _llm_attributes(invocation: ModelInvocation) -> dict[str, Any]:
        params = invocation.parameters
        input_messages = [
            {semconv.MESSAGE_ROLE: role, semconv.MESSAGE_CONTENT: content}
            for role, content in (
                ("system", params.system_prompt),
                ("user", params.assistant_prompt),
            )
            if content is not None
        ]
        output_messages = (
            [{semconv.MESSAGE_ROLE: "assistant", semconv.MESSAGE_CONTENT: params.output}]
            if params.output is not None
            else None
        )
        invocation_parameters = _drop_none(
            {
                "model": params.model,
                "temperature": params.temperature,
                "max_tokens": params.max_tokens,
                "multiplier": params.multiplier,
            }
        )
        return _drop_none(
            {
                semconv.OPENINFERENCE_SPAN_KIND: semconv.KIND_LLM,
                semconv.LLM_MODEL_NAME: params.model,
                semconv.LLM_INVOCATION_PARAMETERS: invocation_parameters,
                semconv.LLM_TOKEN_COUNT_PROMPT: params.query_tokens,
                semconv.LLM_TOKEN_COUNT_COMPLETION: params.answer_tokens,
                semconv.LLM_TOKEN_COUNT_TOTAL: params.total_tokens,
                semconv.LLM_INPUT_MESSAGES: input_messages or None,
                semconv.LLM_OUTPUT_MESSAGES: output_messages,
                semconv.INPUT_VALUE: params.assistant_prompt,
                semconv.OUTPUT_VALUE: params.output,
                semconv.TAG_TAGS: [invocation.debug_type] if invocation.debug_type else None,
                semconv.METADATA: {"token_parse_failed": True} if params.parse_failed else None,
            }
        )

    @staticmethod
    def _retriever_attributes(
        retrieval: KnowledgeRetrieval, position: int, events: list[TraceEvent]
    ) -> dict[str, Any]:
        query_text = None
        if position > 0:
            previous_message = events[position - 1].message
            if previous_message:
                query_text = strip_query_prefix(previous_message)
        if not query_text:
            query_text = retrieval.query.text

        documents = [
            _drop_none(
                {
                    semconv.DOCUMENT_ID: chunk.document_id,
                    semconv.DOCUMENT_NAME: chunk.document_name,
                    semconv.DOCUMENT_SCORE: chunk.score,
                    semconv.DOCUMENT_CONTENT: chunk.content,
                    semconv.DOCUMENT_METADATA: chunk.metadata or None,
                }
            )
            for chunk in retrieval.chunks
        ]
        return _drop_none(
            {
                semconv.OPENINFERENCE_SPAN_KIND: semconv.KIND_RETRIEVER,
                semconv.INPUT_VALUE: query_text,
                semconv.OUTPUT_VALUE: retrieval.query.output,
                semconv.RETRIEVAL_DOCUMENTS: documents,
            }
        )
