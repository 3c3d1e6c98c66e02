"""Tracing sink backed by the OpenTelemetry SDK."""

from collections.abc import Sequence
from datetime import datetime
from typing import Protocol

from opentelemetry import trace as otel_trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from opentelemetry.trace import Status, StatusCode

from .. import semconv
from ..config import RelayConfig
from ..errors import SinkTransmissionFailure
from ..logging_config import get_logger
from ..models import Span, SpanKind, SpanStatus, SpanTree
from .attributes import flatten_attributes

logger = get_logger(__name__)

TRACER_NAME = "turn-relay"
PROJECT_NAME_ATTRIBUTE = "openinference.project.name"

_KIND_VALUES = {
    SpanKind.CHAIN: semconv.KIND_CHAIN,
    SpanKind.LLM: semconv.KIND_LLM,
    SpanKind.RETRIEVER: semconv.KIND_RETRIEVER,
}


def to_nanoseconds(moment: datetime) -> int:
    return int(moment.timestamp() * 1_000_000_000)


def wire_attributes(span: Span) -> dict:
    """Flat attributes for one span, including its kind tag."""
    attributes = {semconv.OPENINFERENCE_SPAN_KIND: _KIND_VALUES[span.kind]}
    attributes.update(flatten_attributes(span.attributes))
    return attributes


class ITraceSink(Protocol):
    """Destination for synthesized span trees."""

    def emit(self, tree: SpanTree) -> str | None:
        """Send the tree. Returns the root span id, or None if it was not sent."""
        ...


class ReportingSpanExporter(SpanExporter):
    """Wraps an exporter so rejected or failed exports are logged."""

    def __init__(self, delegate: SpanExporter):
        self._delegate = delegate

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        try:
            result = self._delegate.export(spans)
        except Exception as e:
            logger.warning("Span export raised: %s", e, extra={"context": {"spans": len(spans)}})
            return SpanExportResult.FAILURE
        if result is not SpanExportResult.SUCCESS:
            logger.warning(
                "Tracing backend rejected %s spans", len(spans), extra={"context": {"result": result.name}}
            )
        return result

    def shutdown(self) -> None:
        self._delegate.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._delegate.force_flush(timeout_millis)


class OTelTraceSink:
    """Emits span trees through an OpenTelemetry tracer.

    The root span is made active while its children are started, so they pick
    up their parent from the context. Nothing raised here reaches the caller.
    """

    def __init__(self, tracer: otel_trace.Tracer):
        self._tracer = tracer

    def emit(self, tree: SpanTree) -> str | None:
        try:
            root = self._tracer.start_span(
                tree.root.name,
                context=Context(),
                attributes=wire_attributes(tree.root),
                start_time=to_nanoseconds(tree.root.start_time),
            )
            with otel_trace.use_span(root, end_on_exit=False):
                for child in tree.children:
                    otel_child = self._tracer.start_span(
                        child.name,
                        attributes=wire_attributes(child),
                        start_time=to_nanoseconds(child.start_time),
                    )
                    self._finish(otel_child, child)
            self._finish(root, tree.root)
            context = root.get_span_context()
            if not context.is_valid:
                raise SinkTransmissionFailure("tracer produced no valid span context")
        except Exception as e:
            logger.warning(
                "Failed to emit trace: %s",
                e,
                extra={"context": {"root_span": tree.root.id, "children": len(tree.children)}},
            )
            return None

        return format(context.span_id, "016x")

    @staticmethod
    def _finish(otel_span: otel_trace.Span, span: Span) -> None:
        if span.status is SpanStatus.ERROR:
            otel_span.set_status(Status(StatusCode.ERROR, span.status_message))
        else:
            otel_span.set_status(Status(StatusCode.OK))
        otel_span.end(end_time=to_nanoseconds(span.end_time))


def create_tracer_provider(config: RelayConfig, exporter: SpanExporter | None = None) -> TracerProvider:
    """Tracer provider exporting to the configured collector (or `exporter`)."""
    resource = Resource.create(
        {
            "service.name": config.service_name,
            PROJECT_NAME_ATTRIBUTE: config.project_name,
        }
    )
    provider = TracerProvider(resource=resource)

    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(ReportingSpanExporter(exporter)))
        return provider

    headers = {"Authorization": f"Bearer {config.phoenix_api_key}"} if config.phoenix_api_key else None
    provider.add_span_processor(
        BatchSpanProcessor(
            ReportingSpanExporter(
                OTLPSpanExporter(endpoint=config.collector_endpoint, headers=headers)
            )
        )
    )
    if config.console_spans:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
    return provider
