"""Tracing sink module."""

from .attributes import flatten_attributes
from .otel_sink import (
    ITraceSink,
    OTelTraceSink,
    ReportingSpanExporter,
    create_tracer_provider,
    wire_attributes,
)

__all__ = [
    "ITraceSink",
    "OTelTraceSink",
    "ReportingSpanExporter",
    "create_tracer_provider",
    "flatten_attributes",
    "wire_attributes",
]
