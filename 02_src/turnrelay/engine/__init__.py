"""Trace synthesis engine."""

from .classifier import TraceEventClassifier
from .extractor import (
    DebugMatcher,
    DebugParameterExtractor,
    normalize_pseudo_json,
    payload_from_structured,
)
from .shapes import (
    BareListShape,
    EnvelopeShape,
    OpaqueShape,
    ResponseShape,
    build_events,
    detect_shape,
    parse_timestamp,
)
from .synthesizer import SpanSynthesizer

__all__ = [
    "DebugMatcher",
    "DebugParameterExtractor",
    "normalize_pseudo_json",
    "payload_from_structured",
    "TraceEventClassifier",
    "ResponseShape",
    "BareListShape",
    "EnvelopeShape",
    "OpaqueShape",
    "build_events",
    "detect_shape",
    "parse_timestamp",
    "SpanSynthesizer",
]
