"""Span-id registry module."""

from .span_registry import ISpanRegistry, SpanRegistry

__all__ = ["ISpanRegistry", "SpanRegistry"]
