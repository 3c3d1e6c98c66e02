"""Trace worker module."""

from .trace_worker import ITraceWorker, TraceJob, TraceWorker

__all__ = ["ITraceWorker", "TraceJob", "TraceWorker"]
