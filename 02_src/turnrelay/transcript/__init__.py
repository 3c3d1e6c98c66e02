"""Transcript logging module."""

from .transcript_logger import TranscriptLogger

__all__ = ["TranscriptLogger"]
