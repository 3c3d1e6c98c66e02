"""Feedback module."""

from .annotations import AnnotationClient, IAnnotationClient, parse_vote_score, vote_annotation

__all__ = ["AnnotationClient", "IAnnotationClient", "parse_vote_score", "vote_annotation"]
