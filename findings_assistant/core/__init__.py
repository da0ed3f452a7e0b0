# Core package
"""Core models, settings and interfaces for the findings assistant."""

from .config import SAMPLE_QUESTIONS
from .interfaces import AuditSink, DocumentStore, LLMCompletion, LLMInterface
from .models import AggregationResult, Finding, Predicate
from .settings import settings

__all__ = [
    "AuditSink",
    "DocumentStore",
    "LLMCompletion",
    "LLMInterface",
    "AggregationResult",
    "Finding",
    "Predicate",
    "SAMPLE_QUESTIONS",
    "settings",
]
