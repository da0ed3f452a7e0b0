# Services package
"""Supporting services for the findings assistant."""

from .audit_sink import LoggingAuditSink
from .data_loader import DataLoader
from .data_masking import DataMasker, MaskingSession
from .query_cache import CachedResult, QueryCache, normalize_query
from .session_tracker import SessionTracker

__all__ = [
    "CachedResult",
    "DataLoader",
    "DataMasker",
    "LoggingAuditSink",
    "MaskingSession",
    "QueryCache",
    "SessionTracker",
    "normalize_query",
]
