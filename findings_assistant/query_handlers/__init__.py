# Query package
"""Query routing and intent classification for audit findings."""

from .analytical_handler import AnalyticalHandler
from .classifier import QueryClassifier
from .context_builder import ContextBuilder
from .entity_config import EntityConfigLoader, get_entity_config
from .executor import QueryExecutor
from .extractor import EntityExtractor
from .fallback_handler import FallbackHandler
from .filter_extractor import FilterExtractor
from .hybrid_handler import HybridHandler
from .lookup_handler import LookupHandler
from .router import SmartQueryRouter
from .types import (
    CandidateMatch,
    Classification,
    FilterSet,
    Query,
    QueryErrorResponse,
    QueryResponse,
    QueryType,
    Rejected,
    ResponseStatus,
    ThinkingMode,
)

__all__ = [
    # Handlers
    "AnalyticalHandler",
    "FallbackHandler",
    "HybridHandler",
    "LookupHandler",
    # Core components
    "ContextBuilder",
    "EntityConfigLoader",
    "EntityExtractor",
    "FilterExtractor",
    "QueryClassifier",
    "QueryExecutor",
    "SmartQueryRouter",
    "get_entity_config",
    # Types
    "CandidateMatch",
    "Classification",
    "FilterSet",
    "Query",
    "QueryErrorResponse",
    "QueryResponse",
    "QueryType",
    "Rejected",
    "ResponseStatus",
    "ThinkingMode",
]
