# types.py
"""Data types and models for the query routing system."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from findings_assistant.core.exceptions import InputEmptyError
from findings_assistant.core.models import AggregationResult, Finding


class QueryType(str, Enum):
    LOOKUP = "lookup"
    ANALYTICAL = "analytical"
    HYBRID = "hybrid"


class ThinkingMode(str, Enum):
    FAST = "fast"
    DEEP = "deep"


class ResponseStatus(str, Enum):
    OK = "ok"
    CACHED = "cached"
    CONFIRMATION_REQUIRED = "confirmation_required"


@dataclass(frozen=True)
class Query:
    """A user question as received by the router"""

    text: str
    session_id: Optional[str] = None
    thinking_mode: ThinkingMode = ThinkingMode.FAST

    @classmethod
    def create(
        cls,
        text: Optional[str],
        session_id: Optional[str] = None,
        thinking_mode: Any = ThinkingMode.FAST,
    ) -> "Query":
        cleaned = (text or "").strip()
        if not cleaned:
            raise InputEmptyError("Query text must not be empty")
        return cls(
            text=cleaned,
            session_id=session_id,
            thinking_mode=ThinkingMode(thinking_mode),
        )


@dataclass(frozen=True)
class CandidateMatch:
    """A canonical value proposed for a fuzzy entity mention"""

    value: str
    score: float
    distance: int

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "score": round(self.score, 4), "distance": self.distance}


@dataclass(frozen=True)
class DateRange:
    start: str  # YYYY-MM-DD, inclusive
    end: str  # YYYY-MM-DD, inclusive

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}


@dataclass(frozen=True)
class FilterSet:
    """Validated, whitelisted query filters"""

    department: Optional[str] = None
    year: Optional[int] = None
    severity: Tuple[str, ...] = ()
    status: Tuple[str, ...] = ()
    project_type: Optional[str] = None
    project: Optional[str] = None
    date_range: Optional[DateRange] = None
    keywords: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(self.to_dict().values())

    def without_keywords(self) -> "FilterSet":
        return FilterSet(
            department=self.department,
            year=self.year,
            severity=self.severity,
            status=self.status,
            project_type=self.project_type,
            project=self.project,
            date_range=self.date_range,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Non-empty fields only, in a shape the validator accepts"""
        data: Dict[str, Any] = {}
        if self.department:
            data["department"] = self.department
        if self.year is not None:
            data["year"] = self.year
        if self.severity:
            data["severity"] = list(self.severity)
        if self.status:
            data["status"] = list(self.status)
        if self.project_type:
            data["project_type"] = self.project_type
        if self.project:
            data["project"] = self.project
        if self.date_range:
            data["date_range"] = self.date_range.to_dict()
        if self.keywords:
            data["keywords"] = list(self.keywords)
        return data


@dataclass(frozen=True)
class Rejected:
    """Outcome of filter extraction when no field survived validation"""

    reasons: Dict[str, str] = field(default_factory=dict)


@dataclass
class Classification:
    """Classification result for a query"""

    query_type: QueryType
    confidence: float
    reasoning: str
    extracted_filters: Optional[Dict[str, Any]] = None
    requires_confirmation: bool = False
    candidates: List[CandidateMatch] = field(default_factory=list)
    group_by: List[str] = field(default_factory=list)
    corrections: Dict[str, str] = field(default_factory=dict)
    ambiguous_term: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query_type": self.query_type.value,
            "confidence": round(self.confidence, 3),
            "reasoning": self.reasoning,
            "extracted_filters": self.extracted_filters,
            "requires_confirmation": self.requires_confirmation,
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "group_by": list(self.group_by),
            "corrections": dict(self.corrections),
            "ambiguous_term": self.ambiguous_term,
        }


@dataclass
class ExecutionResult:
    """Rows returned by the query executor"""

    rows: List[Finding]
    total_matched: int
    records_examined: int
    slow_path: bool = False


@dataclass
class ResponseMetadata:
    strategy: str
    execution_time_ms: float = 0.0
    records_examined: int = 0
    record_count: int = 0
    tokens_used: Optional[int] = None
    confidence: Optional[float] = None
    cache_hit: bool = False
    slow_path: bool = False
    degraded: bool = False
    filters: Dict[str, Any] = field(default_factory=dict)
    query_id: Optional[str] = None
    broadened_from: Optional[str] = None
    widened: bool = False
    stale: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy,
            "execution_time_ms": round(self.execution_time_ms, 2),
            "records_examined": self.records_examined,
            "record_count": self.record_count,
            "tokens_used": self.tokens_used,
            "confidence": self.confidence,
            "cache_hit": self.cache_hit,
            "slow_path": self.slow_path,
            "degraded": self.degraded,
            "filters": self.filters,
            "query_id": self.query_id,
            "broadened_from": self.broadened_from,
            "widened": self.widened,
            "stale": self.stale,
        }


@dataclass
class QueryResponse:
    """Response from the query router"""

    query_type: QueryType
    metadata: ResponseMetadata
    answer: str = ""
    rows: List[Finding] = field(default_factory=list)
    aggregations: List[AggregationResult] = field(default_factory=list)
    candidates: List[CandidateMatch] = field(default_factory=list)
    status: ResponseStatus = ResponseStatus.OK

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.query_type.value,
            "status": self.status.value,
            "answer": self.answer,
            "rows": [row.to_dict() for row in self.rows],
            "aggregations": [result.to_dict() for result in self.aggregations],
            "candidates": [candidate.to_dict() for candidate in self.candidates],
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class QueryErrorResponse:
    """Degraded or failed outcome carrying best-effort fallback data"""

    code: str
    message: str
    suggestion: str
    metadata: ResponseMetadata
    fallback_data: List[Finding] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "suggestion": self.suggestion,
            "fallback_data": [row.to_dict() for row in self.fallback_data],
            "metadata": self.metadata.to_dict(),
        }

