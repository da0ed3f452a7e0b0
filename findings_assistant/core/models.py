# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

SEVERITY_LEVELS = ("Critical", "High", "Medium", "Low")
STATUS_VALUES = ("Open", "In Progress", "Closed", "Deferred")

# Fields a predicate or a group-by may reference
FILTERABLE_FIELDS = (
    "id",
    "severity",
    "status",
    "department",
    "project_name",
    "project_type",
    "audit_year",
    "date_identified",
    "risk_score",
)

AGGREGATE_OPERATIONS = ("count", "sum", "avg", "min", "max")


@dataclass
class Finding:
    """Represents a single audit finding"""

    id: str
    title: str
    description: str
    severity: str
    status: str
    department: Optional[str] = None
    project_name: Optional[str] = None
    project_type: Optional[str] = None
    audit_year: Optional[int] = None
    date_identified: Optional[str] = None  # YYYY-MM-DD
    root_cause: str = ""
    recommendation: str = ""
    risk_score: float = 0.0
    tags: List[str] = field(default_factory=list)

    def searchable_text(self) -> str:
        """Concatenated free-text fields used for keyword matching"""
        parts = [
            self.title,
            self.description,
            self.root_cause,
            self.recommendation,
            self.project_name or "",
            self.project_type or "",
            self.department or "",
            " ".join(self.tags),
        ]
        return " ".join(part for part in parts if part)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity,
            "status": self.status,
            "department": self.department,
            "project_name": self.project_name,
            "project_type": self.project_type,
            "audit_year": self.audit_year,
            "date_identified": self.date_identified,
            "root_cause": self.root_cause,
            "recommendation": self.recommendation,
            "risk_score": self.risk_score,
            "tags": list(self.tags),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        return cls(
            id=str(data["id"]),
            title=data["title"],
            description=data.get("description", ""),
            severity=data["severity"],
            status=data["status"],
            department=data.get("department"),
            project_name=data.get("project_name"),
            project_type=data.get("project_type"),
            audit_year=data.get("audit_year"),
            date_identified=data.get("date_identified"),
            root_cause=data.get("root_cause", ""),
            recommendation=data.get("recommendation", ""),
            risk_score=float(data.get("risk_score", 0.0)),
            tags=list(data.get("tags", [])),
        )


@dataclass(frozen=True)
class Predicate:
    """A single equality, range or membership condition on a finding field"""

    field: str
    operator: str
    value: Any

    OPERATORS = ("==", "!=", ">", ">=", "<", "<=", "in")

    def __post_init__(self):
        if self.field not in FILTERABLE_FIELDS:
            raise ValueError(f"Unsupported predicate field: {self.field}")
        if self.operator not in self.OPERATORS:
            raise ValueError(f"Unsupported predicate operator: {self.operator}")

    def matches(self, finding: Finding) -> bool:
        actual = getattr(finding, self.field)
        if self.operator == "in":
            return actual in self.value
        if actual is None:
            return False
        if self.operator == "==":
            return actual == self.value
        if self.operator == "!=":
            return actual != self.value
        if self.operator == ">":
            return actual > self.value
        if self.operator == ">=":
            return actual >= self.value
        if self.operator == "<":
            return actual < self.value
        return actual <= self.value


@dataclass
class AggregationResult:
    """One group of an aggregation query"""

    group: Dict[str, Any]
    count: int
    metrics: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"group": dict(self.group), "count": self.count, "metrics": dict(self.metrics)}


def metric_key(operation: str, field_name: str) -> str:
    return f"{operation}_{field_name}"


def aggregate_findings(
    findings: Iterable[Finding],
    group_by: Sequence[str],
    metrics: Optional[Sequence[Tuple[str, str]]] = None,
) -> List[AggregationResult]:
    """Group findings in memory and compute count/sum/avg/min/max metrics.

    Groups are returned largest first, then by group key for stable output.
    """
    for name in group_by:
        if name not in FILTERABLE_FIELDS:
            raise ValueError(f"Unsupported group-by field: {name}")
    metrics = list(metrics or [])

    groups: Dict[Tuple, List[Finding]] = {}
    for finding in findings:
        key = tuple(getattr(finding, name) for name in group_by)
        groups.setdefault(key, []).append(finding)

    results = []
    for key, members in groups.items():
        values: Dict[str, float] = {}
        for operation, field_name in metrics:
            numbers = [
                float(getattr(member, field_name))
                for member in members
                if getattr(member, field_name) is not None
            ]
            if operation == "count":
                values[metric_key(operation, field_name)] = float(len(numbers))
            elif not numbers:
                continue
            elif operation == "sum":
                values[metric_key(operation, field_name)] = sum(numbers)
            elif operation == "avg":
                values[metric_key(operation, field_name)] = sum(numbers) / len(numbers)
            elif operation == "min":
                values[metric_key(operation, field_name)] = min(numbers)
            elif operation == "max":
                values[metric_key(operation, field_name)] = max(numbers)
            else:
                raise ValueError(f"Unsupported aggregate operation: {operation}")
        results.append(
            AggregationResult(
                group=dict(zip(group_by, key)), count=len(members), metrics=values
            )
        )

    results.sort(key=lambda result: (-result.count, tuple(str(v) for v in result.group.values())))
    return results


@dataclass(frozen=True)
class AuditRecord:
    """What the router reports about each processed query"""

    session_id: Optional[str]
    query_text: str
    strategy: str
    elapsed_ms: float
    query_id: Optional[str] = None
    outcome: str = "ok"
