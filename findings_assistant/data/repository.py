# repository.py
"""In-memory findings repository for development, demos and tests."""

import threading
from typing import Dict, List, Optional, Sequence, Tuple

from findings_assistant.core import AggregationResult, Finding, Predicate, settings
from findings_assistant.core.exceptions import StoreUnavailableError
from findings_assistant.core.models import FILTERABLE_FIELDS, aggregate_findings
from .base_repository import BaseFindingRepository


class InMemoryFindingRepository(BaseFindingRepository):
    """Repository keeping findings in a dict keyed by id"""

    def __init__(self, findings: Optional[List[Finding]] = None):
        self._findings: Dict[str, Finding] = {}
        self._lock = threading.Lock()
        if findings:
            self.add_many(findings)

    def _check_collection(self, collection: str) -> None:
        if collection != settings.FINDINGS_COLLECTION:
            raise StoreUnavailableError(f"Unknown collection: {collection}")

    def _snapshot(self) -> List[Finding]:
        with self._lock:
            findings = list(self._findings.values())
        # Most recently identified first, matching the SQL repository
        findings.sort(key=lambda finding: finding.id)
        findings.sort(key=lambda finding: finding.date_identified or "", reverse=True)
        return findings

    def add(self, finding: Finding) -> None:
        with self._lock:
            self._findings[finding.id] = finding

    def add_many(self, findings: List[Finding]) -> None:
        with self._lock:
            for finding in findings:
                self._findings[finding.id] = finding

    def query(
        self,
        collection: str,
        predicates: Sequence[Predicate],
        limit: Optional[int] = None,
    ) -> List[Finding]:
        self._check_collection(collection)
        matches = [
            finding
            for finding in self._snapshot()
            if all(predicate.matches(finding) for predicate in predicates)
        ]
        return matches[:limit] if limit else matches

    def aggregate(
        self,
        collection: str,
        group_by: Sequence[str],
        predicates: Sequence[Predicate],
        metrics: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> List[AggregationResult]:
        return aggregate_findings(self.query(collection, predicates), group_by, metrics)

    def distinct_values(self, collection: str, field: str) -> List[str]:
        self._check_collection(collection)
        if field not in FILTERABLE_FIELDS:
            raise ValueError(f"Unsupported field: {field}")
        return [
            str(result.group[field])
            for result in aggregate_findings(self._snapshot(), [field])
            if result.group[field] not in (None, "")
        ]

    def get_recent(self, limit: int = 50) -> List[Finding]:
        return self._snapshot()[:limit]

    def count(self) -> int:
        with self._lock:
            return len(self._findings)

    def clear(self) -> None:
        with self._lock:
            self._findings.clear()

    def get_stats(self) -> Dict:
        findings = self._snapshot()
        return {
            "total_findings": len(findings),
            "severity_distribution": {
                result.group["severity"]: result.count
                for result in aggregate_findings(findings, ["severity"])
            },
            "department_distribution": {
                result.group["department"]: result.count
                for result in aggregate_findings(findings, ["department"])
                if result.group["department"]
            },
        }
