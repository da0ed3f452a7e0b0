# executor.py
"""Translates validated filters into document store queries."""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from findings_assistant.core import AggregationResult, DocumentStore, Finding, Predicate, settings
from findings_assistant.core.models import aggregate_findings
from .types import ExecutionResult, FilterSet

logger = logging.getLogger(__name__)

DEFAULT_METRICS: Tuple[Tuple[str, str], ...] = (("avg", "risk_score"), ("max", "risk_score"))

# Keywords this short only match whole words ("IT" must not match "quality")
WHOLE_WORD_MAX_LENGTH = 3


def build_predicates(filter_set: FilterSet) -> List[Predicate]:
    """Equality, range and membership predicates for the structured fields"""
    predicates = []
    if filter_set.department:
        predicates.append(Predicate("department", "==", filter_set.department))
    if filter_set.year is not None:
        predicates.append(Predicate("audit_year", "==", filter_set.year))
    if filter_set.severity:
        predicates.append(Predicate("severity", "in", tuple(filter_set.severity)))
    if filter_set.status:
        predicates.append(Predicate("status", "in", tuple(filter_set.status)))
    if filter_set.project_type:
        predicates.append(Predicate("project_type", "==", filter_set.project_type))
    if filter_set.project:
        predicates.append(Predicate("project_name", "==", filter_set.project))
    if filter_set.date_range:
        predicates.append(Predicate("date_identified", ">=", filter_set.date_range.start))
        predicates.append(Predicate("date_identified", "<=", filter_set.date_range.end))
    return predicates


def keyword_hits(finding: Finding, keywords: Sequence[str]) -> int:
    """Number of keywords found in the finding's free-text fields"""
    text = finding.searchable_text()
    text_lower = text.lower()
    hits = 0
    for keyword in keywords:
        keyword_lower = keyword.lower()
        if len(keyword) <= WHOLE_WORD_MAX_LENGTH and keyword.isupper():
            # Acronyms match case-sensitively ("IT" but not "track it")
            if re.search(r"(?<![\w&])" + re.escape(keyword) + r"(?![\w&])", text):
                hits += 1
        elif len(keyword_lower) <= WHOLE_WORD_MAX_LENGTH:
            if re.search(r"(?<![\w&])" + re.escape(keyword_lower) + r"(?![\w&])", text_lower):
                hits += 1
        elif keyword_lower in text_lower:
            hits += 1
    return hits


def filter_by_keywords(findings: Sequence[Finding], keywords: Sequence[str]) -> List[Finding]:
    """Findings matching any keyword, most keyword hits first (stable)"""
    scored = [(keyword_hits(finding, keywords), finding) for finding in findings]
    matched = [(hits, finding) for hits, finding in scored if hits > 0]
    matched.sort(key=lambda item: -item[0])
    return [finding for _, finding in matched]


class QueryExecutor:
    """Runs structured queries and aggregations against the document store"""

    def __init__(
        self,
        store: DocumentStore,
        collection: str = settings.FINDINGS_COLLECTION,
        max_scan_records: int = settings.MAX_SCAN_RECORDS,
    ):
        self.store = store
        self.collection = collection
        self.max_scan_records = max_scan_records

    def execute(
        self,
        filter_set: FilterSet,
        page: int = 1,
        page_size: int = settings.LOOKUP_PAGE_SIZE,
        use_keywords: bool = True,
    ) -> ExecutionResult:
        """Run the query; keywords are matched client-side on the slow path"""
        predicates = build_predicates(filter_set)
        keywords = list(filter_set.keywords) if use_keywords else []
        offset = max(page - 1, 0) * page_size

        if keywords:
            # No full-text index in the store: scan the structured matches
            candidates = self.store.query(self.collection, predicates, limit=self.max_scan_records)
            matched = filter_by_keywords(candidates, keywords)
            logger.info(
                f"Keyword scan over {len(candidates)} records matched {len(matched)} for {keywords}"
            )
            return ExecutionResult(
                rows=matched[offset:offset + page_size],
                total_matched=len(matched),
                records_examined=len(candidates),
                slow_path=True,
            )

        rows = self.store.query(self.collection, predicates, limit=self.max_scan_records)
        return ExecutionResult(
            rows=rows[offset:offset + page_size],
            total_matched=len(rows),
            records_examined=len(rows),
            slow_path=False,
        )

    def fetch_context(self, filter_set: FilterSet, limit: int) -> List[Finding]:
        """Structured matches without keyword filtering, for LLM context"""
        return self.store.query(self.collection, build_predicates(filter_set), limit=limit)

    def aggregate(
        self,
        filter_set: FilterSet,
        group_by: Sequence[str],
        metrics: Optional[Sequence[Tuple[str, str]]] = DEFAULT_METRICS,
    ) -> Tuple[List[AggregationResult], int, bool]:
        """Grouped results, records examined and whether the slow path ran"""
        predicates = build_predicates(filter_set)
        if filter_set.keywords:
            candidates = self.store.query(self.collection, predicates, limit=self.max_scan_records)
            matched = filter_by_keywords(candidates, filter_set.keywords)
            return aggregate_findings(matched, group_by, metrics), len(candidates), True

        results = self.store.aggregate(self.collection, group_by, predicates, metrics)
        return results, sum(result.count for result in results), False
