# test_executor.py
"""Tests for structured query execution and context building."""

import pytest

from findings_assistant.data import InMemoryFindingRepository
from findings_assistant.query_handlers.context_builder import (
    ContextBuilder,
    estimate_tokens,
)
from findings_assistant.query_handlers.executor import (
    QueryExecutor,
    build_predicates,
    keyword_hits,
)
from findings_assistant.query_handlers.types import DateRange, FilterSet


@pytest.fixture
def executor(sample_findings):
    return QueryExecutor(InMemoryFindingRepository(sample_findings))


def by_id(findings, finding_id):
    return next(finding for finding in findings if finding.id == finding_id)


class TestQueryExecutor:
    """Fast and slow paths against the in-memory store."""

    def test_structured_query(self, executor):
        result = executor.execute(FilterSet(department="IT", year=2025))

        assert [row.id for row in result.rows] == ["F-2025-002", "F-2025-001"]
        assert result.total_matched == 2
        assert result.slow_path is False

    def test_keywords_take_slow_path(self, executor):
        result = executor.execute(
            FilterSet(year=2024, project_type="Hotel", keywords=("APAR", "fire"))
        )

        # most keyword hits first, then most recent
        assert [row.id for row in result.rows] == ["F-2024-001", "F-2024-004", "F-2024-002"]
        assert result.records_examined == 6
        assert result.slow_path is True

    def test_pagination(self, executor):
        result = executor.execute(FilterSet(year=2024), page=2, page_size=3)

        assert [row.id for row in result.rows] == ["F-2024-004", "F-2024-007", "F-2024-003"]
        assert result.total_matched == 8

    def test_date_range(self, executor):
        result = executor.execute(
            FilterSet(date_range=DateRange(start="2025-02-01", end="2025-02-28"))
        )
        assert {row.id for row in result.rows} == {"F-2025-001", "F-2025-002"}

    def test_no_match(self, executor):
        result = executor.execute(FilterSet(year=2019))
        assert result.rows == []
        assert result.total_matched == 0

    def test_fetch_context_ignores_keywords(self, executor):
        rows = executor.fetch_context(FilterSet(department="IT", keywords=("nothing-matches",)), limit=10)
        assert len(rows) == 3

    def test_aggregate_by_severity(self, executor):
        results, examined, slow_path = executor.aggregate(FilterSet(year=2024), ["severity"])

        assert [(r.group["severity"], r.count) for r in results] == [
            ("High", 4), ("Critical", 2), ("Medium", 2)
        ]
        assert results[0].metrics["avg_risk_score"] == pytest.approx(15.5)
        assert results[0].metrics["max_risk_score"] == pytest.approx(17)
        assert examined == 8
        assert slow_path is False

    def test_aggregate_with_keywords(self, executor):
        results, examined, slow_path = executor.aggregate(
            FilterSet(keywords=("fire",)), ["project_name"]
        )

        assert slow_path is True
        assert examined == 14
        assert results[0].group == {"project_name": "Grand Harbour Hotel"}


class TestKeywordMatching:
    """Keyword hit counting."""

    def test_acronyms_match_case_sensitively(self, sample_findings):
        apar = by_id(sample_findings, "F-2024-001")  # "track it in the maintenance system"
        guest_data = by_id(sample_findings, "F-2024-003")

        assert keyword_hits(apar, ["IT"]) == 0
        assert keyword_hits(guest_data, ["IT"]) == 1

    def test_short_keywords_match_whole_words(self, sample_findings):
        finding = by_id(sample_findings, "F-2025-001")
        assert keyword_hits(finding, ["pos"]) == 1
        assert keyword_hits(finding, ["adm"]) == 0

    def test_longer_keywords_match_substrings(self, sample_findings):
        finding = by_id(sample_findings, "F-2024-002")
        assert keyword_hits(finding, ["fire", "banquet", "sprinkler"]) == 2

    def test_build_predicates(self):
        predicates = build_predicates(FilterSet(
            year=2024,
            severity=("High",),
            date_range=DateRange(start="2024-01-01", end="2024-06-30"),
        ))
        assert [(p.field, p.operator) for p in predicates] == [
            ("audit_year", "=="),
            ("severity", "in"),
            ("date_identified", ">="),
            ("date_identified", "<="),
        ]


class TestContextBuilder:
    """Relevance ranking and token budgets."""

    def test_estimate_tokens(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abcd") == 1
        assert estimate_tokens("abcde") == 2

    def test_relevance_score(self, sample_findings):
        builder = ContextBuilder()
        filters = FilterSet(year=2024, project_type="Hotel", severity=("High",))

        assert builder.relevance_score(by_id(sample_findings, "F-2024-001"), filters) == 55
        assert builder.relevance_score(by_id(sample_findings, "F-2025-004"), filters) == 0

    def test_select_relevant_prefers_matches_then_recency(self, sample_findings):
        builder = ContextBuilder(max_findings=3)
        selected = builder.select_relevant(sample_findings, FilterSet(department="Finance"))

        assert [f.id for f in selected] == ["F-2025-004", "F-2024-008", "F-2025-003"]

    def test_build_context_respects_budget(self, sample_findings):
        builder = ContextBuilder(max_tokens=250)
        block = builder.build_context(sample_findings)

        assert 0 < len(block.included) < len(sample_findings)
        assert block.omitted == len(sample_findings) - len(block.included)
        assert f"{block.omitted} additional findings omitted" in block.text
        assert block.text.startswith("1. [")

    def test_build_context_fits_everything(self, sample_findings):
        block = ContextBuilder().build_context(sample_findings[:3])

        assert block.omitted == 0
        assert "omitted" not in block.text
        assert "2. [Critical] Fire exit blocked by banquet storage (Closed)" in block.text

    def test_omitted_counts_findings_dropped_by_selection(self, sample_findings):
        builder = ContextBuilder(max_findings=4)
        selected = builder.select_relevant(sample_findings, FilterSet(year=2024))

        block = builder.build_context(selected, retrieved=len(sample_findings))

        assert len(block.included) == 4
        assert block.omitted == 10
        assert "10 additional findings omitted" in block.text
