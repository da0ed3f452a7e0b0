# formatter.py
"""Shapes executor output and LLM answers into query responses."""

import time
from typing import Dict, List, Optional

from findings_assistant.core import AggregationResult, Finding
from .types import (
    Classification,
    ExecutionResult,
    FilterSet,
    QueryResponse,
    QueryType,
    ResponseMetadata,
)

PREVIEW_ROWS = 5


def elapsed_ms(started_at: float) -> float:
    return (time.perf_counter() - started_at) * 1000


def describe_filters(filters: FilterSet) -> str:
    parts = []
    for key, value in filters.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(str(item) for item in value)
        elif isinstance(value, dict):
            value = f"{value['start']} to {value['end']}"
        parts.append(f"{key.replace('_', ' ')}: {value}")
    return "; ".join(parts) if parts else "no filters"


class ResultFormatter:
    """Builds QueryResponse objects with mandatory execution metadata"""

    def metadata(
        self,
        strategy: str,
        started_at: float,
        filters: Optional[FilterSet] = None,
        records_examined: int = 0,
        record_count: int = 0,
        confidence: Optional[float] = None,
        tokens_used: Optional[int] = None,
        slow_path: bool = False,
        widened: bool = False,
    ) -> ResponseMetadata:
        return ResponseMetadata(
            strategy=strategy,
            execution_time_ms=elapsed_ms(started_at),
            records_examined=records_examined,
            record_count=record_count,
            tokens_used=tokens_used,
            confidence=confidence,
            slow_path=slow_path,
            filters=filters.to_dict() if filters else {},
            widened=widened,
        )

    def format_rows(
        self,
        execution: ExecutionResult,
        filters: FilterSet,
        classification: Classification,
        started_at: float,
    ) -> QueryResponse:
        """Row list plus count for a structured lookup"""
        total = execution.total_matched
        if total:
            answer = f"Found {total} finding{'s' if total != 1 else ''} ({describe_filters(filters)})."
            preview = [f"- [{row.severity}] {row.title} ({row.project_name or row.project_type or 'n/a'}, {row.audit_year or 'n/a'})"
                       for row in execution.rows[:PREVIEW_ROWS]]
            answer = "\n".join([answer] + preview)
            if total > len(execution.rows):
                answer += f"\nShowing {len(execution.rows)} of {total}."
        else:
            answer = (
                f"No findings matched ({describe_filters(filters)}). "
                "Try removing keywords or widening the year range."
            )
        if classification.corrections.get("project") and filters.project:
            answer = f"Showing results for '{filters.project}' (you typed '{classification.corrections['project']}').\n" + answer

        return QueryResponse(
            query_type=QueryType.LOOKUP,
            answer=answer,
            rows=list(execution.rows),
            metadata=self.metadata(
                strategy="lookup",
                started_at=started_at,
                filters=filters,
                records_examined=execution.records_examined,
                record_count=total,
                confidence=classification.confidence,
                slow_path=execution.slow_path,
            ),
        )

    def format_aggregation(
        self,
        results: List[AggregationResult],
        group_by: List[str],
        filters: FilterSet,
        classification: Classification,
        started_at: float,
        records_examined: int,
        slow_path: bool,
    ) -> QueryResponse:
        """Grouped counts and metrics for 'findings by department' style queries"""
        total = sum(result.count for result in results)
        lines = [f"{total} findings grouped by {', '.join(group_by)} ({describe_filters(filters)}):"]
        for result in results:
            label = " / ".join(str(value) if value is not None else "Unassigned" for value in result.group.values())
            line = f"- {label}: {result.count}"
            if result.metrics:
                line += " (" + ", ".join(f"{name} {value:.1f}" for name, value in result.metrics.items()) + ")"
            lines.append(line)

        return QueryResponse(
            query_type=QueryType.LOOKUP,
            answer="\n".join(lines),
            aggregations=list(results),
            metadata=self.metadata(
                strategy="aggregation",
                started_at=started_at,
                filters=filters,
                records_examined=records_examined,
                record_count=len(results),
                confidence=classification.confidence,
                slow_path=slow_path,
            ),
        )

    def format_analysis(
        self,
        query_type: QueryType,
        answer: str,
        context_rows: List[Finding],
        filters: FilterSet,
        confidence: float,
        started_at: float,
        records_examined: int,
        tokens_used: Optional[int],
        slow_path: bool = False,
        notes: Optional[Dict[str, str]] = None,
        widened: bool = False,
    ) -> QueryResponse:
        """LLM answer with the findings that were given to it as context"""
        text = answer.strip()
        if widened:
            text = (
                f"No findings matched ({describe_filters(filters)}), "
                f"so this answer is based on recent findings.\n" + text
            )
        if notes and notes.get("project"):
            text = f"(Interpreted project as '{filters.project}'.)\n" + text
        return QueryResponse(
            query_type=query_type,
            answer=text,
            rows=list(context_rows),
            metadata=self.metadata(
                strategy=query_type.value,
                started_at=started_at,
                filters=filters,
                records_examined=records_examined,
                record_count=len(context_rows),
                confidence=confidence,
                tokens_used=tokens_used,
                slow_path=slow_path,
                widened=widened,
            ),
        )
