# context_builder.py
"""Relevance ranking and token-budgeted context for LLM prompts."""

import math
from dataclasses import dataclass
from typing import List, Optional, Sequence

from findings_assistant.core import Finding, settings
from .executor import keyword_hits
from .types import FilterSet

# Relevance weights per matched filter dimension
YEAR_WEIGHT = 20
PROJECT_TYPE_WEIGHT = 20
SEVERITY_WEIGHT = 15
STATUS_WEIGHT = 15
DEPARTMENT_WEIGHT = 10
KEYWORD_WEIGHT = 20

TRUNCATION_NOTE = (
    "[Context truncated: {omitted} additional findings omitted due to context limits]"
)


def estimate_tokens(text: str) -> int:
    """Rough token count: one token per four characters"""
    return math.ceil(len(text) / 4)


@dataclass
class ContextBlock:
    text: str
    included: List[Finding]
    omitted: int
    tokens: int


class ContextBuilder:
    """Selects the most relevant findings and renders them within a token budget"""

    def __init__(
        self,
        max_findings: int = settings.MAX_CONTEXT_FINDINGS,
        max_tokens: int = settings.MAX_CONTEXT_TOKENS,
    ):
        self.max_findings = max_findings
        self.max_tokens = max_tokens

    def relevance_score(self, finding: Finding, filters: FilterSet) -> float:
        score = 0.0
        if filters.year is not None and finding.audit_year == filters.year:
            score += YEAR_WEIGHT
        elif filters.date_range and finding.date_identified and (
            filters.date_range.start <= finding.date_identified <= filters.date_range.end
        ):
            score += YEAR_WEIGHT
        if filters.project_type and finding.project_type == filters.project_type:
            score += PROJECT_TYPE_WEIGHT
        if filters.severity and finding.severity in filters.severity:
            score += SEVERITY_WEIGHT
        if filters.status and finding.status in filters.status:
            score += STATUS_WEIGHT
        if filters.department and finding.department == filters.department:
            score += DEPARTMENT_WEIGHT
        if filters.keywords:
            hits = keyword_hits(finding, filters.keywords)
            score += KEYWORD_WEIGHT * hits / len(filters.keywords)
        return score

    def select_relevant(self, findings: Sequence[Finding], filters: FilterSet) -> List[Finding]:
        """Highest relevance first; more recent findings win ties"""
        ranked = sorted(findings, key=lambda finding: finding.date_identified or "", reverse=True)
        ranked.sort(key=lambda finding: self.relevance_score(finding, filters), reverse=True)
        return ranked[: self.max_findings]

    def format_finding(self, index: int, finding: Finding) -> str:
        lines = [
            f"{index}. [{finding.severity}] {finding.title} ({finding.status})",
            f"   Project: {finding.project_name or 'n/a'} ({finding.project_type or 'n/a'}), "
            f"Department: {finding.department or 'n/a'}, Year: {finding.audit_year or 'n/a'}",
            f"   Description: {finding.description}",
        ]
        if finding.root_cause:
            lines.append(f"   Root cause: {finding.root_cause}")
        if finding.recommendation:
            lines.append(f"   Recommendation: {finding.recommendation}")
        return "\n".join(lines)

    def build_context(
        self, findings: Sequence[Finding], retrieved: Optional[int] = None
    ) -> ContextBlock:
        """Render findings in the given priority order until the budget is used.

        `retrieved` is the size of the set the findings were selected from, so
        the truncation note also counts findings dropped by `select_relevant`.
        """
        parts: List[str] = []
        included: List[Finding] = []
        used = 0
        for finding in findings:
            block = self.format_finding(len(included) + 1, finding)
            cost = estimate_tokens(block + "\n\n")
            if used + cost > self.max_tokens:
                break
            parts.append(block)
            included.append(finding)
            used += cost

        total = len(findings) if retrieved is None else max(retrieved, len(findings))
        omitted = total - len(included)
        if omitted:
            parts.append(TRUNCATION_NOTE.format(omitted=omitted))
        text = "\n\n".join(parts)
        return ContextBlock(text=text, included=included, omitted=omitted, tokens=estimate_tokens(text))
