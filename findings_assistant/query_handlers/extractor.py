# extractor.py
"""Candidate filter extraction for query routing."""

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from .entity_config import EntityConfigLoader, Mention, get_entity_config
from .similarity import BEST_MATCH_MIN_SCORE, top_matches
from .types import CandidateMatch

logger = logging.getLogger(__name__)

# Auto-correct a fuzzy project name only when the best candidate leads the
# runner-up by at least this much
AUTO_CORRECT_MARGIN = 0.1

STOPWORDS = {
    "show", "me", "find", "get", "list", "display", "about", "in", "for", "the",
    "a", "an", "and", "or", "of", "findings", "finding", "is", "are", "there",
    "any", "all", "what", "which", "who", "how", "many", "much", "with", "from",
    "to", "on", "at", "by", "per", "did", "do", "does", "we", "our", "us", "you",
    "have", "has", "had", "was", "were", "be", "been", "this", "that", "these",
    "those", "year", "years", "last", "between", "during", "please", "give",
    "tell", "should", "would", "could", "can", "new", "based", "care", "why",
    "explain", "summarize", "summarise", "analyze", "analyse", "compare",
    "recommend", "recommendations", "pattern", "patterns", "trend", "trends",
    "count", "number", "total", "then", "also", "them", "their", "its", "it",
    "severity", "status", "priority", "project", "projects", "site", "sites",
    "department", "departments", "type", "types", "grouped", "each", "since",
    "until", "within", "into", "over", "under", "when", "where", "will", "not",
    "some", "most", "more", "less", "than", "what's", "lessons", "learn",
}

YEAR_PATTERN = re.compile(r"\b(20\d{2})\b")
ISO_RANGE_PATTERN = re.compile(
    r"\b(\d{4}-\d{2}-\d{2})\s*(?:to|until|through|and|-)\s*(\d{4}-\d{2}-\d{2})\b",
    re.IGNORECASE,
)
RELATIVE_YEAR_PATTERN = re.compile(r"\b(this|last)\s+year\b", re.IGNORECASE)
PROJECT_MENTION_PATTERN = re.compile(
    r"\b(?:project|site|property)\s+(?:named\s+|called\s+)?", re.IGNORECASE
)
QUOTED_PATTERN = re.compile(r"[\"“]([^\"”]{2,80})[\"”]")
GROUP_BY_PATTERN = re.compile(
    r"\b(?:by|per|for each|grouped by)\s+(project\s+type|department|year|severity|status|project|type)s?\b",
    re.IGNORECASE,
)
WORD_PATTERN = re.compile(r"[A-Za-z0-9][\w&'-]*")

GROUP_BY_FIELDS = {
    "department": "department",
    "year": "audit_year",
    "severity": "severity",
    "status": "status",
    "project": "project_name",
    "project type": "project_type",
    "type": "project_type",
}

# Words that end a free-form project name
PROJECT_NAME_BREAKS = STOPWORDS - {"new"}
MAX_PROJECT_NAME_WORDS = 4


@dataclass
class ExtractedEntities:
    """Candidate filters and entity signals found in a query"""

    candidates: Dict[str, Any] = field(default_factory=dict)
    group_by: List[str] = field(default_factory=list)
    field_mentions: int = 0
    project_term: Optional[str] = None
    project_candidates: List[CandidateMatch] = field(default_factory=list)
    corrections: Dict[str, str] = field(default_factory=dict)

    @property
    def needs_confirmation(self) -> bool:
        return bool(self.project_candidates)


class EntityExtractor:
    """Extracts candidate filters from queries using the configured vocabulary"""

    def __init__(
        self,
        entity_config: Optional[EntityConfigLoader] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.entity_config = entity_config or get_entity_config()
        self._today = today or date.today
        self._known_projects: List[str] = list(self.entity_config.projects)
        self._stopwords = STOPWORDS | set(self.entity_config.stopwords)
        self._filter_words = set(self.entity_config.vocabulary_terms())

    @property
    def known_projects(self) -> List[str]:
        return list(self._known_projects)

    def update_known_projects(self, names: Iterable[str]) -> None:
        """Merge project names from current data into the known list"""
        seen = {name.lower() for name in self._known_projects}
        for name in names:
            if name and name.lower() not in seen:
                self._known_projects.append(name)
                seen.add(name.lower())

    def extract(self, query: str) -> ExtractedEntities:
        result = ExtractedEntities()
        consumed: List[Tuple[int, int]] = []

        self._extract_dates(query, result, consumed)
        self._extract_project(query, result, consumed)

        departments = self._mentions_outside(query, "departments", consumed)
        self._assign_single_or_keywords(departments, "department", result, consumed)

        project_types = self._mentions_outside(query, "project_types", consumed)
        self._assign_single_or_keywords(project_types, "project_type", result, consumed)

        for section, key in (("severities", "severity"), ("statuses", "status")):
            mentions = self._mentions_outside(query, section, consumed)
            values = _distinct([mention.canonical for mention in mentions])
            if values:
                result.candidates[key] = values
                result.field_mentions += 1
                consumed.extend((mention.start, mention.end) for mention in mentions)

        for match in GROUP_BY_PATTERN.finditer(query):
            group_field = GROUP_BY_FIELDS[re.sub(r"\s+", " ", match.group(1).lower())]
            if group_field not in result.group_by:
                result.group_by.append(group_field)
            consumed.append(match.span())

        keywords = list(result.candidates.get("keywords", []))
        keywords.extend(self._extract_keywords(query, consumed))
        keywords = _distinct(keywords, key=str.lower)
        if keywords:
            result.candidates["keywords"] = keywords

        return result

    def _extract_dates(
        self, query: str, result: ExtractedEntities, consumed: List[Tuple[int, int]]
    ) -> None:
        iso_range = ISO_RANGE_PATTERN.search(query)
        if iso_range:
            result.candidates["date_range"] = {
                "start": iso_range.group(1),
                "end": iso_range.group(2),
            }
            result.field_mentions += 1
            consumed.append(iso_range.span())
            return

        years: List[int] = []
        for match in YEAR_PATTERN.finditer(query):
            years.append(int(match.group(1)))
            consumed.append(match.span())
        for match in RELATIVE_YEAR_PATTERN.finditer(query):
            current = self._today().year
            years.append(current if match.group(1).lower() == "this" else current - 1)
            consumed.append(match.span())

        distinct_years = _distinct(years)
        if len(distinct_years) == 1:
            result.candidates["year"] = distinct_years[0]
            result.field_mentions += 1
        elif len(distinct_years) > 1:
            result.candidates["date_range"] = {
                "start": f"{min(distinct_years)}-01-01",
                "end": f"{max(distinct_years)}-12-31",
            }
            result.field_mentions += 1

    def _extract_project(
        self, query: str, result: ExtractedEntities, consumed: List[Tuple[int, int]]
    ) -> None:
        query_lower = query.lower()
        for name in sorted(self._known_projects, key=len, reverse=True):
            match = re.search(r"(?<!\w)" + re.escape(name.lower()) + r"(?!\w)", query_lower)
            if match:
                result.candidates["project"] = name
                result.field_mentions += 1
                consumed.append(match.span())
                return

        term, span = self._find_project_term(query)
        if not term:
            return
        consumed.append(span)
        result.project_term = term

        matches = top_matches(term, self._known_projects)
        if not matches:
            logger.info(f"No known project resembles '{term}', searching it as keywords")
            result.candidates.setdefault("keywords", []).extend(term.split())
            return

        best = matches[0]
        runner_up = matches[1] if len(matches) > 1 else None
        if best.score >= BEST_MATCH_MIN_SCORE and (
            runner_up is None or best.score - runner_up.score >= AUTO_CORRECT_MARGIN
        ):
            logger.info(f"Auto-corrected project '{term}' to '{best.value}' (score {best.score:.2f})")
            result.candidates["project"] = best.value
            result.corrections["project"] = term
            result.field_mentions += 1
        else:
            result.project_candidates = matches

    def _find_project_term(self, query: str) -> Tuple[Optional[str], Tuple[int, int]]:
        quoted = QUOTED_PATTERN.search(query)
        if quoted:
            return quoted.group(1).strip(), quoted.span()

        mention = PROJECT_MENTION_PATTERN.search(query)
        if not mention:
            return None, (0, 0)

        words = []
        end = mention.end()
        for word in WORD_PATTERN.finditer(query, mention.end()):
            token = word.group(0)
            if (
                token.lower() in PROJECT_NAME_BREAKS
                or YEAR_PATTERN.fullmatch(token)
                or len(words) >= MAX_PROJECT_NAME_WORDS
                or query[end:word.start()].strip()
            ):
                break
            words.append(token)
            end = word.end()

        if not words:
            return None, (0, 0)
        return " ".join(words), (mention.start(), end)

    def _mentions_outside(
        self, query: str, section: str, consumed: List[Tuple[int, int]]
    ) -> List[Mention]:
        return [
            mention
            for mention in self.entity_config.find_mentions(query, section)
            if not _overlaps((mention.start, mention.end), consumed)
        ]

    def _assign_single_or_keywords(
        self,
        mentions: List[Mention],
        key: str,
        result: ExtractedEntities,
        consumed: List[Tuple[int, int]],
    ) -> None:
        """One distinct value becomes a structured filter; several become keywords"""
        if not mentions:
            return
        consumed.extend((mention.start, mention.end) for mention in mentions)

        distinct = _distinct([mention.canonical for mention in mentions])
        if len(distinct) == 1:
            result.candidates[key] = distinct[0]
            result.field_mentions += 1
            return

        logger.info(f"Multiple {key} values {distinct}, falling back to keyword search")
        texts = _distinct(
            [mention.text for mention in mentions], key=lambda text: text.lower()
        )
        result.candidates.setdefault("keywords", []).extend(texts)

    def _extract_keywords(self, query: str, consumed: List[Tuple[int, int]]) -> List[str]:
        keywords = []
        for word in WORD_PATTERN.finditer(query):
            if _overlaps(word.span(), consumed):
                continue
            token = word.group(0).strip("'-")
            token_lower = token.lower()
            if (
                len(token) <= 2
                or token.isdigit()
                or token_lower in self._stopwords
                or token_lower in self._filter_words
            ):
                continue
            keywords.append(token)
        return keywords


def _overlaps(span: Tuple[int, int], spans: List[Tuple[int, int]]) -> bool:
    start, end = span
    return any(start < other_end and other_start < end for other_start, other_end in spans)


def _distinct(values, key=None) -> list:
    seen = set()
    result = []
    for value in values:
        marker = key(value) if key else value
        if marker not in seen:
            seen.add(marker)
            result.append(value)
    return result
