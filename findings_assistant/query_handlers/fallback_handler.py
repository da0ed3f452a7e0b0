# fallback_handler.py
"""Degraded keyword search over a snapshot of recently seen findings."""

import logging
import re
import threading
from collections import OrderedDict
from typing import Iterable, List

from findings_assistant.core import Finding, settings
from .executor import build_predicates, filter_by_keywords
from .extractor import STOPWORDS
from .formatter import ResultFormatter
from .types import FilterSet, QueryErrorResponse

logger = logging.getLogger(__name__)

MAX_FALLBACK_RESULTS = 20

ERROR_MESSAGES = {
    "STORE_UNAVAILABLE": (
        "The findings database is unavailable right now.",
        "Showing basic keyword results from recently loaded findings. Try again in a few minutes.",
    ),
    "AI_UNAVAILABLE": (
        "AI analysis is unavailable right now.",
        "Showing basic keyword results instead. Ask a direct question such as "
        "'open findings in 2024' or try again later.",
    ),
    "AI_QUOTA_EXCEEDED": (
        "The AI analysis quota has been reached.",
        "Showing basic keyword results instead. Try again later or ask a direct lookup question.",
    ),
    "CLASSIFICATION_ERROR": (
        "The question could not be interpreted.",
        "Showing basic keyword results. Try naming a year, department, severity or project.",
    ),
    "UNAVAILABLE": (
        "The findings assistant is unavailable.",
        "Please try again later.",
    ),
}


class FallbackHandler:
    """Keeps a bounded snapshot of findings and searches it by keyword"""

    def __init__(self, formatter: ResultFormatter, max_size: int = settings.FALLBACK_DATASET_SIZE):
        self.formatter = formatter
        self.max_size = max_size
        self._dataset: "OrderedDict[str, Finding]" = OrderedDict()
        self._lock = threading.Lock()

    def absorb(self, findings: Iterable[Finding]) -> None:
        """Remember findings returned by successful store reads"""
        with self._lock:
            for finding in findings:
                self._dataset[finding.id] = finding
                self._dataset.move_to_end(finding.id)
            while len(self._dataset) > self.max_size:
                self._dataset.popitem(last=False)

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._dataset)

    def search(self, text: str, filters: FilterSet) -> List[Finding]:
        with self._lock:
            dataset = list(reversed(self._dataset.values()))

        predicates = build_predicates(filters)
        candidates = [
            finding for finding in dataset
            if all(predicate.matches(finding) for predicate in predicates)
        ]
        keywords = list(filters.keywords) or [
            word for word in re.findall(r"[A-Za-z0-9][\w&-]*", text)
            if len(word) > 2 and word.lower() not in STOPWORDS and not word.isdigit()
        ]
        if keywords:
            candidates = filter_by_keywords(candidates, keywords)
        return candidates[:MAX_FALLBACK_RESULTS]

    def degrade(
        self, code: str, text: str, filters: FilterSet, started_at: float
    ) -> QueryErrorResponse:
        """Error response carrying keyword results from the snapshot"""
        message, suggestion = ERROR_MESSAGES[code]
        try:
            fallback_data = self.search(text, filters)
        except Exception as e:
            logger.exception(f"Fallback keyword search failed: {e}")
            code = "UNAVAILABLE"
            message, suggestion = ERROR_MESSAGES[code]
            fallback_data = []

        metadata = self.formatter.metadata(
            strategy="keyword_fallback",
            started_at=started_at,
            filters=filters,
            records_examined=self.size,
            record_count=len(fallback_data),
            slow_path=True,
        )
        metadata.degraded = True
        return QueryErrorResponse(
            code=code,
            message=message,
            suggestion=suggestion,
            metadata=metadata,
            fallback_data=fallback_data,
        )
