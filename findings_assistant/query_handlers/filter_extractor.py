# filter_extractor.py
"""Whitelist validation and type coercion of candidate filters."""

import json
import logging
import re
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from findings_assistant.core import LLMInterface, settings
from findings_assistant.core.exceptions import LLMProviderError, ValidationRejected
from findings_assistant.core.models import SEVERITY_LEVELS, STATUS_VALUES
from findings_assistant.services.data_masking import DataMasker
from .entity_config import EntityConfigLoader, get_entity_config
from .types import Classification, DateRange, FilterSet, Rejected

logger = logging.getLogger(__name__)

ALLOWED_FIELDS = (
    "department",
    "year",
    "severity",
    "status",
    "project_type",
    "project",
    "date_range",
    "keywords",
)

MIN_YEAR = 2000
MAX_YEAR = 2100
MAX_KEYWORDS = 10

FILTER_PROMPT = """Extract search filters from an audit findings question.
Reply with a single JSON object using only these keys:
department (string), year (integer), severity (list of Critical/High/Medium/Low),
status (list of Open/In Progress/Closed/Deferred), project_type (string),
project (string), date_range ({{"start": "YYYY-MM-DD", "end": "YYYY-MM-DD"}}),
keywords (list of strings). Omit keys that the question does not mention.

Question: {query}
JSON:"""


class FilterExtractor:
    """Turns classifier candidates into a validated FilterSet"""

    def __init__(
        self,
        entity_config: Optional[EntityConfigLoader] = None,
        llm: Optional[LLMInterface] = None,
        masker: Optional[DataMasker] = None,
    ):
        self.entity_config = entity_config or get_entity_config()
        self.llm = llm
        self.masker = masker or DataMasker(settings.MASK_SENSITIVE_DATA)

    def extract(self, classification: Classification) -> Union[FilterSet, Rejected]:
        """Validate classifier candidates; Rejected when nothing survives"""
        filter_set, rejections = self.validate_with_reasons(
            classification.extracted_filters or {}
        )
        if filter_set.is_empty:
            return Rejected(reasons=rejections)
        return filter_set

    def extract_with_llm(
        self, query: str, classification: Classification
    ) -> Union[FilterSet, Rejected]:
        """Fill gaps in the pattern candidates with filters proposed by the LLM.

        Pattern-extracted fields take precedence; an LLM failure leaves the
        pattern candidates as they are.
        """
        candidates = dict(classification.extracted_filters or {})
        if self.llm is not None:
            masking = self.masker.session()
            prompt = FILTER_PROMPT.format(query=masking.mask(query))
            try:
                completion = self.llm.complete(prompt, max_tokens=256)
                for key, value in _parse_json_object(completion.text).items():
                    candidates.setdefault(key, masking.unmask_value(value))
            except (LLMProviderError, ValueError) as e:
                logger.warning(f"LLM filter extraction failed, using pattern filters: {e}")

        filter_set, rejections = self.validate_with_reasons(candidates)
        if filter_set.is_empty:
            return Rejected(reasons=rejections)
        return filter_set

    def validate(self, candidate: Mapping[str, Any]) -> FilterSet:
        filter_set, _ = self.validate_with_reasons(candidate)
        return filter_set

    def validate_with_reasons(
        self, candidate: Mapping[str, Any]
    ) -> Tuple[FilterSet, Dict[str, str]]:
        """Keep whitelisted, well-typed fields; report why the rest were dropped"""
        values: Dict[str, Any] = {}
        rejections: Dict[str, str] = {}

        for key, raw in candidate.items():
            if raw is None or raw == "" or raw == []:
                continue
            try:
                if key not in ALLOWED_FIELDS:
                    raise ValidationRejected(key, "field is not allowed")
                values[key] = getattr(self, f"_coerce_{key}")(raw)
            except ValidationRejected as e:
                rejections[e.field] = e.reason
                logger.warning(f"Dropped filter {e}")

        return FilterSet(**values), rejections

    def _coerce_department(self, value: Any) -> str:
        text = _require_text("department", value)
        return self.entity_config.canonical_value("departments", text) or text

    def _coerce_year(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValidationRejected("year", "not a number")
        try:
            year = int(str(value).strip())
        except ValueError:
            raise ValidationRejected("year", f"'{value}' is not a number") from None
        if not MIN_YEAR <= year <= MAX_YEAR:
            raise ValidationRejected("year", f"{year} outside {MIN_YEAR}-{MAX_YEAR}")
        return year

    def _coerce_severity(self, value: Any) -> Tuple[str, ...]:
        return _coerce_enum_list("severity", value, SEVERITY_LEVELS)

    def _coerce_status(self, value: Any) -> Tuple[str, ...]:
        return _coerce_enum_list("status", value, STATUS_VALUES)

    def _coerce_project_type(self, value: Any) -> str:
        text = _require_text("project_type", value)
        canonical = self.entity_config.canonical_value("project_types", text)
        if canonical is None:
            raise ValidationRejected("project_type", f"unknown project type '{text}'")
        return canonical

    def _coerce_project(self, value: Any) -> str:
        return _require_text("project", value)

    def _coerce_date_range(self, value: Any) -> DateRange:
        if isinstance(value, DateRange):
            start, end = value.start, value.end
        elif isinstance(value, Mapping):
            start, end = value.get("start"), value.get("end")
        elif isinstance(value, (list, tuple)) and len(value) == 2:
            start, end = value
        else:
            raise ValidationRejected("date_range", "expected start and end")

        start_date, end_date = _parse_date(start), _parse_date(end)
        if start_date > end_date:
            raise ValidationRejected("date_range", "start is after end")
        return DateRange(start=start_date.isoformat(), end=end_date.isoformat())

    def _coerce_keywords(self, value: Any) -> Tuple[str, ...]:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValidationRejected("keywords", "expected a list of strings")

        keywords: List[str] = []
        seen = set()
        for item in value:
            if not isinstance(item, str) or not item.strip():
                continue
            word = item.strip()
            if word.lower() not in seen:
                seen.add(word.lower())
                keywords.append(word)
        if not keywords:
            raise ValidationRejected("keywords", "no usable keywords")
        return tuple(keywords[:MAX_KEYWORDS])


def _require_text(field_name: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationRejected(field_name, "expected a non-empty string")
    return value.strip()


def _coerce_enum_list(field_name: str, value: Any, allowed: Tuple[str, ...]) -> Tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        raise ValidationRejected(field_name, "expected a string or list of strings")

    lookup = {option.lower(): option for option in allowed}
    result = []
    for item in value:
        canonical = lookup.get(str(item).strip().lower())
        if canonical is None:
            raise ValidationRejected(field_name, f"'{item}' is not one of {', '.join(allowed)}")
        if canonical not in result:
            result.append(canonical)
    return tuple(result)


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    try:
        parsed = date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationRejected("date_range", f"'{value}' is not a YYYY-MM-DD date") from None
    if not MIN_YEAR <= parsed.year <= MAX_YEAR:
        raise ValidationRejected("date_range", f"{parsed.year} outside {MIN_YEAR}-{MAX_YEAR}")
    return parsed


def _parse_json_object(text: str) -> Dict[str, Any]:
    match = re.search(r"\{.*\}", text, re.DOTALL)
    if not match:
        raise ValueError("no JSON object in LLM reply")
    data = json.loads(match.group(0))
    if not isinstance(data, dict):
        raise ValueError("LLM reply is not a JSON object")
    return data
