# test_filter_extractor.py
"""Tests for whitelist validation and coercion of candidate filters."""

from unittest.mock import Mock

import pytest

from findings_assistant.core import LLMCompletion
from findings_assistant.core.exceptions import LLMUnavailableError
from findings_assistant.query_handlers.filter_extractor import FilterExtractor
from findings_assistant.query_handlers.types import (
    Classification,
    DateRange,
    FilterSet,
    QueryType,
    Rejected,
)


@pytest.fixture
def filter_extractor(entity_config):
    return FilterExtractor(entity_config)


def classification_with(filters):
    return Classification(
        query_type=QueryType.LOOKUP,
        confidence=0.8,
        reasoning="test",
        extracted_filters=filters,
    )


class TestValidation:
    """Whitelist and type checks."""

    def test_valid_candidates(self, filter_extractor):
        result = filter_extractor.validate({
            "department": "human resources",
            "year": "2024",
            "severity": ["high", "Critical"],
            "status": "open",
            "project_type": "hotels",
            "keywords": ["APAR", "apar", "fire"],
        })

        assert result == FilterSet(
            department="HR",
            year=2024,
            severity=("High", "Critical"),
            status=("Open",),
            project_type="Hotel",
            keywords=("APAR", "fire"),
        )

    def test_validation_is_idempotent(self, filter_extractor):
        first = filter_extractor.validate({
            "year": 2024,
            "severity": ["High"],
            "date_range": {"start": "2024-01-01", "end": "2024-12-31"},
            "keywords": ["fire"],
        })
        assert filter_extractor.validate(first.to_dict()) == first

    def test_invalid_fields_are_dropped(self, filter_extractor):
        result, reasons = filter_extractor.validate_with_reasons({
            "year": 1999,
            "severity": ["Catastrophic"],
            "owner": "alice",
            "department": "IT",
        })

        assert result == FilterSet(department="IT")
        assert set(reasons) == {"year", "severity", "owner"}

    @pytest.mark.parametrize("year", [1999, 2101, "twenty", True])
    def test_year_out_of_range_or_not_numeric(self, filter_extractor, year):
        assert filter_extractor.validate({"year": year}).is_empty

    def test_unknown_project_type_rejected(self, filter_extractor):
        assert filter_extractor.validate({"project_type": "Spaceport"}).is_empty

    def test_unknown_department_kept_verbatim(self, filter_extractor):
        assert filter_extractor.validate({"department": "Quality"}).department == "Quality"

    def test_reversed_date_range_rejected(self, filter_extractor):
        result = filter_extractor.validate({"date_range": {"start": "2025-01-01", "end": "2024-01-01"}})
        assert result.date_range is None

    def test_date_range_from_list(self, filter_extractor):
        result = filter_extractor.validate({"date_range": ["2024-01-01", "2024-03-31"]})
        assert result.date_range == DateRange(start="2024-01-01", end="2024-03-31")

    def test_keywords_capped(self, filter_extractor):
        words = [f"word{i}" for i in range(15)]
        assert len(filter_extractor.validate({"keywords": words}).keywords) == 10


class TestExtract:
    """Extraction from classifier output."""

    def test_extract_returns_filter_set(self, filter_extractor):
        result = filter_extractor.extract(classification_with({"year": 2025, "department": "IT"}))
        assert result == FilterSet(department="IT", year=2025)

    def test_nothing_valid_is_rejected(self, filter_extractor):
        result = filter_extractor.extract(classification_with({"year": 1850}))

        assert isinstance(result, Rejected)
        assert "year" in result.reasons

    def test_no_candidates_is_rejected(self, filter_extractor):
        assert isinstance(filter_extractor.extract(classification_with(None)), Rejected)


class TestLLMExtraction:
    """LLM-proposed filters fill gaps and are validated the same way."""

    def test_pattern_fields_take_precedence(self, entity_config):
        llm = Mock()
        llm.complete.return_value = LLMCompletion(
            text='Here you go: {"year": 2023, "severity": ["High"], "owner": "bob"}'
        )
        extractor = FilterExtractor(entity_config, llm)

        result = extractor.extract_with_llm("high findings", classification_with({"year": 2025}))

        assert result == FilterSet(year=2025, severity=("High",))

    def test_llm_failure_keeps_pattern_filters(self, entity_config):
        llm = Mock()
        llm.complete.side_effect = LLMUnavailableError("down")
        extractor = FilterExtractor(entity_config, llm)

        result = extractor.extract_with_llm("IT findings", classification_with({"department": "IT"}))

        assert result == FilterSet(department="IT")

    def test_unparseable_reply_keeps_pattern_filters(self, entity_config):
        llm = Mock()
        llm.complete.return_value = LLMCompletion(text="I cannot help with that")
        extractor = FilterExtractor(entity_config, llm)

        result = extractor.extract_with_llm("2024", classification_with({"year": 2024}))

        assert result == FilterSet(year=2024)

    def test_personal_data_masked_in_prompt(self, entity_config):
        llm = Mock()
        llm.complete.return_value = LLMCompletion(text='{"keywords": ["[NAME_1]"]}')
        extractor = FilterExtractor(entity_config, llm)

        result = extractor.extract_with_llm(
            "findings raised by inspector Maria Lopez", classification_with({})
        )

        prompt = llm.complete.call_args[0][0]
        assert "Maria Lopez" not in prompt
        assert "inspector [NAME_1]" in prompt
        assert result == FilterSet(keywords=("Maria Lopez",))
