# test_data_masking.py
"""Tests for reversible masking of personal data."""

import pytest

from findings_assistant.services.data_masking import DataMasker, MaskingSession

RECORD = "Auditor Jane Doe (jane.doe@example.com, +1 555-123-4567) reviewed badge EMP1234567."


class TestMasking:
    """Personal data is replaced by stable tokens."""

    def test_masks_each_kind(self):
        session = MaskingSession()

        masked = session.mask(RECORD)

        assert masked == "Auditor [NAME_4] ([EMAIL_1], [PHONE_2]) reviewed badge [ID_3]."
        assert [value.kind for value in session.values] == ["email", "phone", "id", "name"]

    def test_unmask_restores_original(self):
        session = MaskingSession()

        assert session.unmask(session.mask(RECORD)) == RECORD

    def test_repeated_value_shares_token(self):
        session = MaskingSession()

        first = session.mask("Escalated to a@b.io")
        second = session.mask("Copied a@b.io and a@b.io")

        assert first == "Escalated to [EMAIL_1]"
        assert second == "Copied [EMAIL_1] and [EMAIL_1]"
        assert session.masked_count == 1

    @pytest.mark.parametrize(
        "text",
        [
            "Assign the checklist to the chief engineer and track it monthly.",
            "F-2024-001 identified on 2024-03-12 with a cost of 12000.",
            "",
        ],
    )
    def test_ordinary_text_unchanged(self, text):
        assert MaskingSession().mask(text) == text

    def test_disabled_masker_passes_through(self):
        session = DataMasker(enabled=False).session()

        assert session.mask(RECORD) == RECORD
        assert session.masked_count == 0


class TestUnmasking:
    """Tokens in LLM output map back to the original values."""

    def test_tokens_with_shared_prefix(self):
        session = MaskingSession()
        session.mask(" ".join(f"user{index}@example.com" for index in range(1, 13)))

        assert session.unmask("[EMAIL_12] [EMAIL_1]") == "user12@example.com user1@example.com"

    def test_unknown_tokens_left_alone(self):
        session = MaskingSession()
        session.mask("a@b.io")

        assert session.unmask("[EMAIL_1] [EMAIL_7] [High]") == "a@b.io [EMAIL_7] [High]"

    def test_nested_values(self):
        session = MaskingSession()
        session.mask("inspector Maria Lopez")

        assert session.unmask_value({"keywords": ["[NAME_1]"], "year": 2024}) == {
            "keywords": ["Maria Lopez"],
            "year": 2024,
        }

    def test_split_partial_holds_back_open_token(self):
        session = MaskingSession()

        assert session.split_partial("Contact [EMA") == ("Contact ", "[EMA")
        assert session.split_partial("[High] door closer") == ("[High] door closer", "")
        assert session.split_partial("no brackets") == ("no brackets", "")
