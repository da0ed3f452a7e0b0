# test_similarity.py
"""Tests for fuzzy project name matching."""

import pytest

from findings_assistant.query_handlers.similarity import (
    best_match,
    levenshtein_distance,
    similarity_score,
    top_matches,
)


class TestLevenshteinDistance:
    """Edit distance basics."""

    @pytest.mark.parametrize("a,b,expected", [
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("", "abc", 3),
        ("same", "same", 0),
    ])
    def test_known_distances(self, a, b, expected):
        assert levenshtein_distance(a, b) == expected

    def test_symmetric(self):
        assert levenshtein_distance("harbour", "harbor") == levenshtein_distance("harbor", "harbour")


class TestSimilarityScore:
    """Normalized similarity."""

    def test_identical_ignoring_case(self):
        assert similarity_score("Northgate Mall", "northgate mall") == 1.0

    def test_one_typo(self):
        # one substitution over 17 characters
        assert similarity_score("Sunrise Residense", "Sunrise Residence") == pytest.approx(1 - 1 / 17)

    def test_unrelated(self):
        assert similarity_score("abc", "xyz") == 0.0

    @pytest.mark.parametrize("text", ["", "a", "IT", "Grand Harbour Hotel", "GRAND harbour hotel", "Sunrise Residence"])
    def test_identity(self, text):
        assert similarity_score(text, text) == 1.0
        assert similarity_score(text, text.swapcase()) == 1.0

    @pytest.mark.parametrize("a,b", [
        ("", "abc"),
        ("Oakwood", "Oakland"),
        ("Harbour View", "harbour point"),
        ("Northgate Mall", "NORTHGATE"),
        ("kitten", "Sitting"),
        ("Green Valley School", "Green Valey"),
    ])
    def test_symmetric(self, a, b):
        assert similarity_score(a, b) == similarity_score(b, a)
        assert 0.0 <= similarity_score(a, b) <= 1.0


class TestTopMatches:
    """Ranking, thresholds and boosts."""

    def test_ranked_by_score_and_filtered(self):
        matches = top_matches("kitten", ["sitting", "mitten", "dog"])

        assert [match.value for match in matches] == ["mitten", "sitting"]
        assert matches[0].score == pytest.approx(1 - 1 / 6)
        assert matches[1].score == pytest.approx(1 - 3 / 7)

    def test_substring_boost(self):
        match = top_matches("Harbour", ["Grand Harbour Hotel"])[0]
        assert match.score == pytest.approx(0.85)

    def test_query_contains_candidate_boost(self):
        match = top_matches("Northgate Mall east wing", ["Northgate Mall"])[0]
        assert match.score == pytest.approx(0.80)

    def test_all_words_boost(self):
        match = top_matches("harbour tower", ["Harbour View Tower"])[0]
        assert match.score == pytest.approx(0.75)

    def test_ties_break_on_distance_then_order(self):
        # both get the all-words boost; "view" needs 5 insertions, "point" 6
        matches = top_matches("harbour tower", ["Harbour Point Tower", "Harbour View Tower"])
        assert [match.value for match in matches] == ["Harbour View Tower", "Harbour Point Tower"]

        same = top_matches("oakwood", ["Oakland", "Oakmont"])
        assert [match.value for match in same] == ["Oakland", "Oakmont"]
        assert same[0].score == same[1].score == pytest.approx(1 - 3 / 7)

    def test_limit(self):
        names = [f"Tower {i}" for i in range(10)]
        assert len(top_matches("Tower", names, limit=3)) == 3


class TestBestMatch:
    """Single best candidate."""

    def test_returns_best_above_threshold(self):
        match = best_match("Green Valey School", ["Green Valley School", "Northgate Mall"])
        assert match.value == "Green Valley School"

    def test_none_below_threshold(self):
        assert best_match("kitten", ["sitting"]) is None
