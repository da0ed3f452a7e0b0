# similarity.py
"""Fuzzy string matching used to resolve entity names to canonical values."""

from typing import List, Optional, Sequence

from .types import CandidateMatch

BEST_MATCH_MIN_SCORE = 0.6
TOP_MATCHES_MIN_SCORE = 0.5
TOP_MATCHES_LIMIT = 5

# Minimum scores granted by the containment boosts
CANDIDATE_CONTAINS_QUERY_SCORE = 0.85
QUERY_CONTAINS_CANDIDATE_SCORE = 0.80
ALL_WORDS_PRESENT_SCORE = 0.75


def levenshtein_distance(s1: str, s2: str) -> int:
    """Compute Levenshtein edit distance with a two-row table."""
    if s1 == s2:
        return 0

    # Shorter string on the columns
    if len(s1) > len(s2):
        s1, s2 = s2, s1

    prev_row = list(range(len(s1) + 1))
    for j, char2 in enumerate(s2, start=1):
        curr_row = [j] + [0] * len(s1)
        for i, char1 in enumerate(s1, start=1):
            cost = 0 if char1 == char2 else 1
            curr_row[i] = min(
                prev_row[i] + 1,  # deletion
                curr_row[i - 1] + 1,  # insertion
                prev_row[i - 1] + cost,  # substitution
            )
        prev_row = curr_row

    return prev_row[-1]


def similarity_score(a: str, b: str) -> float:
    """Case-insensitive similarity: 1 - distance / max(len(a), len(b))."""
    a, b = a.lower(), b.lower()
    if a == b:
        return 1.0

    max_len = max(len(a), len(b))
    return 1.0 - levenshtein_distance(a, b) / max_len


def _all_words_present(query_words: List[str], candidate_words: List[str]) -> bool:
    return all(any(word in other for other in candidate_words) for word in query_words)


def _score_candidate(query: str, candidate: str) -> CandidateMatch:
    query_lower = query.lower().strip()
    candidate_lower = candidate.lower().strip()

    distance = levenshtein_distance(query_lower, candidate_lower)
    score = similarity_score(query_lower, candidate_lower)

    if query_lower and candidate_lower:
        if query_lower in candidate_lower:
            score = max(score, CANDIDATE_CONTAINS_QUERY_SCORE)
        elif candidate_lower in query_lower:
            score = max(score, QUERY_CONTAINS_CANDIDATE_SCORE)

        query_words = query_lower.split()
        candidate_words = candidate_lower.split()
        if len(query_words) > 1 and (
            _all_words_present(query_words, candidate_words)
            or _all_words_present(candidate_words, query_words)
        ):
            score = max(score, ALL_WORDS_PRESENT_SCORE)

    return CandidateMatch(value=candidate, score=score, distance=distance)


def top_matches(
    query: str,
    candidates: Sequence[str],
    min_score: float = TOP_MATCHES_MIN_SCORE,
    limit: int = TOP_MATCHES_LIMIT,
) -> List[CandidateMatch]:
    """Rank candidates by boosted similarity to the query.

    Ordering is by score descending, then shorter edit distance, then the
    position of the candidate in the input sequence.
    """
    scored = [
        (index, _score_candidate(query, candidate))
        for index, candidate in enumerate(candidates)
    ]
    scored = [item for item in scored if item[1].score >= min_score]
    scored.sort(key=lambda item: (-item[1].score, item[1].distance, item[0]))
    return [match for _, match in scored[:limit]]


def best_match(
    query: str,
    candidates: Sequence[str],
    min_score: float = BEST_MATCH_MIN_SCORE,
) -> Optional[CandidateMatch]:
    """Return the single best candidate scoring at least min_score, if any."""
    matches = top_matches(query, candidates, min_score=min_score, limit=1)
    return matches[0] if matches else None
