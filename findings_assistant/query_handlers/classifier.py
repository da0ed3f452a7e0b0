# classifier.py
"""Query classification functionality for the routing system."""

import logging
import re
from typing import Dict, List

from .extractor import EntityExtractor, ExtractedEntities
from .types import Classification, QueryType

logger = logging.getLogger(__name__)

# Ordered signal tables: each entry adds its weight to the class score when
# the pattern matches. "specific" signals name a concrete field or value and
# raise confidence more than generic phrasing does.
SIGNAL_RULES: Dict[str, List[Dict]] = {
    "lookup": [
        {"pattern": r"\b(show|list|find|get|display|give me|search)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(how many|count|number of|total)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(is|are) there\b", "weight": 1.0, "specific": False},
        {"pattern": r"\bwhich\b.*\bfindings?\b", "weight": 1.0, "specific": False},
        {"pattern": r"\bfindings?\s+(about|on|for|in|from|at|regarding)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(in|from|during|for|since)\s+20\d{2}\b", "weight": 1.0, "specific": True},
        {"pattern": r"\b\d{4}-\d{2}-\d{2}\b", "weight": 1.0, "specific": True},
        {"pattern": r"\b(critical|high|medium|low)\s+(severity|priority|risk|findings?)\b", "weight": 1.0, "specific": True},
        {"pattern": r"\b(open|closed|in progress|deferred)\s+findings?\b", "weight": 1.0, "specific": True},
        {"pattern": r"\b(by|per)\s+(department|year|severity|status|project)\b", "weight": 1.0, "specific": True},
    ],
    "analytical": [
        {"pattern": r"\bwhy\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(what|how)\s+should\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(recommend\w*|suggest\w*|advi[sc]e)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(compare|comparison|versus|vs\.?)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(predict|forecast|anticipate|likely)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\banaly[sz](e|is|ing)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(patterns?|trends?|recurring|root causes?)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(insights?|lessons?|takeaways?)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\bbased on\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(care about|focus on|prioriti[sz]e|watch out)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(explain|summari[sz]e|evaluate|assess)\b", "weight": 1.0, "specific": False},
    ],
    # Retrieval followed by reasoning over the retrieved set
    "hybrid": [
        {"pattern": r"\b(show|list|find|get|display)\b.+\b(and|then)\b.+\b(explain|analy[sz]e|summari[sz]e|recommend|identify)\b", "weight": 1.0, "specific": False},
        {"pattern": r"\b(summari[sz]e|analy[sz]e|explain)\b.+\b(the|these|those)\s+findings?\s+(in|from|for)\b", "weight": 1.0, "specific": False},
    ],
}

# Queries shorter than this are not worth escalating to the LLM
MIN_ANALYTICAL_LENGTH = 8


class QueryClassifier:
    """Classifies queries into lookup, analytical or hybrid handling"""

    def __init__(self, entity_extractor: EntityExtractor, rules: Dict[str, List[Dict]] = None):
        self.entity_extractor = entity_extractor
        self.rules = rules or SIGNAL_RULES
        self._compiled = {
            query_type: [
                (re.compile(rule["pattern"], re.IGNORECASE), rule["weight"], rule.get("specific", False))
                for rule in rules_for_type
            ]
            for query_type, rules_for_type in self.rules.items()
        }

    def classify_query(self, query: str) -> Classification:
        """Classify a query and attach candidate filters"""
        scores = {query_type: 0.0 for query_type in self._compiled}
        specific_hits = 0
        for query_type, rules in self._compiled.items():
            for pattern, weight, specific in rules:
                if pattern.search(query):
                    scores[query_type] += weight
                    if specific:
                        specific_hits += 1

        entities = self.entity_extractor.extract(query)
        lookup_score = scores.get("lookup", 0.0)
        analytical_score = scores.get("analytical", 0.0)

        # Ties resolve toward lookup: the structured query is the cheaper strategy
        if scores.get("hybrid", 0.0) > 0 and lookup_score > 0:
            query_type = QueryType.HYBRID
        elif analytical_score > lookup_score:
            query_type = QueryType.ANALYTICAL
        else:
            query_type = QueryType.LOOKUP

        reasoning = self._generate_reasoning(query_type, scores)
        if (
            query_type == QueryType.LOOKUP
            and not entities.candidates
            and not entities.group_by
            and not entities.needs_confirmation
            and len(query.strip()) >= MIN_ANALYTICAL_LENGTH
        ):
            query_type = QueryType.ANALYTICAL
            reasoning += "; no structured filters found, escalated to analytical"

        confidence = self._confidence(query_type, scores, specific_hits, entities)

        classification = Classification(
            query_type=query_type,
            confidence=confidence,
            reasoning=reasoning,
            extracted_filters=dict(entities.candidates) or None,
            requires_confirmation=entities.needs_confirmation,
            candidates=list(entities.project_candidates),
            group_by=list(entities.group_by),
            corrections=dict(entities.corrections),
            ambiguous_term=entities.project_term if entities.needs_confirmation else None,
        )
        logger.debug(f"Classified '{query}' as {query_type.value} ({confidence:.2f})")
        return classification

    def _confidence(
        self,
        query_type: QueryType,
        scores: Dict[str, float],
        specific_hits: int,
        entities: ExtractedEntities,
    ) -> float:
        """Confidence grows with signal count and explicit field mentions"""
        winning = scores.get(query_type.value, 0.0)
        competing = sum(score for name, score in scores.items() if name != query_type.value)

        confidence = 0.4 + 0.1 * winning + 0.1 * specific_hits + 0.05 * entities.field_mentions
        confidence -= 0.05 * competing
        if entities.needs_confirmation:
            confidence -= 0.2
        return max(0.0, min(1.0, confidence))

    def _generate_reasoning(self, query_type: QueryType, scores: Dict[str, float]) -> str:
        score_text = ", ".join(f"{name}={score:.1f}" for name, score in scores.items())
        return f"Classified as {query_type.value} from signal scores ({score_text})"
