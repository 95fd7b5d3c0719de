"""Keyword-weighted intent classification.

Each intent definition is scored by substring keyword matches: long keywords
(more specific, rarer) count double, the ratio to the vocabulary size is
scaled by the intent priority, and the priority intent gets a multiplicative
boost so its small vocabulary is not diluted against broader intents.
"""

from __future__ import annotations

from propfirm_router.config import RouterConfig
from propfirm_router.models import NO_MATCH, ClassificationResult, IntentDefinition


def detect_subtype(question: str, subtypes: tuple[str, ...] | list[str]) -> str | None:
    """First sub-type label present in the question, else the first label."""
    if not subtypes:
        return None
    for subtype in subtypes:
        if subtype in question:
            return subtype
    return subtypes[0]


class IntentClassifier:
    """Scores a question against every configured intent definition."""

    def __init__(self, config: RouterConfig) -> None:
        self._config = config

    def score(self, question: str, intent: IntentDefinition) -> tuple[float, int]:
        """Return (confidence, keyword_matches) for one definition.

        ``question`` must already be lowercased.
        """
        cfg = self._config
        match_score = 0
        matches = 0
        for keyword in intent.keywords:
            if keyword in question:
                matches += 1
                match_score += cfg.long_keyword_weight if len(keyword) > cfg.keyword_length_cutoff else 1

        if matches == 0:
            return 0.0, 0

        confidence = (match_score / len(intent.keywords)) * (intent.priority / 10)
        if intent.name == cfg.priority_intent:
            confidence = min(confidence * cfg.boost_multiplier, 1.0)
        return min(max(confidence, 0.0), 1.0), matches

    def classify(self, question: str) -> ClassificationResult:
        normalized = question.lower().strip()
        best: IntentDefinition | None = None
        best_confidence = 0.0
        best_matches = 0

        for intent in self._config.intents:
            confidence, matches = self.score(normalized, intent)
            # Strict comparison: earlier definitions win ties.
            if confidence > best_confidence:
                best, best_confidence, best_matches = intent, confidence, matches

        if best is None:
            return NO_MATCH

        return ClassificationResult(
            intent_type=self._config.canonical_type(best),
            subtype=detect_subtype(normalized, best.subtypes),
            priority=best.priority,
            confidence=best_confidence,
            matched_keywords=best_matches,
        )
