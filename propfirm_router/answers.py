"""Canned answers served straight from classification, without retrieval."""

from __future__ import annotations

from loguru import logger

from propfirm_router.models import AnswerKey, ClassificationResult, DeterministicAnswer


class DeterministicResponder:
    """Looks up a hand-written answer for an (intent type, firm) pair."""

    def __init__(self, answers: dict[AnswerKey, DeterministicAnswer]) -> None:
        self._answers = dict(answers)

    def __len__(self) -> int:
        return len(self._answers)

    def lookup(self, intent: str, firm: str | None) -> DeterministicAnswer | None:
        if firm is None:
            return None
        return self._answers.get(AnswerKey(intent, firm))

    def respond(self, result: ClassificationResult, firm: str | None) -> str | None:
        """Rendered canned answer for the classification, or None."""
        answer = self.lookup(result.intent_type, firm)
        if answer is None:
            return None
        text = answer.render()
        logger.info(
            f"Deterministic answer generated: intent={result.intent_type} firm={firm} "
            f"style={answer.style or '-'} length={len(text)}"
        )
        return text
