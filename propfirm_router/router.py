"""QueryRouter: classify, resolve firm, serve canned answers or defer to retrieval."""

from __future__ import annotations

import re
import threading
from collections import Counter
from typing import Any

from loguru import logger

from propfirm_router.aliases import FirmResolver
from propfirm_router.answers import DeterministicResponder
from propfirm_router.config import RouterConfig
from propfirm_router.heuristics import IntentClassifier
from propfirm_router.models import ClassificationResult, Comparison, RouteDecision


class QueryRouter:
    """Routes each question to a canned answer or to the retrieval pipeline.

    Two independent gates:
      1. Canned answer: confidence above ``canned_answer_threshold`` and a
         hand-written answer exists for (intent, firm). Served immediately,
         never cached by the slow path.
      2. FAQ bypass: ``should_bypass_faq``; stricter, for callers that may
         skip the FAQ search even when no canned answer exists.

    Every call returns a decision; unknown questions route as ``general``.
    """

    def __init__(self, config: RouterConfig | None = None) -> None:
        self._config = (config or RouterConfig()).validate()
        self._resolver = FirmResolver(self._config.firms)
        self._classifier = IntentClassifier(self._config)
        self._responder = DeterministicResponder(self._config.answers)
        self._routed: Counter[str] = Counter()
        self._metrics_lock = threading.Lock()
        self._last_decision: RouteDecision | None = None

        logger.info(
            f"QueryRouter initialized: intents={len(self._config.intents)} "
            f"firms={len(self._config.firms)} canned_answers={len(self._responder)}"
        )

    @property
    def config(self) -> RouterConfig:
        return self._config

    @property
    def last_decision(self) -> RouteDecision | None:
        return self._last_decision

    def classify(self, question: str) -> ClassificationResult:
        return self._classifier.classify(question)

    def resolve_firm(self, question: str) -> str | None:
        return self._resolver.resolve(question)

    def route(self, question: str, firm_hint: str | None = None) -> RouteDecision:
        normalized = question.lower().strip()
        result = self._classifier.classify(normalized)

        firm = self._resolver.resolve_hint(firm_hint) if firm_hint else None
        if firm is None:
            firm = self._resolver.resolve(normalized)

        decision = RouteDecision(
            question=question,
            intent=result.intent_type,
            subtype=result.subtype,
            firm=firm,
            priority=result.priority,
            confidence=result.confidence,
            matched_keywords=result.matched_keywords,
            comparison=self.parse_comparison(normalized),
        )

        if result.confidence > self._config.canned_answer_threshold:
            canned = self._responder.respond(result, firm)
            if canned is not None:
                decision.answer = canned
                decision.source = "deterministic"
                decision.bypass = True
                decision.cacheable = False

        with self._metrics_lock:
            self._routed[decision.source] += 1
        self._last_decision = decision
        compared = decision.comparison
        logger.info(
            f"Route computed: intent={decision.intent} subtype={decision.subtype} "
            f"firm={decision.firm} priority={decision.priority} "
            f"confidence={decision.confidence:.3f} source={decision.source}"
            + (f" comparison={compared.firm_a}/{compared.firm_b}@{compared.account_size}" if compared else "")
        )
        return decision

    def parse_comparison(self, question: str) -> Comparison | None:
        """Two firms plus an account size when the question compares firms.

        Firms come in order of mention; an unstated size falls back to
        ``default_account_size``. Returns None unless a comparison keyword
        and at least two firms are present.
        """
        lowered = question.lower()
        words = set(re.findall(r"\w+", lowered))
        if not any(
            (k in words) if len(k) <= 2 else (k in lowered)
            for k in self._config.comparison_keywords
        ):
            return None

        firms = self._resolver.mentioned(lowered)
        if len(firms) < 2:
            return None

        size = self._config.default_account_size
        for candidate in self._config.account_sizes:
            if re.search(rf"(?<!\d)(?:{candidate}|{candidate // 1000}k)(?![\w])", lowered):
                size = candidate
                break
        return Comparison(firms[0], firms[1], size)

    def should_bypass_faq(self, question: str, firm: str | None) -> bool:
        """True only for confident priority-intent questions about a known firm."""
        if not firm:
            return False
        result = self._classifier.classify(question)
        priority_type = self._priority_type()
        return (
            result.intent_type == priority_type
            and result.confidence >= self._config.bypass_faq_threshold
        )

    def _priority_type(self) -> str:
        for intent in self._config.intents:
            if intent.name == self._config.priority_intent:
                return self._config.canonical_type(intent)
        return self._config.priority_intent

    def metrics(self) -> dict[str, Any]:
        with self._metrics_lock:
            routed = dict(self._routed)
        return {
            "intents": len(self._config.intents),
            "firms": len(self._config.firms),
            "canned_answers": len(self._responder),
            "routed": routed,
            "canned_answer_threshold": self._config.canned_answer_threshold,
            "bypass_faq_threshold": self._config.bypass_faq_threshold,
        }
