"""AnswerPipeline: comparison → canned answer → cache → FAQ store + LLM, with fallbacks."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

from loguru import logger

from propfirm_router.cache import TieredCache
from propfirm_router.keywords import extract_keywords
from propfirm_router.models import Comparison, LLMProvider, RouteDecision
from propfirm_router.prompts import (
    DATABASE_FALLBACK,
    LLM_FALLBACK,
    FAQQuery,
    FAQStore,
    build_comparison,
    build_context,
    build_system_prompt,
    build_user_prompt,
    decorate_answer,
)
from propfirm_router.router import QueryRouter


@dataclass
class PipelineAnswer:
    """What the transport layer sends back to the user."""
    text: str
    source: str   # "comparison", "deterministic", "cache", "llm", "fallback"
    decision: RouteDecision
    latency_ms: int = 0


class AnswerPipeline:
    """Orchestrates one question end to end.

    Only this layer talks to the database and the LLM; collaborator failures
    are converted to fallback messages here and never cached.
    """

    def __init__(
        self,
        router: QueryRouter,
        cache: TieredCache,
        store: FAQStore,
        llm: LLMProvider,
        *,
        model: str = "gpt-4o-mini",
        max_tokens: int = 800,
        temperature: float = 0.1,
    ):
        self._router = router
        self._cache = cache
        self._store = store
        self._llm = llm
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def answer(self, question: str, firm_hint: str | None = None) -> PipelineAnswer:
        start = time.monotonic()
        decision = self._router.route(question, firm_hint)

        def _done(text: str, source: str) -> PipelineAnswer:
            latency_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                f"Answer served: source={source} intent={decision.intent} "
                f"firm={decision.firm} latency={latency_ms}ms"
            )
            return PipelineAnswer(text, source, decision, latency_ms)

        if decision.comparison is not None:
            compared = await self._compare(decision.comparison)
            if compared is not None:
                return _done(compared, "comparison")

        if decision.bypass and decision.answer is not None:
            return _done(decision.answer, "deterministic")

        cached = self._cache.get(question, decision.firm)
        if cached is not None:
            return _done(cached, "cache")

        cfg = self._router.config
        firm = cfg.firm(decision.firm)
        firm_id = firm.firm_id if firm else None
        query = FAQQuery(extract_keywords(question, cfg), firm_id, cfg.faq_row_limit)

        try:
            if self._router.should_bypass_faq(question, decision.firm):
                logger.info(f"Skipping FAQ search: intent={decision.intent} firm={decision.firm}")
                faqs = []
            else:
                faqs = await self._store.search_faqs(query)
            plans = await self._store.account_plans(firm_id)
        except Exception as e:
            logger.warning(f"FAQ store failed for firm={decision.firm}: {e}")
            return _done(DATABASE_FALLBACK, "fallback")

        context = build_context(faqs[: query.limit], plans, decision.intent, cfg)
        messages = [
            {"role": "system", "content": build_system_prompt(firm, cfg.firms)},
            {"role": "user", "content": build_user_prompt(question, context)},
        ]
        try:
            response = await self._llm.chat(
                messages=messages,
                model=self._model,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
            # Providers may report errors as content instead of raising.
            if response.finish_reason == "error" or not response.content:
                raise RuntimeError(response.content or "empty completion")
        except Exception as e:
            logger.warning(f"LLM {self._llm.name} ({self._model}) failed: {e}")
            return _done(LLM_FALLBACK, "fallback")

        text = decorate_answer(response.content, firm)
        if decision.cacheable:
            self._cache.set(
                question, decision.firm, text,
                {"intent": decision.intent, "confidence": decision.confidence, "model": self._model},
            )
        return _done(text, "llm")

    async def _compare(self, comparison: Comparison) -> str | None:
        """Deterministic price comparison, or None to fall through to the normal path."""
        cfg = self._router.config
        firm_a, firm_b = cfg.firm(comparison.firm_a), cfg.firm(comparison.firm_b)
        if not (firm_a and firm_a.firm_id and firm_b and firm_b.firm_id):
            return None
        try:
            plan_a, plan_b = await asyncio.gather(
                self._store.account_plan(firm_a.firm_id, comparison.account_size),
                self._store.account_plan(firm_b.firm_id, comparison.account_size),
            )
        except Exception as e:
            logger.warning(f"Comparison lookup failed for {firm_a.slug}/{firm_b.slug}: {e}")
            return None
        if not plan_a or not plan_b:
            logger.info(
                f"Comparison skipped: no {comparison.account_size} plan for "
                f"{firm_a.slug if not plan_a else firm_b.slug}"
            )
            return None
        return build_comparison(comparison.account_size, firm_a, plan_a, firm_b, plan_b)
