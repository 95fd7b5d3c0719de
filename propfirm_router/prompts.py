"""Contracts with the retrieval collaborators: FAQ query shape and LLM prompts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from loguru import logger

from propfirm_router.config import RouterConfig
from propfirm_router.models import GENERAL_INTENT, FirmRecord

FOLLOW_UP_PROMPT = "¿Algo más específico? 🚀"

DATABASE_FALLBACK = (
    "Lo siento, tengo problemas temporales accediendo a la información. "
    "Por favor, inténtalo en unos minutos."
)
LLM_FALLBACK = (
    "Estoy experimentando alta demanda. Tu consulta es importante, "
    "inténtalo de nuevo en un momento."
)

_PLAN_IDENTITY = frozenset({"id", "display_name", "account_size"})


@dataclass(frozen=True)
class FAQQuery:
    """Any keyword in question or answer text, optionally scoped to one firm."""
    keywords: frozenset[str]
    firm_id: str | None = None
    limit: int = 8

    def or_filter(self) -> str:
        """PostgREST ``or`` filter; keywords sorted so the string is stable."""
        return ",".join(
            f"question.ilike.%{k}%,answer_md.ilike.%{k}%" for k in sorted(self.keywords)
        )


class FAQStore(ABC):
    """FAQ / account-plan database, queried by the answer pipeline."""

    @abstractmethod
    async def search_faqs(self, query: FAQQuery) -> list[dict[str, Any]]:
        """At most ``query.limit`` FAQ rows with ``question`` and ``answer_md``."""
        ...

    @abstractmethod
    async def account_plans(self, firm_id: str | None) -> list[dict[str, Any]]:
        """All account plan rows for the firm (every firm when None)."""
        ...

    @abstractmethod
    async def account_plan(self, firm_id: str, account_size: int) -> dict[str, Any] | None:
        """The evaluation-phase plan of one size, or None when the firm has none."""
        ...


def build_system_prompt(firm: FirmRecord | None, firms: tuple[FirmRecord, ...]) -> str:
    supported = "\n".join(f"• {f.name} {f.color}" for f in firms)
    header = f"FIRMA: {firm.name} {firm.color}" if firm else "CONSULTA GENERAL"
    return f"""Eres un amigo experto en prop trading que ayuda de manera natural y conversacional.

{header}

REGLA CRÍTICA - SOLO ESTAS {len(firms)} FIRMAS:
{supported}

PROHIBIDO:
• NUNCA mencionar firmas que no estén en la lista
• NUNCA usar **markdown**, solo etiquetas HTML
• NUNCA expresar precios como porcentajes

FORMATO:
• Precios siempre como $X/mes (pago mensual) o $X (pago único)
• <b>texto</b> para títulos, bullets simples (•)
• Párrafos cortos separados por líneas en blanco
• Si no hay información de nuestras firmas, dilo claramente"""


def _faq_text(faq: dict[str, Any]) -> str:
    return f"{faq.get('question', '')} {faq.get('answer_md', '')}".lower()


def filter_faqs(faqs: list[dict[str, Any]], words: tuple[str, ...]) -> list[dict[str, Any]]:
    """FAQ rows mentioning any of ``words``; all rows when none do."""
    if not words:
        return list(faqs)
    relevant = [f for f in faqs if any(w in _faq_text(f) for w in words)]
    return relevant or list(faqs)


def filter_plan(plan: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    """Plan row reduced to its identity columns plus ``fields``.

    A row left with nothing but its identity is returned whole.
    """
    kept = {k: v for k, v in plan.items() if k in _PLAN_IDENTITY or (k in fields and v is not None)}
    if all(k in _PLAN_IDENTITY for k in kept):
        return dict(plan)
    return kept


def _plan_line(plan: dict[str, Any]) -> str:
    line = f"{plan.get('display_name', '?')} - {plan.get('account_size', '?')}$"
    if plan.get("price_monthly") is not None:
        line += f" (${plan['price_monthly']}/mes)"
    elif plan.get("price_one_time") is not None:
        line += f" (${plan['price_one_time']} pago único)"
    if plan.get("profit_target"):
        line += f" | Objetivo: ${plan['profit_target']}"
    if plan.get("drawdown_max"):
        line += f" | Drawdown: {plan['drawdown_max']} ({plan.get('drawdown_type', '-')})"
    if plan.get("max_contracts_minis"):
        line += f" | Contratos: {plan['max_contracts_minis']} minis"
    return line


def build_context(
    faqs: list[dict[str, Any]],
    plans: list[dict[str, Any]],
    intent: str = GENERAL_INTENT,
    config: RouterConfig | None = None,
) -> str:
    """Render FAQ rows and plan rows, keeping only what the intent needs.

    Intents without an entry in ``config.faq_filters`` / ``config.context_fields``
    (``general`` included) get the data unfiltered.
    """
    cfg = config or RouterConfig()
    kept_faqs = filter_faqs(faqs, cfg.faq_filters.get(intent, ()))
    fields = cfg.context_fields.get(intent)
    kept_plans = [filter_plan(p, fields) for p in plans] if fields else list(plans)
    logger.debug(
        f"Context built: intent={intent} faqs={len(kept_faqs)}/{len(faqs)} "
        f"plans={len(kept_plans)} fields={'all' if not fields else len(fields)}"
    )

    sections: list[str] = []
    if kept_faqs:
        sections.append(
            "=== PREGUNTAS FRECUENTES ===\n"
            + "\n\n".join(f"Q: {f.get('question', '')}\nA: {f.get('answer_md', '')}" for f in kept_faqs)
        )
    if kept_plans:
        sections.append("=== PLANES DE CUENTA ===\n" + "\n".join(_plan_line(p) for p in kept_plans))
    return "\n\n".join(sections)


def plan_price(plan: dict[str, Any]) -> float:
    return plan.get("price_monthly") or plan.get("evaluation_fee") or plan.get("price_one_time") or 0


def build_comparison(
    size: int,
    firm_a: FirmRecord,
    plan_a: dict[str, Any],
    firm_b: FirmRecord,
    plan_b: dict[str, Any],
) -> str:
    """Side-by-side evaluation price of two firms at one account size."""
    price_a, price_b = plan_price(plan_a), plan_price(plan_b)
    cheaper = firm_a if price_a < price_b else firm_b
    return (
        f"🔍 <b>COMPARACIÓN EXACTA - {size // 1000}K</b>\n\n"
        f"{firm_a.color} {firm_a.name}\n"
        f"💰 <b>${price_a}</b> ({plan_a.get('drawdown_type') or 'N/A'} drawdown)\n\n"
        f"{firm_b.color} {firm_b.name}\n"
        f"💰 <b>${price_b}</b> ({plan_b.get('drawdown_type') or 'N/A'} drawdown)\n\n"
        f"🏆 <b>MÁS ECONÓMICO:</b> {cheaper.color} {cheaper.name}\n"
        f"💵 <b>DIFERENCIA:</b> ${abs(price_a - price_b)}\n\n"
        "📊 Ambos precios salen directamente de nuestra base de datos verificada."
    )


def build_user_prompt(question: str, context: str) -> str:
    return (
        f"PREGUNTA: {question}\n\n"
        f"CONTEXTO:\n{context or 'Sin datos disponibles.'}\n\n"
        "Responde utilizando toda la información relevante disponible."
    )


def decorate_answer(text: str, firm: FirmRecord | None) -> str:
    """Prepend the firm badge and append the follow-up prompt."""
    body = text.strip()
    if firm:
        body = f"{firm.badge}\n\n{body}"
    return f"{body}\n\n{FOLLOW_UP_PROMPT}"
