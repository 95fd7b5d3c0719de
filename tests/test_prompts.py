from propfirm_router.config import DEFAULT_FIRMS
from propfirm_router.prompts import (
    FOLLOW_UP_PROMPT,
    FAQQuery,
    build_comparison,
    build_context,
    filter_faqs,
    filter_plan,
    build_system_prompt,
    build_user_prompt,
    decorate_answer,
)


def test_faq_query_filter_is_stable():
    query = FAQQuery(frozenset({"retir", "apex"}), firm_id="854bf730", limit=8)
    assert query.or_filter() == (
        "question.ilike.%apex%,answer_md.ilike.%apex%,"
        "question.ilike.%retir%,answer_md.ilike.%retir%"
    )
    assert FAQQuery(frozenset()).or_filter() == ""


def test_system_prompt_for_firm():
    apex = DEFAULT_FIRMS[0]
    prompt = build_system_prompt(apex, DEFAULT_FIRMS)
    assert "FIRMA: Apex Trader Funding 🟠" in prompt
    assert "$X/mes" in prompt
    assert "porcentajes" in prompt
    for firm in DEFAULT_FIRMS:
        assert firm.name in prompt


def test_system_prompt_general():
    assert "CONSULTA GENERAL" in build_system_prompt(None, DEFAULT_FIRMS)


def test_context_sections():
    context = build_context(
        [{"question": "¿Cuándo cobro?", "answer_md": "Cada 8 días"}],
        [
            {"display_name": "50K", "account_size": 50000, "price_monthly": 175},
            {"display_name": "100K", "account_size": 100000, "price_one_time": 349},
        ],
    )
    assert "Q: ¿Cuándo cobro?\nA: Cada 8 días" in context
    assert "50K - 50000$ ($175/mes)" in context
    assert "100K - 100000$ ($349 pago único)" in context
    assert build_context([], []) == ""


def test_user_prompt():
    prompt = build_user_prompt("hola", "")
    assert prompt.startswith("PREGUNTA: hola")
    assert "Sin datos disponibles." in prompt


def test_decorate_answer():
    apex = DEFAULT_FIRMS[0]
    text = decorate_answer("  Precio: $199  ", apex)
    assert text == f"🟠 <b>Apex Trader Funding</b>\n\nPrecio: $199\n\n{FOLLOW_UP_PROMPT}"
    assert decorate_answer("ok", None) == f"ok\n\n{FOLLOW_UP_PROMPT}"


FAQS = [
    {"question": "¿Cuánto cuesta la cuenta de 50K?", "answer_md": "$175/mes"},
    {"question": "¿Cuándo puedo retirar?", "answer_md": "Cada 8 días"},
]
PLAN = {"id": 7, "display_name": "50K", "account_size": 50000, "price_monthly": 175,
        "drawdown_max": 2500, "drawdown_type": "EOD", "max_contracts_minis": 5}


def test_faq_filter_keeps_relevant_rows():
    assert filter_faqs(FAQS, ("retir",)) == [FAQS[1]]
    assert filter_faqs(FAQS, ("plataforma",)) == FAQS
    assert filter_faqs(FAQS, ()) == FAQS


def test_plan_filter_keeps_identity():
    assert filter_plan(PLAN, ("drawdown_max",)) == {
        "id": 7, "display_name": "50K", "account_size": 50000, "drawdown_max": 2500,
    }
    assert filter_plan(PLAN, ("profit_target",)) == PLAN


def test_context_follows_intent():
    payout = build_context(FAQS, [PLAN], "payout")
    assert "retirar" in payout
    assert "Cuánto cuesta" not in payout
    assert payout.endswith("50K - 50000$ ($175/mes)")

    drawdown = build_context(FAQS, [PLAN], "drawdown")
    assert drawdown.endswith("50K - 50000$ | Drawdown: 2500 (EOD)")

    general = build_context(FAQS, [PLAN])
    assert "Cuánto cuesta" in general and "retirar" in general
    assert general.endswith("50K - 50000$ ($175/mes) | Drawdown: 2500 (EOD) | Contratos: 5 minis")


def test_comparison_text():
    apex, bulenox = DEFAULT_FIRMS[0], DEFAULT_FIRMS[1]
    text = build_comparison(
        100000,
        apex, {"evaluation_fee": 297, "drawdown_type": "trailing"},
        bulenox, {"price_monthly": 275},
    )
    assert text.startswith("🔍 <b>COMPARACIÓN EXACTA - 100K</b>")
    assert "💰 <b>$275</b> (N/A drawdown)" in text
    assert "<b>MÁS ECONÓMICO:</b> 🔵 Bulenox" in text
    assert "<b>DIFERENCIA:</b> $22" in text
