"""Router configuration: firms, intent table, canned answers and tunables.

Everything the router needs is held by a ``RouterConfig`` value passed to the
constructor, so several routers with different firm sets can coexist.
``RouterConfig()`` gives the production defaults.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from propfirm_router.models import (
    AnswerKey,
    DeterministicAnswer,
    FirmRecord,
    IntentDefinition,
    PrecomputedAnswer,
)


class ConfigurationError(ValueError):
    """Raised at startup when the router configuration is malformed."""


# Declaration order is the resolution order for overlapping aliases.
DEFAULT_FIRMS: tuple[FirmRecord, ...] = (
    FirmRecord(
        "apex", "Apex Trader Funding", "🟠",
        ("apex", "apextrader", "apex trader", "apextraderfunding"),
        "854bf730-8420-4297-86f8-3c4a972edcf2",
    ),
    FirmRecord(
        "bulenox", "Bulenox", "🔵",
        ("bulenox", "bulenox.com", "blx"),
        "7567df00-7cf8-4afc-990f-6f8da04e36a4",
    ),
    FirmRecord(
        "takeprofit", "TakeProfit Trader", "🟢",
        ("takeprofit", "take profit", "tptrader"),
        "08a7b506-4836-486a-a6e9-df12059c55d3",
    ),
    FirmRecord(
        "mff", "My Funded Futures", "🟡",
        ("mff", "myfundedfutures", "my funded futures", "myfunded", "my funded"),
        "1b40dc38-91ff-4a35-be46-1bf2d5749433",
    ),
    FirmRecord(
        "alpha", "Alpha Futures", "🔴",
        ("alpha", "alphafutures", "alpha futures", "alpha-futures"),
        "2ff70297-718d-42b0-ba70-cde70d5627b5",
    ),
    FirmRecord(
        "tradeify", "Tradeify", "⚪",
        ("tradeify", "trade-ify", "tradeify.com"),
        "1a95b01e-4eef-48e2-bd05-6e2f79ca57a8",
    ),
    FirmRecord(
        "vision", "Vision Trade Futures", "🟣",
        ("vision", "visiontrade", "vision trade", "vision-trade", "vtf"),
        "2e82148c-9646-4dde-8240-f1871334a676",
    ),
)

# Declaration order breaks score ties.
DEFAULT_INTENTS: tuple[IntentDefinition, ...] = (
    IntentDefinition(
        "drawdown",
        ("drawdown", "perdida maxima", "perdida máxima", "limite perdida", "trailing",
         "drawdown maximo", "drawdown máximo", "perdida", "loss limit", "maximum loss",
         "limite"),
        priority=10,
        subtypes=("trailing", "estatico", "diario", "maximo"),
    ),
    IntentDefinition(
        "pricing",
        ("precio", "precios", "costo", "costos", "cuanto cuesta", "vale", "coste"),
        priority=9,
        subtypes=("evaluacion", "mensual", "unico", "pago"),
    ),
    IntentDefinition(
        "rules",
        ("reglas", "normas", "rules", "reglamento", "restricciones", "limitaciones"),
        priority=8,
        subtypes=("trading", "contratos", "horarios", "instrumentos"),
    ),
    IntentDefinition(
        "payout",
        ("retiro", "retiros", "payout", "profit split", "comision", "comisiones", "ganancias"),
        priority=8,
        subtypes=("split", "minimo", "tiempo", "metodos"),
    ),
    IntentDefinition(
        "platform",
        ("plataforma", "plataformas", "software", "metatrader", "ninjatrader", "tradingview"),
        priority=7,
        subtypes=("mt4", "mt5", "ninja", "tv"),
    ),
    IntentDefinition(
        "accounts",
        ("cuenta", "cuentas", "plan", "planes", "account", "accounts"),
        priority=5,
        subtypes=("tamanos", "tipos", "evaluacion", "fondeada"),
    ),
)

# Intent name -> canonical type reported by the classifier.
DEFAULT_INTENT_ALIASES: dict[str, str] = {
    "accounts": "plans",
    "pricing": "plans",
}

DEFAULT_ANSWERS: dict[AnswerKey, DeterministicAnswer] = {
    AnswerKey("drawdown", "apex"): DeterministicAnswer(
        title="🟠 APEX - Reglas de Drawdown",
        content="""
📊 <b>TRAILING DRAWDOWN:</b>
• Se congela en balance inicial + $100
• Ejemplo 50K: trailing para en $50,100
• Se actualiza con posiciones abiertas hasta alcanzar threshold

📋 <b>DRAWDOWN POR CUENTA:</b>
• $25K: Máx drawdown $1,500
• $50K: Máx drawdown $2,500
• $100K: Máx drawdown $2,750
• $150K: Máx drawdown $3,000
• $250K: Máx drawdown $5,000
• $300K: Máx drawdown $6,500

⚠️ <b>REGLA 30% PNL NEGATIVO:</b>
• Pérdidas abiertas no pueden superar 30% del saldo inicial del día
• Con Safety Net: usar 30% del Safety Net
• Al duplicar Safety Net: cambia de 30% a 50%

🛡️ <b>GESTIÓN DE RIESGO:</b>
• Ratio Riesgo/Beneficio máximo: 5:1
• Stops requeridos (pueden ser mentales)
• Prohibido usar todo el drawdown como stop
""",
        style="static_trailing",
    ),
    AnswerKey("drawdown", "bulenox"): DeterministicAnswer(
        title="🔵 BULENOX - Reglas de Drawdown",
        content="""
📊 <b>OPCIONES DE DRAWDOWN:</b>
• <b>Opción 1</b>: Trailing Drawdown
• <b>Opción 2</b>: EOD Drawdown (Fin de Día)

💰 <b>DRAWDOWN POR CUENTA:</b>
• Opción 1 (Trailing): Más flexible, ajuste intraday
• Opción 2 (EOD): Cálculo al cierre del día
• Ambas opciones disponibles para todas las cuentas

⚡ <b>CARACTERÍSTICAS:</b>
• Drawdown se ajusta según la opción elegida
• Mayor control de riesgo con trailing
• EOD para traders que prefieren cálculo diario
""",
        style="flexible_options",
    ),
}

DEFAULT_PRECOMPUTED: tuple[PrecomputedAnswer, ...] = (
    PrecomputedAnswer(
        "precios",
        "🟠 <b>APEX - Precios de Cuentas</b>\n\n"
        "💰 <b>EVALUACIÓN (Pago Único):</b>\n"
        "• $25K: $159\n• $50K: $199\n• $100K: $349\n• $300K: $949\n\n"
        "🎯 <b>Safety Net disponible</b>: Umbral de retiro reducido para cuentas grandes.\n\n"
        "🔗 <b>Link oficial:</b> https://apextrader.com",
        firm="apex",
    ),
    PrecomputedAnswer(
        "precios",
        "🔵 <b>BULENOX - Precios Mensuales</b>\n\n"
        "💰 <b>OPCIÓN 1 (Trailing Drawdown):</b>\n"
        "• $25K: $145/mes\n• $50K: $175/mes\n• $100K: $275/mes\n\n"
        "💰 <b>OPCIÓN 2 (EOD Drawdown):</b>\n"
        "• $25K: $125/mes\n• $50K: $155/mes\n• $100K: $255/mes\n\n"
        "🔗 <b>Link oficial:</b> https://bulenox.com",
        firm="bulenox",
    ),
    PrecomputedAnswer(
        "mejor principiante",
        "🎯 <b>Para Principiantes - Top 3:</b>\n\n"
        "1️⃣ <b>🟠 APEX</b> - Pago único, Safety Net\n"
        "2️⃣ <b>🔵 BULENOX</b> - Flexible, mensual\n"
        "3️⃣ <b>🟢 TAKEPROFIT</b> - Reglas simples\n\n"
        "💡 <b>Recomendación:</b> Empieza con cuentas pequeñas ($25K-$50K) para ganar experiencia.",
    ),
)

DEFAULT_KEYWORD_GROUPS: dict[str, tuple[str, ...]] = {
    "payment": ("retir", "pag", "cobr", "dinero", "dolar", "transferencia", "wire", "ach",
                "wise", "paypal", "metodo", "umbral", "minimo", "safety", "net", "100k", "103"),
    "rules": ("regla", "limit", "drawdown", "perdida", "target", "objetivo", "dias", "tiempo"),
    "evaluation": ("evaluacion", "demo", "challenge", "paso", "aprobar", "pasar"),
    "live": ("live", "real", "financiad", "fondeado", "funded"),
    "pricing": ("precio", "cost", "mensual", "activacion", "reset", "barato", "caro"),
    "platform": ("plataforma", "ninjatrader", "tradingview", "metatrader", "rithmic"),
    "general": ("cuenta", "plan", "como", "que", "cuando", "donde", "proceso"),
}

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    {"que", "como", "donde", "cuando", "con", "para", "por", "una", "los", "las", "del"}
)

# Matched as substrings, except one- and two-letter words ("o", "vs") which must stand alone.
DEFAULT_COMPARISON_KEYWORDS: tuple[str, ...] = (
    "más barata", "mas barata", "más barato", "mas barato", "mejor precio",
    "compara", "comparar", "versus", "vs", "diferencia", "cual es mejor",
    "cuál es mejor", "entre", "o",
)

DEFAULT_ACCOUNT_SIZES: tuple[int, ...] = (25000, 50000, 100000, 150000, 200000)

# Canonical intent type -> account plan columns the LLM gets to see.
DEFAULT_CONTEXT_FIELDS: dict[str, tuple[str, ...]] = {
    "drawdown": ("drawdown_max", "drawdown_type"),
    "plans": ("price_monthly", "price_one_time", "profit_target", "drawdown_max", "drawdown_type",
              "max_contracts_minis"),
    "rules": ("drawdown_max", "drawdown_type", "max_contracts_minis"),
    "payout": ("price_monthly", "price_one_time"),
}

# Canonical intent type -> words an FAQ row must mention to stay in the context.
DEFAULT_FAQ_FILTERS: dict[str, tuple[str, ...]] = {
    "drawdown": ("drawdown", "perdida", "pérdida", "trailing", "limite", "límite", "riesgo", "balance"),
    "plans": ("precio", "costo", "cuesta", "cuenta", "plan", "tamaño", "mes", "pago único"),
    "rules": ("regla", "permitido", "prohibido", "noticia", "overnight", "consistencia", "dias", "días"),
    "payout": ("retiro", "retirar", "pago", "payout", "split", "cobr", "ganancia"),
    "platform": ("plataforma", "ninjatrader", "tradingview", "metatrader", "rithmic", "tradovate"),
}


@dataclass
class RouterConfig:
    """Static configuration plus the tunables that were adjusted experimentally."""

    firms: tuple[FirmRecord, ...] = DEFAULT_FIRMS
    intents: tuple[IntentDefinition, ...] = DEFAULT_INTENTS
    intent_aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_INTENT_ALIASES))
    answers: dict[AnswerKey, DeterministicAnswer] = field(default_factory=lambda: dict(DEFAULT_ANSWERS))
    precomputed: tuple[PrecomputedAnswer, ...] = DEFAULT_PRECOMPUTED
    keyword_groups: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_KEYWORD_GROUPS)
    )
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS
    comparison_keywords: tuple[str, ...] = DEFAULT_COMPARISON_KEYWORDS
    account_sizes: tuple[int, ...] = DEFAULT_ACCOUNT_SIZES
    context_fields: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_CONTEXT_FIELDS)
    )
    faq_filters: dict[str, tuple[str, ...]] = field(default_factory=lambda: dict(DEFAULT_FAQ_FILTERS))

    # Scoring
    priority_intent: str = "drawdown"     # boosted, and the only intent that may skip FAQ search
    boost_multiplier: float = 2.0
    keyword_length_cutoff: int = 6        # keywords longer than this weigh more
    long_keyword_weight: int = 2

    # Routing gates
    canned_answer_threshold: float = 0.05
    bypass_faq_threshold: float = 0.8

    # Keyword extraction
    max_free_words: int = 5
    min_word_length: int = 3
    max_question_length: int = 200

    # Retrieval collaborator
    faq_row_limit: int = 8
    default_account_size: int = 50000     # used when a comparison names no size

    # Cache
    exact_ttl: float | None = 600.0
    semantic_ttl: float | None = 1800.0
    exact_max_entries: int = 1000
    semantic_max_entries: int = 500

    def canonical_type(self, intent: IntentDefinition) -> str:
        return self.intent_aliases.get(intent.name, intent.name)

    def firm(self, slug: str | None) -> FirmRecord | None:
        if not slug:
            return None
        for record in self.firms:
            if record.slug == slug:
                return record
        return None

    def validate(self) -> "RouterConfig":
        """Fail fast on malformed configuration. Returns self for chaining."""
        if not self.firms:
            raise ConfigurationError("At least one firm must be configured")
        slugs: set[str] = set()
        for record in self.firms:
            if record.slug in slugs:
                raise ConfigurationError(f"Duplicate firm slug '{record.slug}'")
            if not record.aliases or not all(a.strip() for a in record.aliases):
                raise ConfigurationError(f"Firm '{record.slug}' needs non-empty aliases")
            slugs.add(record.slug)

        if not self.intents:
            raise ConfigurationError("At least one intent definition must be configured")
        names: set[str] = set()
        for intent in self.intents:
            if intent.name in names:
                raise ConfigurationError(f"Duplicate intent '{intent.name}'")
            if not intent.keywords or not all(k.strip() for k in intent.keywords):
                raise ConfigurationError(f"Intent '{intent.name}' has an empty keyword list")
            if not 1 <= intent.priority <= 10:
                raise ConfigurationError(
                    f"Intent '{intent.name}' priority {intent.priority} outside 1-10"
                )
            names.add(intent.name)

        for alias in self.intent_aliases:
            if alias not in names:
                raise ConfigurationError(f"Intent alias for unknown intent '{alias}'")
        if self.priority_intent not in names:
            raise ConfigurationError(f"Unknown priority intent '{self.priority_intent}'")

        types = {self.canonical_type(i) for i in self.intents}
        for key in self.answers:
            if key.firm not in slugs:
                raise ConfigurationError(f"Canned answer for unknown firm '{key.firm}'")
            if key.intent not in types:
                raise ConfigurationError(f"Canned answer for unknown intent type '{key.intent}'")
        for entry in self.precomputed:
            if not entry.pattern.strip():
                raise ConfigurationError("Precomputed answer with empty pattern")
            if entry.firm is not None and entry.firm not in slugs:
                raise ConfigurationError(f"Precomputed answer for unknown firm '{entry.firm}'")
        for label, table in (("context_fields", self.context_fields), ("faq_filters", self.faq_filters)):
            for key in table:
                if key not in types:
                    raise ConfigurationError(f"{label} entry for unknown intent type '{key}'")
        if self.default_account_size not in self.account_sizes:
            raise ConfigurationError(
                f"default_account_size {self.default_account_size} is not one of account_sizes"
            )

        for label, value in (
            ("canned_answer_threshold", self.canned_answer_threshold),
            ("bypass_faq_threshold", self.bypass_faq_threshold),
        ):
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{label} must be within [0, 1], got {value}")
        if self.boost_multiplier < 1.0:
            raise ConfigurationError("boost_multiplier must be >= 1.0")
        if self.exact_max_entries < 1 or self.semantic_max_entries < 1:
            raise ConfigurationError("Cache tiers need room for at least one entry")
        return self
