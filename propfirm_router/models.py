"""Core data models for propfirm-router."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, NamedTuple

GENERAL_INTENT = "general"


@dataclass(frozen=True)
class IntentDefinition:
    """A keyword profile scored by the intent classifier."""
    name: str
    keywords: tuple[str, ...]
    priority: int                # 1-10, higher = more specific
    subtypes: tuple[str, ...] = ()


@dataclass(frozen=True)
class ClassificationResult:
    """Best-scoring intent for a single question."""
    intent_type: str
    subtype: str | None
    priority: int
    confidence: float
    matched_keywords: int = 0

    @property
    def is_general(self) -> bool:
        return self.intent_type == GENERAL_INTENT


NO_MATCH = ClassificationResult(GENERAL_INTENT, None, 1, 0.0, 0)


@dataclass(frozen=True)
class FirmRecord:
    """A prop firm the bot has curated data for."""
    slug: str
    name: str
    color: str
    aliases: tuple[str, ...]
    firm_id: str | None = None   # database id, scopes FAQ/plan queries

    @property
    def badge(self) -> str:
        return f"{self.color} <b>{self.name}</b>"


class AnswerKey(NamedTuple):
    intent: str
    firm: str


class Comparison(NamedTuple):
    """Two firms compared on the evaluation plan of one account size."""
    firm_a: str
    firm_b: str
    account_size: int


@dataclass(frozen=True)
class DeterministicAnswer:
    """Hand-written answer served without retrieval or generation."""
    title: str
    content: str
    style: str = ""

    def render(self) -> str:
        return f"{self.title}\n\n{self.content.strip()}"


@dataclass(frozen=True)
class PrecomputedAnswer:
    """Startup-loaded answer for a high-frequency question pattern."""
    pattern: str
    answer: str
    firm: str | None = None


@dataclass
class CacheEntry:
    """A stored answer; shared shape across all cache tiers."""
    question: str
    firm: str | None
    answer: str
    created_at: float
    ttl: float | None = None
    hits: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def expired(self, now: float) -> bool:
        return self.ttl is not None and now - self.created_at > self.ttl


@dataclass
class RouteDecision:
    """Result of routing a question."""
    question: str
    intent: str
    subtype: str | None
    firm: str | None
    priority: int
    confidence: float
    matched_keywords: int = 0
    answer: str | None = None
    source: str = "pipeline"   # "deterministic" or "pipeline"
    bypass: bool = False       # True when answer was served without retrieval
    cacheable: bool = True
    comparison: Comparison | None = None

    @property
    def needs_pipeline(self) -> bool:
        return not self.bypass


@dataclass
class LLMResponse:
    """Response from an LLM provider."""
    content: str | None
    finish_reason: str = "stop"
    usage: dict[str, int] = field(default_factory=dict)
    model_used: str = ""


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    async def chat(
        self,
        messages: list[dict[str, Any]],
        model: str | None = None,
        max_tokens: int = 800,
        temperature: float = 0.1,
    ) -> LLMResponse:
        """Send a chat completion request."""
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__
