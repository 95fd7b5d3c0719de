"""propfirm-router: intent classification, firm resolution and tiered answer cache."""

from propfirm_router.models import (
    AnswerKey,
    ClassificationResult,
    Comparison,
    DeterministicAnswer,
    FirmRecord,
    IntentDefinition,
    LLMProvider,
    LLMResponse,
    RouteDecision,
)
from propfirm_router.config import ConfigurationError, RouterConfig
from propfirm_router.aliases import FirmResolver
from propfirm_router.heuristics import IntentClassifier, detect_subtype
from propfirm_router.keywords import extract_keywords, normalize_question
from propfirm_router.cache import TieredCache
from propfirm_router.router import QueryRouter
from propfirm_router.pipeline import AnswerPipeline, PipelineAnswer

__all__ = [
    "AnswerKey",
    "ClassificationResult",
    "Comparison",
    "DeterministicAnswer",
    "FirmRecord",
    "IntentDefinition",
    "LLMProvider",
    "LLMResponse",
    "RouteDecision",
    "ConfigurationError",
    "RouterConfig",
    "FirmResolver",
    "IntentClassifier",
    "detect_subtype",
    "extract_keywords",
    "normalize_question",
    "TieredCache",
    "QueryRouter",
    "AnswerPipeline",
    "PipelineAnswer",
]
