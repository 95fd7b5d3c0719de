"""Question normalization and search keyword extraction."""

from __future__ import annotations

import re

from propfirm_router.config import RouterConfig

_INVERTED_MARKS = re.compile(r"[¿?¡!]")
_WHITESPACE = re.compile(r"\s+")
_WORD_EDGES = "¿?¡!.,;:()\"'"


def normalize_question(question: str, max_length: int = 200) -> str:
    """Lowercase, drop question/exclamation marks, collapse whitespace, truncate."""
    lowered = _INVERTED_MARKS.sub("", question.lower().strip())
    return _WHITESPACE.sub(" ", lowered).strip()[:max_length]


def extract_keywords(question: str, config: RouterConfig | None = None) -> frozenset[str]:
    """Domain keywords found in the question plus its first few content words.

    The result is a set: it feeds the FAQ ``or`` filter and serves as the
    semantic cache signature, neither of which may depend on ordering.
    """
    cfg = config or RouterConfig()
    lowered = question.lower()

    found: set[str] = set()
    for keywords in cfg.keyword_groups.values():
        found.update(k for k in keywords if k in lowered)

    free_words: list[str] = []
    for word in lowered.split():
        word = word.strip(_WORD_EDGES)
        if len(word) < cfg.min_word_length or word in cfg.stop_words:
            continue
        free_words.append(word)
        if len(free_words) == cfg.max_free_words:
            break

    found.update(free_words)
    return frozenset(found)
