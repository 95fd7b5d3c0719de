"""Three-tier response cache: exact match, keyword signature, precomputed.

Tiers are consulted in order and the first hit wins:

  1. exact:       (normalized question, firm)
  2. semantic:    (keyword signature, firm); questions that extract the same
                   keyword set are treated as the same question
  3. precomputed: fixed table of common questions, loaded at startup

Tiers 1 and 2 expire entries after a TTL and evict least-recently-used
entries once full. Each tier guards its mapping with its own lock.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Callable, Hashable

from loguru import logger

from propfirm_router.config import RouterConfig
from propfirm_router.keywords import extract_keywords, normalize_question
from propfirm_router.models import CacheEntry, PrecomputedAnswer


class CacheTier:
    """A single bounded LRU map with TTL expiry and hit/miss counters."""

    def __init__(
        self,
        name: str,
        ttl: float | None = None,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[Hashable, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.peek(key) is not None

    def peek(self, key: Hashable) -> CacheEntry | None:
        """Look up without touching counters or recency."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.expired(self._clock()):
                return None
            return entry

    def get(self, key: Hashable | None) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key) if key is not None else None
            if entry is not None and entry.expired(self._clock()):
                del self._entries[key]
                entry = None
            if entry is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            entry.hits += 1
            self.hits += 1
            return entry

    def put(self, key: Hashable, entry: CacheEntry) -> None:
        if entry.ttl is None:
            entry = replace(entry, ttl=self.ttl)
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)
                    self.evictions += 1

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.expired(now)]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def _matches_pattern(question: str, pattern: str) -> bool:
    return all(word in question for word in pattern.split())


class TieredCache:
    """Answer cache shared by every request handler in the process."""

    def __init__(
        self,
        config: RouterConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = (config or RouterConfig()).validate()
        self._clock = clock
        cfg = self._config

        self.exact = CacheTier("exact", cfg.exact_ttl, cfg.exact_max_entries, clock)
        self.semantic = CacheTier("semantic", cfg.semantic_ttl, cfg.semantic_max_entries, clock)
        self.precomputed = CacheTier("precomputed", None, None, clock)
        self._patterns: list[PrecomputedAnswer] = []

        self._lock = threading.Lock()
        self._total_queries = 0
        self._misses = 0

        self._load_precomputed(cfg.precomputed)
        logger.info(
            f"TieredCache initialized: exact_ttl={cfg.exact_ttl}s semantic_ttl={cfg.semantic_ttl}s "
            f"precomputed={len(self.precomputed)}"
        )

    def _load_precomputed(self, entries: tuple[PrecomputedAnswer, ...]) -> None:
        now = self._clock()
        for item in entries:
            key = (item.pattern, item.firm)
            if key in self.precomputed:
                continue
            self.precomputed.put(key, CacheEntry(item.pattern, item.firm, item.answer, now))
            self._patterns.append(item)

    def _normalize(self, question: str) -> str:
        return normalize_question(question, self._config.max_question_length)

    def signature(self, question: str) -> frozenset[str]:
        """Keyword signature used as the Tier 2 key."""
        return extract_keywords(self._normalize(question), self._config)

    def _precomputed_key(self, normalized: str, firm: str | None) -> tuple[str, str | None] | None:
        for item in self._patterns:
            if item.firm == firm and _matches_pattern(normalized, item.pattern):
                return item.pattern, item.firm
        return None

    # --- Read path ---

    def get(self, question: str, firm: str | None = None) -> str | None:
        """Return a cached answer, consulting exact → semantic → precomputed."""
        normalized = self._normalize(question)
        with self._lock:
            self._total_queries += 1

        entry = self.exact.get((normalized, firm))
        if entry is not None:
            logger.info(f"Cache hit: tier=exact firm={firm} question='{normalized[:50]}'")
            return entry.answer

        signature = extract_keywords(normalized, self._config)
        entry = self.semantic.get((signature, firm) if signature else None)
        if entry is not None:
            logger.info(
                f"Cache hit: tier=semantic firm={firm} question='{normalized[:50]}' "
                f"matched='{entry.question[:50]}'"
            )
            return entry.answer

        entry = self.precomputed.get(self._precomputed_key(normalized, firm))
        if entry is not None:
            logger.info(f"Cache hit: tier=precomputed firm={firm} pattern='{entry.question}'")
            return entry.answer

        with self._lock:
            self._misses += 1
        logger.debug(f"Cache miss: firm={firm} question='{normalized[:50]}'")
        return None

    # --- Write path ---

    def set(
        self,
        question: str,
        firm: str | None,
        answer: str,
        metadata: dict[str, Any] | None = None,
        *,
        ttl: float | None = None,
        semantic: bool = True,
    ) -> None:
        """Store under the exact key; also register the keyword signature unless told not to."""
        normalized = self._normalize(question)
        entry = CacheEntry(
            question=normalized,
            firm=firm,
            answer=answer,
            created_at=self._clock(),
            ttl=ttl,
            metadata=dict(metadata or {}),
        )
        self.exact.put((normalized, firm), entry)
        if semantic:
            self.register_semantic(question, firm, ttl=ttl)
        logger.debug(f"Cache set: firm={firm} question='{normalized[:50]}' semantic={semantic}")

    def register_semantic(self, question: str, firm: str | None, *, ttl: float | None = None) -> bool:
        """Copy an exact-tier entry into the semantic tier under its keyword signature."""
        normalized = self._normalize(question)
        source = self.exact.peek((normalized, firm))
        if source is None:
            return False
        signature = extract_keywords(normalized, self._config)
        if not signature:
            return False
        self.semantic.put(
            (signature, firm),
            replace(source, created_at=self._clock(), ttl=ttl, hits=0, metadata=dict(source.metadata)),
        )
        return True

    # --- Maintenance ---

    def cleanup(self) -> int:
        removed = self.exact.purge_expired() + self.semantic.purge_expired()
        logger.info(
            f"Cache cleanup: removed={removed} exact={len(self.exact)} "
            f"semantic={len(self.semantic)} precomputed={len(self.precomputed)}"
        )
        return removed

    def clear(self) -> None:
        """Drop dynamic tiers; the precomputed table stays."""
        self.exact.clear()
        self.semantic.clear()
        logger.info("Cache cleared (precomputed kept)")

    def metrics(self) -> dict[str, Any]:
        with self._lock:
            total = self._total_queries
            misses = self._misses
        return {
            "total_queries": total,
            "exact_hits": self.exact.hits,
            "semantic_hits": self.semantic.hits,
            "precomputed_hits": self.precomputed.hits,
            "misses": misses,
            "hit_rate": round((total - misses) / total, 4) if total else 0.0,
            "tiers": {
                tier.name: {
                    "size": len(tier),
                    "hits": tier.hits,
                    "misses": tier.misses,
                    "evictions": tier.evictions,
                }
                for tier in (self.exact, self.semantic, self.precomputed)
            },
        }
