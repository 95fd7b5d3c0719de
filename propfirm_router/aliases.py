"""Firm alias resolution: maps questions and user-typed hints to firm slugs.

Used by the router to find the firm a question talks about, and to clean up
the firm hint a transport passes in (button payloads, /firm commands).
"""

from __future__ import annotations

import difflib

from loguru import logger

from propfirm_router.models import FirmRecord


def _normalize(s: str) -> str:
    """Strip hyphens, underscores, spaces, dots and lowercase."""
    return s.lower().replace("-", "").replace("_", "").replace(" ", "").replace(".", "")


class FirmResolver:
    """Substring alias matcher over a fixed, ordered firm list."""

    def __init__(self, firms: tuple[FirmRecord, ...]) -> None:
        self._firms = tuple(firms)
        self._by_slug = {f.slug: f for f in self._firms}
        # Normalized slug/name/alias -> slug, first firm wins on collisions.
        self._normalized: dict[str, str] = {}
        for firm in self._firms:
            for key in (firm.slug, firm.name, *firm.aliases):
                self._normalized.setdefault(_normalize(key), firm.slug)

    @property
    def firms(self) -> tuple[FirmRecord, ...]:
        return self._firms

    def resolve(self, question: str) -> str | None:
        """Return the first firm (declaration order) whose alias occurs in the question."""
        lowered = question.lower()
        for firm in self._firms:
            if any(alias in lowered for alias in firm.aliases):
                return firm.slug
        return None

    def mentioned(self, question: str) -> list[str]:
        """Every firm named in the question, in order of first mention."""
        lowered = question.lower()
        positions: list[tuple[int, str]] = []
        for firm in self._firms:
            hits = [lowered.find(alias) for alias in firm.aliases if alias in lowered]
            if hits:
                positions.append((min(hits), firm.slug))
        return [slug for _, slug in sorted(positions)]

    def resolve_hint(self, raw: str | None) -> str | None:
        """Resolve a caller-supplied firm hint to a configured slug.

        Tries the exact slug, then the normalized slug/name/alias table, then a
        close difflib match. Unknown hints resolve to None.
        """
        if not raw or not raw.strip():
            return None

        lowered = raw.strip().lower()

        # 1. Exact slug
        if lowered in self._by_slug:
            return lowered

        # 2. Normalized match (strips hyphens, spaces, etc.)
        normed = _normalize(raw)
        if normed in self._normalized:
            return self._normalized[normed]

        # 3. Fuzzy match via difflib
        candidates = difflib.get_close_matches(normed, self._normalized.keys(), n=2, cutoff=0.8)
        slugs = {self._normalized[c] for c in candidates}
        if len(slugs) == 1:
            return slugs.pop()

        logger.warning(f"FirmResolver: unknown firm hint '{raw}'")
        return None
