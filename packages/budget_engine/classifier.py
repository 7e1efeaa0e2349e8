"""Merchant → category classification.

:class:`MerchantClassifier` combines four evidence sources into a ranked list
of :class:`~budget_engine.models.CategorySuggestion` values:

1. the learned merchant-mapping table: an exact merchant match is the user's
   own choice and always wins; similar merchants compete on score
2. ledger history (a similar, already categorized transaction)
3. keyword patterns from the :class:`~budget_engine.patterns.PatternDatabase`
4. fuzzy similarity against those same keywords

Each category keeps only its best score. :meth:`MerchantClassifier.suggest`
returns an exact learned mapping whatever its confidence, otherwise the top
entry when it clears :data:`SUGGEST_THRESHOLD`.
"""

from __future__ import annotations

import re

from .logging_setup import get_logger
from .mappings import find_mapping
from .models import Categories, Category, CategorySuggestion, Ledger, MappingTable
from .patterns import PatternDatabase, load_pattern_database
from .similarity import fold, similarity

_logger = get_logger("budget_engine.classifier")

SUGGEST_THRESHOLD = 0.7
MAPPING_FUZZY_THRESHOLD = 0.75
HISTORY_THRESHOLD = 0.7
KEYWORD_FUZZY_THRESHOLD = 0.75

EXACT_FACTOR = 0.95
WORD_FACTOR = 0.9
SUBSTRING_FACTOR = 0.85
SUBSTRING_MIN_LEN = 4
SUBSTRING_MIN_SHARE = 0.3

_WORD_RE = re.compile(r"[a-z0-9&+'.-]+")


def _tokens(text: str) -> list[str]:
    return _WORD_RE.findall(text)


def _has_word_sequence(text_tokens: list[str], kw_tokens: list[str]) -> bool:
    n = len(kw_tokens)
    if not n or n > len(text_tokens):
        return False
    return any(text_tokens[i : i + n] == kw_tokens for i in range(len(text_tokens) - n + 1))


def keyword_score(text: str, keyword: str) -> tuple[float, str] | None:
    """Score how well folded ``text`` matches ``keyword``, before the base confidence.

    Returns ``(factor, rule)`` for the first tier that applies, or ``None``.
    """

    if not text or not keyword:
        return None
    if text == keyword:
        return EXACT_FACTOR, "exact"
    if text.startswith(keyword) and not text[len(keyword)].isalnum():
        return EXACT_FACTOR, "prefix"
    if _has_word_sequence(_tokens(text), _tokens(keyword)):
        return WORD_FACTOR, "word"
    if (
        len(keyword) >= SUBSTRING_MIN_LEN
        and keyword in text
        and len(keyword) / len(text) >= SUBSTRING_MIN_SHARE
    ):
        return SUBSTRING_FACTOR, "substring"
    if keyword in text:
        # Containment is settled by the tiers above; "at" never matches "flat".
        return None
    s = similarity(text, keyword)
    if s >= KEYWORD_FUZZY_THRESHOLD:
        return s, "fuzzy"
    return None


class MerchantClassifier:
    """Rank caller categories for a merchant/description pair.

    The pattern database is injected; when ``None`` the packaged (or
    ``BUDGET_ENGINE_PATTERNS_FILE``) database is used.
    """

    def __init__(
        self,
        pattern_db: PatternDatabase | None,
        categories: Categories,
    ) -> None:
        self.categories = tuple(categories)
        self.pattern_db = pattern_db if pattern_db is not None else load_pattern_database()
        self._category_ids = frozenset(c.id for c in self.categories)
        # Group key -> caller categories it resolves to; unresolved groups are dropped.
        self._group_targets: dict[str, tuple[Category, ...]] = {}
        for group in self.pattern_db.groups:
            targets = tuple(self.pattern_db.categories_for(group, self.categories))
            if targets:
                self._group_targets[group.key] = targets

    def group_categories(self, group_key: str) -> tuple[Category, ...]:
        return self._group_targets.get(group_key, ())

    def match_group(self, merchant: str | None, description: str | None) -> str | None:
        """Return the key of the best keyword group for the text, if any."""

        best_key: str | None = None
        best = 0.0
        texts = [t for t in (fold(merchant), fold(description)) if t]
        for group, pattern, kw in self.pattern_db.iter_keywords():
            for text in texts:
                hit = keyword_score(text, kw)
                if hit and hit[0] * pattern.confidence > best:
                    best = hit[0] * pattern.confidence
                    best_key = group.key
        return best_key

    def _learned(self, key: str, mappings: MappingTable) -> CategorySuggestion | None:
        """The user's own mapping for exactly this merchant, whatever its confidence."""

        m = find_mapping(mappings, key) if key else None
        if m is None or m.category_id not in self._category_ids:
            return None
        return CategorySuggestion(m.category_id, m.confidence, f"learned mapping for '{m.merchant}'")

    def rank(
        self,
        merchant: str | None,
        description: str | None,
        ledger: Ledger = (),
        mappings: MappingTable = (),
    ) -> list[CategorySuggestion]:
        """Rank categories, best first.

        An exact learned mapping for the merchant always comes first; the
        remaining evidence is ordered by confidence.
        """

        best: dict[str, CategorySuggestion] = {}

        def offer(category_id: str, confidence: float, reason: str) -> None:
            if category_id not in self._category_ids:
                return
            confidence = min(1.0, max(0.0, confidence))
            current = best.get(category_id)
            if current is None or confidence > current.confidence:
                best[category_id] = CategorySuggestion(category_id, confidence, reason)

        key = fold(merchant) or fold(description)
        learned = self._learned(key, mappings)

        # Similar learned mappings
        if key:
            for m in mappings:
                mk = fold(m.merchant)
                if mk == key:
                    continue
                s = similarity(key, mk)
                if s >= MAPPING_FUZZY_THRESHOLD:
                    offer(
                        m.category_id,
                        s * m.confidence,
                        f"similar to learned mapping '{m.merchant}'",
                    )

        # Ledger history
        for tx in ledger:
            s = similarity(description, tx.description)
            if merchant and tx.merchant:
                s = max(s, similarity(merchant, tx.merchant))
            if s > HISTORY_THRESHOLD:
                offer(tx.category_id, s, f"similar to past transaction '{tx.description}'")

        # Keyword patterns
        texts = [t for t in (fold(merchant), fold(description)) if t]
        for group, pattern, kw in self.pattern_db.iter_keywords():
            targets = self._group_targets.get(group.key)
            if not targets:
                continue
            for text in texts:
                hit = keyword_score(text, kw)
                if hit is None:
                    continue
                factor, rule = hit
                for cat in targets:
                    offer(cat.id, factor * pattern.confidence, f"{rule} match on known merchant '{kw}'")

        ranked = sorted(best.values(), key=lambda s: s.confidence, reverse=True)
        if learned is not None:
            ranked = [learned, *(s for s in ranked if s.category_id != learned.category_id)]
        if ranked:
            _logger.debug(
                "classified %r: %s (%.2f, %s)",
                merchant or description,
                ranked[0].category_id,
                ranked[0].confidence,
                ranked[0].reason,
            )
        return ranked

    def suggest(
        self,
        merchant: str | None,
        description: str | None,
        ledger: Ledger = (),
        mappings: MappingTable = (),
    ) -> CategorySuggestion | None:
        """Return the top-ranked category when it is learned or clears the threshold."""

        learned = self._learned(fold(merchant) or fold(description), mappings)
        if learned is not None:
            return learned
        ranked = self.rank(merchant, description, ledger, mappings)
        if ranked and ranked[0].confidence >= SUGGEST_THRESHOLD:
            return ranked[0]
        return None


__all__ = [
    "SUGGEST_THRESHOLD",
    "MerchantClassifier",
    "keyword_score",
]
