"""String similarity shared by the classifier, the matcher and the miner.

The score is built from cheap checks first and only falls back to edit
distance when the strings are of comparable length:

- equal (after case/whitespace folding) → ``1.0``
- one contains the other → ``0.8 + 0.2 * len(shorter) / len(longer)``
- shared whole words → ``0.6 + 0.3 * shared / max(word counts)``
- Levenshtein similarity ``1 - d / len(longer)`` when the longer string is at
  most twice the shorter, reported only above ``0.7``

Every branch depends on the unordered pair only, so ``similarity(a, b) ==
similarity(b, a)``.
"""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein

_EDIT_FLOOR = 0.7
_MAX_LENGTH_RATIO = 2


def fold(text: str | None) -> str:
    """Lowercase ``text`` and collapse internal whitespace."""

    if not text:
        return ""
    return " ".join(text.lower().split())


def similarity(a: str | None, b: str | None) -> float:
    s1 = fold(a)
    s2 = fold(b)
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0

    shorter, longer = (s1, s2) if len(s1) <= len(s2) else (s2, s1)

    if shorter in longer:
        return 0.8 + 0.2 * (len(shorter) / len(longer))

    words1 = set(s1.split())
    words2 = set(s2.split())
    shared = words1 & words2
    if shared:
        return 0.6 + 0.3 * (len(shared) / max(len(words1), len(words2)))

    if len(longer) > _MAX_LENGTH_RATIO * len(shorter):
        return 0.0
    score = 1.0 - Levenshtein.distance(shorter, longer) / len(longer)
    return score if score > _EDIT_FLOOR else 0.0


__all__ = ["fold", "similarity"]
