"""Merchant pattern database.

The database groups merchant keywords by spending area (groceries, dining,
gas, ...). Each group lists the category-name aliases it answers to, so the
classifier can resolve a group to whatever category ids the caller's ledger
uses. Data ships as JSON inside the package and is validated with pydantic on
load; ``BUDGET_ENGINE_PATTERNS_FILE`` points at a replacement file.

The loaded :class:`PatternDatabase` is frozen and cached for the life of the
process.
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterator, Sequence
from functools import lru_cache
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .errors import ConfigurationError
from .logging_setup import get_logger
from .models import Category
from .similarity import fold

_logger = get_logger("budget_engine.patterns")

PATTERNS_FILE_ENV = "BUDGET_ENGINE_PATTERNS_FILE"
_PACKAGED_FILE = "merchant_patterns.json"
_WORD_RE = re.compile(r"[a-z0-9]+")


class MerchantPattern(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True, extra="forbid", str_strip_whitespace=True)

    keywords: tuple[str, ...]
    confidence: float
    tags: tuple[str, ...] = ()

    @field_validator("keywords")
    @classmethod
    def _normalize_keywords(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        items = tuple(fold(k) for k in v if k and k.strip())
        if not items:
            raise ValueError("pattern must list at least one keyword")
        return items

    @field_validator("confidence")
    @classmethod
    def _confidence_in_unit_interval(cls, v: float) -> float:
        if 0.0 <= v <= 1.0:
            return v
        raise ValueError("confidence must be within [0,1]")


class PatternGroup(BaseModel):
    model_config = ConfigDict(strict=True, frozen=True, extra="forbid", str_strip_whitespace=True)

    key: str
    category_names: tuple[str, ...]
    patterns: tuple[MerchantPattern, ...]

    @field_validator("category_names")
    @classmethod
    def _fold_names(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(fold(n) for n in v if n and n.strip())

    def answers_to(self, category_name: str) -> bool:
        """True when ``category_name`` matches one of this group's aliases."""

        return any(names_overlap(alias, category_name) for alias in self.category_names)


class PatternDatabase(BaseModel):
    """Top-level schema for the merchant pattern JSON file."""

    model_config = ConfigDict(strict=True, frozen=True, extra="forbid")

    schema_version: int
    groups: tuple[PatternGroup, ...]

    def group(self, key: str) -> PatternGroup | None:
        for g in self.groups:
            if g.key == key:
                return g
        return None

    def iter_keywords(self) -> Iterator[tuple[PatternGroup, MerchantPattern, str]]:
        for g in self.groups:
            for p in g.patterns:
                for kw in p.keywords:
                    yield g, p, kw

    def categories_for(self, group: PatternGroup, categories: Sequence[Category]) -> list[Category]:
        """Return the caller's categories that ``group`` resolves to."""

        return [c for c in categories if group.answers_to(c.name)]


def _words(text: str) -> list[str]:
    return _WORD_RE.findall(fold(text))


def _contains_words(haystack: list[str], needle: list[str]) -> bool:
    if not needle or len(needle) > len(haystack):
        return False
    n = len(needle)
    return any(haystack[i : i + n] == needle for i in range(len(haystack) - n + 1))


def names_overlap(a: str, b: str) -> bool:
    """Case-insensitive containment either way, on whole words.

    ``"food & dining"`` overlaps ``"Dining"``; ``"eat"`` does not overlap
    ``"Theater"``.
    """

    wa, wb = _words(a), _words(b)
    if not wa or not wb:
        return False
    return _contains_words(wa, wb) or _contains_words(wb, wa)


def load_pattern_database(path: str | Path | None = None) -> PatternDatabase:
    """Load and validate a pattern database.

    With no ``path`` the ``BUDGET_ENGINE_PATTERNS_FILE`` environment variable
    is consulted, then the copy packaged with the library. Results are cached
    per resolved source.
    """

    if path is None:
        env_path = os.getenv(PATTERNS_FILE_ENV)
        if env_path:
            path = env_path
    return _load_cached(str(path) if path is not None else None)


@lru_cache(maxsize=8)
def _load_cached(path: str | None) -> PatternDatabase:
    if path is None:
        source = f"package:{_PACKAGED_FILE}"
        text = resources.files("budget_engine").joinpath("data", _PACKAGED_FILE).read_text(encoding="utf-8")
    else:
        source = path
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigurationError(f"cannot read pattern database {path}: {exc}") from exc

    try:
        db = PatternDatabase.model_validate_json(text)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid pattern database {source}: {exc}") from exc

    _logger.debug(
        "loaded pattern database %s: %d groups, %d keywords",
        source,
        len(db.groups),
        sum(1 for _ in db.iter_keywords()),
    )
    return db


__all__ = [
    "PATTERNS_FILE_ENV",
    "MerchantPattern",
    "PatternGroup",
    "PatternDatabase",
    "names_overlap",
    "load_pattern_database",
]
