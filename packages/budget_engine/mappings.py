"""Learned merchant-mapping transitions.

Mappings are values: :func:`update_mapping` returns the successor of one
entry and :func:`apply_mapping_choice` returns a new table. Nothing here
mutates its arguments.
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import MerchantMapping
from .similarity import fold

INITIAL_CONFIDENCE = 0.7
RESET_CONFIDENCE = 0.6
CONFIDENCE_STEP = 0.1


def normalize_merchant(merchant: str) -> str:
    return fold(merchant)


def update_mapping(
    existing: MerchantMapping | None,
    merchant: str,
    chosen_category_id: str,
) -> MerchantMapping:
    """Return the mapping after the user filed ``merchant`` under a category.

    - no mapping yet: confidence 0.7, used once
    - same category: confidence +0.1 (capped at 1.0), usage +1
    - different category: confidence back to 0.6, usage reset to 1
    """

    key = normalize_merchant(merchant)
    if existing is None:
        return MerchantMapping(key, chosen_category_id, INITIAL_CONFIDENCE, 1)
    if existing.category_id == chosen_category_id:
        return MerchantMapping(
            existing.merchant,
            chosen_category_id,
            round(min(1.0, existing.confidence + CONFIDENCE_STEP), 6),
            existing.times_used + 1,
        )
    return MerchantMapping(existing.merchant, chosen_category_id, RESET_CONFIDENCE, 1)


def find_mapping(table: Sequence[MerchantMapping], merchant: str) -> MerchantMapping | None:
    key = normalize_merchant(merchant)
    for m in table:
        if normalize_merchant(m.merchant) == key:
            return m
    return None


def apply_mapping_choice(
    table: Sequence[MerchantMapping],
    merchant: str,
    category_id: str,
) -> tuple[MerchantMapping, ...]:
    """Return ``table`` with the entry for ``merchant`` transitioned.

    The entry keeps its position; a new merchant is appended.
    """

    if not normalize_merchant(merchant):
        return tuple(table)
    key = normalize_merchant(merchant)
    out: list[MerchantMapping] = []
    replaced = False
    for m in table:
        if not replaced and normalize_merchant(m.merchant) == key:
            out.append(update_mapping(m, merchant, category_id))
            replaced = True
        else:
            out.append(m)
    if not replaced:
        out.append(update_mapping(None, merchant, category_id))
    return tuple(out)


__all__ = [
    "INITIAL_CONFIDENCE",
    "RESET_CONFIDENCE",
    "normalize_merchant",
    "update_mapping",
    "find_mapping",
    "apply_mapping_choice",
]
