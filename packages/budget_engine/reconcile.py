"""Reconciliation of decoded candidates against the existing ledger.

:func:`reconcile` labels every candidate:

- ``DUPLICATE``: same date, same description (case-insensitive), amount
  within one cent; confidence 1.0
- ``MATCHED``: same date, amount within $1, description similarity above
  0.6; confidence 0.8
- ``NEW``: anything else; confidence 0.0 and a suggested category

:func:`plan_import` then turns the user's selection into new ledger records
and an updated merchant-mapping table. Neither function writes anywhere; the
caller persists the returned values.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from decimal import Decimal

from .classifier import MerchantClassifier
from .ingest.fields import INCOME_KEYWORDS
from .logging_setup import get_logger
from .mappings import apply_mapping_choice
from .models import (
    CandidateTransaction,
    Categories,
    Category,
    CategorySuggestion,
    CategoryType,
    Direction,
    ImportedRecord,
    ImportPlan,
    Ledger,
    LedgerTransaction,
    MappingTable,
    MerchantMapping,
    ReconciliationMatch,
    ReconciliationStatus,
)
from .similarity import fold, similarity

_logger = get_logger("budget_engine.reconcile")

DUPLICATE_TOLERANCE = Decimal("0.01")
MATCH_TOLERANCE = Decimal("1.00")
MATCH_SIMILARITY = 0.6
RECURRING_MIN_HISTORY = 2

_INCOME_NAME_HINTS = ("income", "salary", "wage", "earning")
_FALLBACK_NAME_HINTS = ("unassigned", "uncategorized", "other", "misc")


# ---------------------------------------------------------------------------
# Category fallbacks
# ---------------------------------------------------------------------------


def income_category(categories: Categories) -> Category | None:
    """Return the category income should land in, if the caller has one."""

    for c in categories:
        if c.type is CategoryType.INCOME:
            return c
    for c in categories:
        name = c.name.lower()
        if any(h in name for h in _INCOME_NAME_HINTS):
            return c
    return None


def fallback_category(categories: Categories) -> Category | None:
    """Return the catch-all category, else the first one, else ``None``."""

    for c in categories:
        name = c.name.lower()
        if any(h in name for h in _FALLBACK_NAME_HINTS):
            return c
    return categories[0] if categories else None


def group_key(candidate: CandidateTransaction) -> str:
    """Key used to group candidates for a per-merchant category choice."""

    return fold(candidate.merchant or candidate.description)


def _keyword_rule(
    candidate: CandidateTransaction,
    classifier: MerchantClassifier,
    categories: Categories,
) -> str | None:
    text = f"{fold(candidate.description)} {fold(candidate.merchant)}"
    if candidate.direction is Direction.INFLOW and any(k in text for k in INCOME_KEYWORDS):
        inc = income_category(categories)
        if inc is not None:
            return inc.id
    key = classifier.match_group(candidate.merchant, candidate.description)
    if key is not None:
        targets = classifier.group_categories(key)
        if targets:
            return targets[0].id
    return None


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def _find_duplicate(
    candidate: CandidateTransaction, ledger: Ledger
) -> LedgerTransaction | None:
    desc = candidate.description.lower()
    for tx in ledger:
        if (
            tx.date == candidate.date
            and tx.description.lower() == desc
            and abs(tx.amount - candidate.amount) < DUPLICATE_TOLERANCE
        ):
            return tx
    return None


def _find_match(
    candidate: CandidateTransaction, ledger: Ledger
) -> LedgerTransaction | None:
    for tx in ledger:
        if (
            tx.date == candidate.date
            and abs(tx.amount - candidate.amount) < MATCH_TOLERANCE
            and similarity(tx.description, candidate.description) > MATCH_SIMILARITY
        ):
            return tx
    return None


def reconcile(
    candidates: Sequence[CandidateTransaction],
    ledger: Ledger,
    categories: Categories,
    *,
    mappings: MappingTable = (),
    classifier: MerchantClassifier | None = None,
) -> list[ReconciliationMatch]:
    """Classify each candidate as DUPLICATE, MATCHED or NEW, in input order."""

    if classifier is None:
        classifier = MerchantClassifier(None, categories)

    out: list[ReconciliationMatch] = []
    for candidate in candidates:
        dup = _find_duplicate(candidate, ledger)
        if dup is not None:
            out.append(
                ReconciliationMatch(candidate, ReconciliationStatus.DUPLICATE, 1.0, matched_existing=dup)
            )
            continue

        near = _find_match(candidate, ledger)
        if near is not None:
            out.append(
                ReconciliationMatch(candidate, ReconciliationStatus.MATCHED, 0.8, matched_existing=near)
            )
            continue

        suggestion: CategorySuggestion | None = classifier.suggest(
            candidate.merchant, candidate.description, ledger, mappings
        )
        if suggestion is not None:
            suggested_id: str | None = suggestion.category_id
        else:
            suggested_id = _keyword_rule(candidate, classifier, categories)
            if suggested_id is None:
                fb = fallback_category(categories)
                suggested_id = fb.id if fb is not None else None

        out.append(
            ReconciliationMatch(
                candidate,
                ReconciliationStatus.NEW,
                0.0,
                suggested_category_id=suggested_id,
                suggestion=suggestion,
            )
        )

    if out:
        counts = {s: sum(1 for m in out if m.status is s) for s in ReconciliationStatus}
        _logger.info(
            "reconciled %d candidates: %d new, %d matched, %d duplicate",
            len(out),
            counts[ReconciliationStatus.NEW],
            counts[ReconciliationStatus.MATCHED],
            counts[ReconciliationStatus.DUPLICATE],
        )
    return out


def default_selection(matches: Sequence[ReconciliationMatch]) -> list[int]:
    """Indices of the matches pre-selected for import (the NEW ones)."""

    return [i for i, m in enumerate(matches) if m.status is ReconciliationStatus.NEW]


# ---------------------------------------------------------------------------
# Import planning
# ---------------------------------------------------------------------------


def _is_recurring(candidate: CandidateTransaction, ledger: Ledger) -> bool:
    key = (candidate.merchant or candidate.description).lower()
    similar = [
        tx
        for tx in ledger
        if (tx.merchant or tx.description).lower() == key
        and abs(tx.amount - candidate.amount) < DUPLICATE_TOLERANCE
    ]
    return len(similar) >= RECURRING_MIN_HISTORY


def plan_import(
    matches: Sequence[ReconciliationMatch],
    selected: Iterable[int],
    *,
    categories: Categories,
    ledger: Ledger = (),
    mappings: MappingTable = (),
    category_overrides: Mapping[str, str] | None = None,
) -> ImportPlan:
    """Build the records and mapping table that importing ``selected`` would produce.

    ``category_overrides`` maps a merchant (or description, when the merchant
    is unknown) to the category the user picked for that whole group; keys are
    compared case-insensitively. DUPLICATE matches are skipped even when
    selected, and out-of-range indices are ignored.
    """

    overrides = {fold(k): v for k, v in (category_overrides or {}).items()}
    income = income_category(categories)
    fallback = fallback_category(categories)

    records: list[ImportedRecord] = []
    table: tuple[MerchantMapping, ...] = tuple(mappings)
    skipped_duplicates = 0

    for index in sorted(set(selected)):
        if not 0 <= index < len(matches):
            continue
        match = matches[index]
        if match.status is ReconciliationStatus.DUPLICATE:
            skipped_duplicates += 1
            continue
        candidate = match.candidate

        category_id = overrides.get(group_key(candidate)) or match.suggested_category_id
        if not category_id and candidate.direction is Direction.INFLOW and income is not None:
            category_id = income.id
        if not category_id and fallback is not None:
            category_id = fallback.id
        if not category_id:
            category_id = ""

        if category_id and candidate.merchant:
            table = apply_mapping_choice(table, candidate.merchant, category_id)

        records.append(
            ImportedRecord(
                date=candidate.date,
                description=candidate.description,
                amount=candidate.amount,
                direction=candidate.direction,
                category_id=category_id,
                merchant=candidate.merchant,
                is_recurring=_is_recurring(candidate, ledger),
            )
        )

    _logger.info(
        "planned import of %d records (%d duplicates skipped, %d mappings)",
        len(records),
        skipped_duplicates,
        len(table),
    )
    return ImportPlan(records=tuple(records), mappings=table, skipped_duplicates=skipped_duplicates)


__all__ = [
    "income_category",
    "fallback_category",
    "group_key",
    "reconcile",
    "default_selection",
    "plan_import",
]
