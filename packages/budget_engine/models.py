"""Data models for ``budget_engine``.

Every record is a frozen, slotted ``dataclass``: decoders produce them, the
matcher and miner read them, and nothing in the package mutates them after
construction. Money is ``Decimal``; calendar dates are ``datetime.date``.

Records owned by the host application (ledger transactions, categories and
the merchant-mapping table) are modeled here only as far as the engine reads
them.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import StrEnum

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Direction(StrEnum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class CategoryType(StrEnum):
    SPENDING = "SPENDING"
    INCOME = "INCOME"
    DEBT = "DEBT"
    SAVINGS = "SAVINGS"


class ReconciliationStatus(StrEnum):
    NEW = "NEW"
    MATCHED = "MATCHED"
    DUPLICATE = "DUPLICATE"


class Frequency(StrEnum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Trend(StrEnum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


# ---------------------------------------------------------------------------
# Decoder input/output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ColumnMapping:
    """Header names for one bank's delimited export layout.

    Names are matched case-insensitively and by containment, so ``"Date"``
    also finds a ``"Posting Date"`` header.
    """

    date_column: str
    description_column: str
    amount_column: str
    balance_column: str | None = None
    type_column: str | None = None


type RawRow = list[str]
"""Ordered string cells of one delimited line, before any interpretation."""


@dataclass(frozen=True, slots=True)
class CandidateTransaction:
    """A decoded, not-yet-accepted transaction.

    ``amount`` is always non-negative; ``direction`` carries the sign. The raw
    amount and type strings are kept as they appeared in the file.
    """

    date: date
    description: str
    amount: Decimal
    direction: Direction
    merchant: str | None = None
    raw_amount: str = ""
    raw_type: str | None = None
    balance: Decimal | None = None
    external_id: str | None = None
    check_number: str | None = None

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError(f"CandidateTransaction.amount must be non-negative, got {self.amount}")


@dataclass(frozen=True, slots=True)
class SkippedRecord:
    """A row or markup record dropped from a batch, with the reason."""

    position: int
    reason: str


# ---------------------------------------------------------------------------
# Ledger-side records (owned by the host application)
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Category:
    id: str
    name: str
    type: CategoryType = CategoryType.SPENDING
    budget: Decimal = Decimal("0")


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    date: date
    description: str
    amount: Decimal
    category_id: str
    merchant: str | None = None
    id: str | None = None
    is_recurring: bool = False


@dataclass(frozen=True, slots=True)
class MerchantMapping:
    """Learned merchant → category association.

    ``merchant`` is the normalized (case-folded) key; ``confidence`` is kept
    within ``[0, 1]``.
    """

    merchant: str
    category_id: str
    confidence: float
    times_used: int = 1

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"MerchantMapping.confidence must be within [0,1], got {self.confidence}")
        if self.times_used < 0:
            raise ValueError("MerchantMapping.times_used must be non-negative")


# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategorySuggestion:
    category_id: str
    confidence: float
    reason: str


@dataclass(frozen=True, slots=True)
class ReconciliationMatch:
    """Classification of one candidate against the ledger.

    A ``DUPLICATE`` always points at the ledger entry it duplicates; a ``NEW``
    never does.
    """

    candidate: CandidateTransaction
    status: ReconciliationStatus
    confidence: float
    matched_existing: LedgerTransaction | None = None
    suggested_category_id: str | None = None
    suggestion: CategorySuggestion | None = None

    def __post_init__(self) -> None:
        if self.status is ReconciliationStatus.DUPLICATE and self.matched_existing is None:
            raise ValueError("DUPLICATE match requires matched_existing")
        if self.status is ReconciliationStatus.NEW and self.matched_existing is not None:
            raise ValueError("NEW match must not carry matched_existing")


@dataclass(frozen=True, slots=True)
class ImportedRecord:
    """A ledger record proposed by the import planner, not yet persisted."""

    date: date
    description: str
    amount: Decimal
    direction: Direction
    category_id: str
    merchant: str | None = None
    is_recurring: bool = False


@dataclass(frozen=True, slots=True)
class ImportPlan:
    records: tuple[ImportedRecord, ...]
    mappings: tuple[MerchantMapping, ...]
    skipped_duplicates: int = 0


@dataclass(frozen=True, slots=True)
class RecurringSeriesSuggestion:
    merchant: str
    average_amount: Decimal
    frequency: Frequency
    member_transactions: tuple[LedgerTransaction, ...]
    confidence: float
    next_due_date: date
    category_id: str
    kind: str = "bill"  # {"bill", "subscription"}


@dataclass(frozen=True, slots=True)
class BudgetTrendSuggestion:
    category_id: str
    category_name: str
    current_budget: Decimal
    average_monthly_spend: Decimal
    trend: Trend
    suggested_limit: Decimal
    rationale: str


@dataclass(frozen=True, slots=True)
class MerchantMappingSuggestion:
    merchant: str
    category_id: str
    confidence: float
    times_used: int


# Generic collections
type Ledger = Sequence[LedgerTransaction]
type Categories = Sequence[Category]
type MappingTable = Sequence[MerchantMapping]


@dataclass(frozen=True, slots=True)
class DecodeReport:
    """Candidates decoded from one file plus the records that were skipped."""

    candidates: tuple[CandidateTransaction, ...]
    skipped: tuple[SkippedRecord, ...] = field(default=())


__all__ = [
    "Direction",
    "CategoryType",
    "ReconciliationStatus",
    "Frequency",
    "Trend",
    "ColumnMapping",
    "RawRow",
    "CandidateTransaction",
    "SkippedRecord",
    "DecodeReport",
    "Category",
    "LedgerTransaction",
    "MerchantMapping",
    "CategorySuggestion",
    "ReconciliationMatch",
    "ImportedRecord",
    "ImportPlan",
    "RecurringSeriesSuggestion",
    "BudgetTrendSuggestion",
    "MerchantMappingSuggestion",
    "Ledger",
    "Categories",
    "MappingTable",
]
