"""Public interface for the ``budget_engine`` package.

Bank-statement ingestion, reconciliation and categorization, plus a pattern
miner over the ledger. There is no runtime logic here, only symbol re-exports.
"""

from .api import (
    BANK_PRESETS,
    Decoded,
    DecodeFailure,
    DecodeResult,
    MerchantClassifier,
    PatternDatabase,
    apply_mapping_choice,
    decode_csv,
    decode_ofx,
    decode_statement,
    default_selection,
    detect_recurring,
    load_pattern_database,
    plan_import,
    reconcile,
    resolve_preset,
    similarity,
    suggest_budgets,
    suggest_mappings,
    update_mapping,
)
from .errors import ConfigurationError, EmptyResultError, FormatError, StatementError
from .models import (
    BudgetTrendSuggestion,
    CandidateTransaction,
    Category,
    CategorySuggestion,
    CategoryType,
    ColumnMapping,
    Direction,
    Frequency,
    ImportedRecord,
    ImportPlan,
    LedgerTransaction,
    MerchantMapping,
    MerchantMappingSuggestion,
    ReconciliationMatch,
    ReconciliationStatus,
    RecurringSeriesSuggestion,
    SkippedRecord,
    Trend,
)

__all__ = [
    # API
    "decode_statement",
    "decode_csv",
    "decode_ofx",
    "resolve_preset",
    "reconcile",
    "default_selection",
    "plan_import",
    "update_mapping",
    "apply_mapping_choice",
    "detect_recurring",
    "suggest_budgets",
    "suggest_mappings",
    "similarity",
    "load_pattern_database",
    "MerchantClassifier",
    "PatternDatabase",
    "BANK_PRESETS",
    "Decoded",
    "DecodeFailure",
    "DecodeResult",
    # Errors
    "StatementError",
    "ConfigurationError",
    "FormatError",
    "EmptyResultError",
    # Models / types
    "ColumnMapping",
    "CandidateTransaction",
    "SkippedRecord",
    "Category",
    "CategoryType",
    "LedgerTransaction",
    "MerchantMapping",
    "CategorySuggestion",
    "ReconciliationMatch",
    "ReconciliationStatus",
    "ImportedRecord",
    "ImportPlan",
    "RecurringSeriesSuggestion",
    "BudgetTrendSuggestion",
    "MerchantMappingSuggestion",
    "Direction",
    "Frequency",
    "Trend",
]
