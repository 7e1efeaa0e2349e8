"""Public API for the ``budget_engine`` package.

This module is the stable import surface for hosts: statement decoding,
reconciliation and import planning, mapping transitions and pattern mining.
Implementations live in the submodules and are re-exported here.
"""

from __future__ import annotations

from .classifier import MerchantClassifier
from .ingest import (
    BANK_PRESETS,
    Decoded,
    DecodeFailure,
    DecodeResult,
    decode_csv,
    decode_ofx,
    decode_statement,
    resolve_preset,
)
from .mappings import apply_mapping_choice, update_mapping
from .mining import detect_recurring, suggest_budgets, suggest_mappings
from .patterns import PatternDatabase, load_pattern_database
from .reconcile import default_selection, plan_import, reconcile
from .similarity import similarity

__all__ = [
    "BANK_PRESETS",
    "Decoded",
    "DecodeFailure",
    "DecodeResult",
    "MerchantClassifier",
    "PatternDatabase",
    "apply_mapping_choice",
    "decode_csv",
    "decode_ofx",
    "decode_statement",
    "default_selection",
    "detect_recurring",
    "load_pattern_database",
    "plan_import",
    "reconcile",
    "resolve_preset",
    "similarity",
    "suggest_budgets",
    "suggest_mappings",
    "update_mapping",
]
