"""Pytest configuration and shared fixtures.

The package lives under ``packages/`` without being installed in some
checkouts, so that directory is put on ``sys.path`` first. The pattern
database location is read from ``BUDGET_ENGINE_PATTERNS_FILE``; an autouse
fixture removes it so every test sees the packaged database unless it sets
its own.
"""

# ruff: noqa: E402
from __future__ import annotations

import sys
import textwrap
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

_ROOT = Path(__file__).resolve().parents[1]
_PKG_DIR = _ROOT / "packages"
sys.path[:0] = [p for p in [str(_PKG_DIR)] if p not in sys.path]

from budget_engine.logging_setup import reset_logging
from budget_engine.models import Category, CategoryType, LedgerTransaction
from budget_engine.patterns import PATTERNS_FILE_ENV, PatternDatabase, load_pattern_database


def dedent(s: str) -> str:
    # Keep internal newlines, but normalize indentation for readability.
    return textwrap.dedent(s).lstrip("\n").rstrip()


def tx(
    when: str,
    description: str,
    amount: str,
    category_id: str,
    *,
    merchant: str | None = None,
    is_recurring: bool = False,
) -> LedgerTransaction:
    return LedgerTransaction(
        date=date.fromisoformat(when),
        description=description,
        amount=Decimal(amount),
        category_id=category_id,
        merchant=merchant,
        is_recurring=is_recurring,
    )


@pytest.fixture(autouse=True)
def _packaged_patterns(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(PATTERNS_FILE_ENV, raising=False)


@pytest.fixture(autouse=True)
def _quiet_logging():
    yield
    reset_logging()


@pytest.fixture
def categories() -> tuple[Category, ...]:
    return (
        Category("c-dining", "Dining", CategoryType.SPENDING, Decimal("200")),
        Category("c-groceries", "Groceries", CategoryType.SPENDING, Decimal("400")),
        Category("c-ent", "Entertainment", CategoryType.SPENDING, Decimal("50")),
        Category("c-transport", "Transportation", CategoryType.SPENDING, Decimal("100")),
        Category("c-income", "Salary", CategoryType.INCOME, Decimal("0")),
        Category("c-savings", "Savings", CategoryType.SAVINGS, Decimal("0")),
        Category("c-misc", "Uncategorized", CategoryType.SPENDING, Decimal("0")),
    )


@pytest.fixture
def pattern_db() -> PatternDatabase:
    return load_pattern_database()
