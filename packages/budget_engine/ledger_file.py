"""JSON ledger file used by the CLI.

The host application normally hands the engine its ledger in memory. For
local use the CLI reads the same data from one JSON document::

    {
      "categories":   [{"id": "c1", "name": "Dining", "type": "SPENDING", "budget": "200"}],
      "transactions": [{"date": "2024-01-15", "description": "Coffee Shop",
                        "amount": "5.75", "category_id": "c1"}],
      "mappings":     [{"merchant": "starbucks", "category_id": "c1",
                        "confidence": 0.8, "times_used": 2}],
      "bills":        [{"name": "Netflix", "kind": "subscription"}]
    }

Every section is optional. The pydantic models below validate the document
and convert it into the frozen domain records.
"""

from __future__ import annotations

import datetime as dt
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Category, CategoryType, LedgerTransaction, MerchantMapping


class CategoryEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    id: str
    name: str
    type: CategoryType = CategoryType.SPENDING
    budget: Decimal = Decimal("0")

    @field_validator("type", mode="before")
    @classmethod
    def _upper_type(cls, v: object) -> object:
        return v.strip().upper() if isinstance(v, str) else v

    def to_domain(self) -> Category:
        return Category(id=self.id, name=self.name, type=self.type, budget=self.budget)


class TransactionEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    date: dt.date
    description: str
    amount: Decimal
    category_id: str
    merchant: str | None = None
    id: str | None = None
    is_recurring: bool = False

    def to_domain(self) -> LedgerTransaction:
        return LedgerTransaction(
            date=self.date,
            description=self.description,
            amount=self.amount,
            category_id=self.category_id,
            merchant=self.merchant or None,
            id=self.id,
            is_recurring=self.is_recurring,
        )


class MappingEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    merchant: str
    category_id: str
    confidence: float = Field(ge=0.0, le=1.0)
    times_used: int = Field(default=1, ge=0)

    def to_domain(self) -> MerchantMapping:
        return MerchantMapping(self.merchant, self.category_id, self.confidence, self.times_used)


class BillEntry(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    name: str
    kind: Literal["bill", "subscription"] = "bill"


class LedgerFile(BaseModel):
    """Top-level schema for a ledger JSON file."""

    model_config = ConfigDict(extra="forbid")

    categories: list[CategoryEntry] = Field(default_factory=list)
    transactions: list[TransactionEntry] = Field(default_factory=list)
    mappings: list[MappingEntry] = Field(default_factory=list)
    bills: list[BillEntry] = Field(default_factory=list)

    def domain_categories(self) -> tuple[Category, ...]:
        return tuple(c.to_domain() for c in self.categories)

    def domain_transactions(self) -> tuple[LedgerTransaction, ...]:
        return tuple(t.to_domain() for t in self.transactions)

    def domain_mappings(self) -> tuple[MerchantMapping, ...]:
        return tuple(m.to_domain() for m in self.mappings)

    def bill_names(self) -> tuple[str, ...]:
        return tuple(b.name for b in self.bills)


def load_ledger_file(path: str | Path) -> LedgerFile:
    """Read and validate a ledger file.

    ``OSError`` and ``pydantic.ValidationError`` propagate to the caller.
    """

    text = Path(path).read_text(encoding="utf-8")
    return LedgerFile.model_validate_json(text)


__all__ = [
    "CategoryEntry",
    "TransactionEntry",
    "MappingEntry",
    "BillEntry",
    "LedgerFile",
    "load_ledger_file",
]
