"""Pattern mining over the ledger.

Three independent passes, each a pure function of its inputs:

- :func:`detect_recurring` finds merchants charged at a steady amount on a
  steady schedule and proposes them as bills or subscriptions.
- :func:`suggest_budgets` compares recent monthly spending per category with
  its budget.
- :func:`suggest_mappings` proposes merchant → category mappings for
  merchants the user files consistently.

None of them raise for lack of data; they return empty lists.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_CEILING, ROUND_HALF_UP, Decimal

from dateutil.relativedelta import relativedelta

from .logging_setup import get_logger
from .models import (
    BudgetTrendSuggestion,
    Categories,
    CategoryType,
    Frequency,
    Ledger,
    LedgerTransaction,
    MappingTable,
    MerchantMappingSuggestion,
    RecurringSeriesSuggestion,
    Trend,
)
from .similarity import fold, similarity

_logger = get_logger("budget_engine.mining")

_CENT = Decimal("0.01")

# ---------------------------------------------------------------------------
# Recurring series
# ---------------------------------------------------------------------------

MIN_SERIES_LENGTH = 3
AMOUNT_TOLERANCE = Decimal("0.05")
INTERVAL_TOLERANCE_DAYS = 7
EXISTING_NAME_SIMILARITY = 0.8


@dataclass(frozen=True, slots=True)
class _FrequencyBucket:
    frequency: Frequency
    min_days: int
    max_days: int
    confidence: float
    step: relativedelta


FREQUENCY_BUCKETS: tuple[_FrequencyBucket, ...] = (
    _FrequencyBucket(Frequency.WEEKLY, 5, 9, 0.90, relativedelta(weeks=1)),
    _FrequencyBucket(Frequency.BIWEEKLY, 12, 16, 0.90, relativedelta(weeks=2)),
    _FrequencyBucket(Frequency.MONTHLY, 28, 33, 0.95, relativedelta(months=1)),
    _FrequencyBucket(Frequency.QUARTERLY, 88, 95, 0.90, relativedelta(months=3)),
    _FrequencyBucket(Frequency.YEARLY, 360, 370, 0.85, relativedelta(years=1)),
)

_SUBSCRIPTION_HINTS = ("subscription", "entertainment", "streaming")


def _bucket_for(avg_interval: float) -> _FrequencyBucket | None:
    for b in FREQUENCY_BUCKETS:
        if b.min_days <= avg_interval <= b.max_days:
            return b
    return None


def _overlaps_existing(name: str, existing: Sequence[str]) -> bool:
    for other in existing:
        if not other:
            continue
        if other in name or name in other or similarity(name, other) >= EXISTING_NAME_SIMILARITY:
            return True
    return False


def detect_recurring(
    ledger: Ledger,
    categories: Categories,
    *,
    existing_names: Iterable[str] = (),
) -> list[RecurringSeriesSuggestion]:
    """Propose recurring bills/subscriptions found in ``ledger``.

    ``existing_names`` are the names of bills and subscriptions the user
    already tracks; merchants overlapping one of them are not proposed again.
    Transactions already flagged ``is_recurring`` and those filed under
    income, savings or unknown categories are ignored.
    """

    by_id = {c.id: c for c in categories}
    existing = [fold(n) for n in existing_names]

    groups: dict[str, list[LedgerTransaction]] = defaultdict(list)
    for tx in ledger:
        cat = by_id.get(tx.category_id)
        if cat is None or cat.type in (CategoryType.INCOME, CategoryType.SAVINGS):
            continue
        if tx.is_recurring:
            continue
        key = fold(tx.merchant or tx.description)
        if key:
            groups[key].append(tx)

    suggestions: list[RecurringSeriesSuggestion] = []
    for key, txs in groups.items():
        if len(txs) < MIN_SERIES_LENGTH:
            continue
        series = sorted(txs, key=lambda t: t.date)

        amounts = [abs(t.amount) for t in series]
        avg_amount = sum(amounts, Decimal("0")) / len(amounts)
        if avg_amount == 0:
            continue
        if not all(abs(a - avg_amount) / avg_amount < AMOUNT_TOLERANCE for a in amounts):
            continue

        intervals = [(b.date - a.date).days for a, b in zip(series, series[1:])]
        avg_interval = sum(intervals) / len(intervals)
        if not all(abs(i - avg_interval) < INTERVAL_TOLERANCE_DAYS for i in intervals):
            continue
        bucket = _bucket_for(avg_interval)
        if bucket is None:
            continue

        if _overlaps_existing(key, existing):
            _logger.debug("skipping %r: already tracked", key)
            continue

        first = series[0]
        category = by_id[first.category_id]
        kind = "subscription" if any(h in category.name.lower() for h in _SUBSCRIPTION_HINTS) else "bill"
        suggestions.append(
            RecurringSeriesSuggestion(
                merchant=first.merchant or first.description,
                average_amount=avg_amount.quantize(_CENT, rounding=ROUND_HALF_UP),
                frequency=bucket.frequency,
                member_transactions=tuple(series),
                confidence=bucket.confidence,
                next_due_date=series[-1].date + bucket.step,
                category_id=first.category_id,
                kind=kind,
            )
        )

    suggestions.sort(key=lambda s: s.confidence * len(s.member_transactions), reverse=True)
    _logger.info("found %d recurring series among %d merchants", len(suggestions), len(groups))
    return suggestions


# ---------------------------------------------------------------------------
# Budget suggestions
# ---------------------------------------------------------------------------

OVER_BUDGET_RATIO = Decimal("1.2")
UNDER_BUDGET_RATIO = Decimal("0.5")
MEANINGFUL_BUDGET = Decimal("50")
TREND_UP = Decimal("1.15")
TREND_DOWN = Decimal("0.85")
DECREASING_CEILING = Decimal("0.8")


def _ceil(value: Decimal) -> Decimal:
    return value.to_integral_value(rounding=ROUND_CEILING)


def _trend(monthly: list[Decimal]) -> Trend:
    if len(monthly) < 2:
        return Trend.STABLE
    half = len(monthly) // 2
    first, second = monthly[:half], monthly[half:]
    first_avg = sum(first, Decimal("0")) / len(first)
    second_avg = sum(second, Decimal("0")) / len(second)
    if second_avg > first_avg * TREND_UP:
        return Trend.INCREASING
    if second_avg < first_avg * TREND_DOWN:
        return Trend.DECREASING
    return Trend.STABLE


def suggest_budgets(
    ledger: Ledger,
    categories: Categories,
    *,
    lookback_months: int = 3,
    as_of: date | None = None,
) -> list[BudgetTrendSuggestion]:
    """Propose new budget limits for spending categories.

    The window opens on the first day of the month ``lookback_months`` before
    ``as_of`` (by default the latest ledger date) and closes on ``as_of``.
    Rules are tried in order and the first one that fires wins:

    1. average above 120% of budget: ``ceil(avg * 1.1)``
    2. average under 50% of a budget above $50: ``ceil(avg * 1.2)``
    3. increasing trend: ``ceil(avg * 1.15)``
    4. decreasing trend and average under 80% of budget: ``ceil(avg * 1.1)``
    """

    if lookback_months < 0:
        raise ValueError("lookback_months must be non-negative")
    if not ledger:
        return []
    if as_of is None:
        as_of = max(t.date for t in ledger)
    cutoff = as_of.replace(day=1) - relativedelta(months=lookback_months)

    recent = [t for t in ledger if cutoff <= t.date <= as_of]

    suggestions: list[BudgetTrendSuggestion] = []
    for category in categories:
        if category.type is not CategoryType.SPENDING:
            continue
        txs = [t for t in recent if t.category_id == category.id]
        if not txs:
            continue

        per_month: dict[tuple[int, int], Decimal] = defaultdict(lambda: Decimal("0"))
        for t in txs:
            per_month[(t.date.year, t.date.month)] += abs(t.amount)
        monthly = [per_month[k] for k in sorted(per_month)]
        avg = sum(monthly, Decimal("0")) / len(monthly)
        trend = _trend(monthly)
        budget = category.budget
        avg_display = avg.quantize(Decimal("1"), rounding=ROUND_HALF_UP)

        if avg > budget * OVER_BUDGET_RATIO:
            suggested = _ceil(avg * Decimal("1.1"))
            if budget > 0:
                over = ((avg / budget - 1) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
                rationale = (
                    f"You're averaging ${avg_display}/month, which is {over}% over your ${budget} budget"
                )
            else:
                rationale = f"You're averaging ${avg_display}/month with no budget set"
        elif avg < budget * UNDER_BUDGET_RATIO and budget > MEANINGFUL_BUDGET:
            suggested = _ceil(avg * Decimal("1.2"))
            rationale = f"You're only spending ${avg_display}/month. Consider reducing from ${budget}"
        elif trend is Trend.INCREASING:
            suggested = _ceil(avg * Decimal("1.15"))
            rationale = f"Spending is trending up. Average: ${avg_display}/month"
        elif trend is Trend.DECREASING and avg < budget * DECREASING_CEILING:
            suggested = _ceil(avg * Decimal("1.1"))
            rationale = f"Spending is trending down. Average: ${avg_display}/month"
        else:
            continue

        suggestions.append(
            BudgetTrendSuggestion(
                category_id=category.id,
                category_name=category.name,
                current_budget=budget,
                average_monthly_spend=avg.quantize(_CENT, rounding=ROUND_HALF_UP),
                trend=trend,
                suggested_limit=suggested,
                rationale=rationale,
            )
        )

    _logger.info("proposed %d budget adjustments (window from %s)", len(suggestions), cutoff)
    return suggestions


# ---------------------------------------------------------------------------
# Merchant-mapping suggestions
# ---------------------------------------------------------------------------

MIN_MAPPING_HISTORY = 3
MIN_MAPPING_SHARE = 0.8


def suggest_mappings(
    ledger: Ledger,
    mappings: MappingTable = (),
) -> list[MerchantMappingSuggestion]:
    """Propose mappings for merchants filed under one category at least 80% of the time."""

    by_merchant: dict[str, dict[str, list[LedgerTransaction]]] = defaultdict(lambda: defaultdict(list))
    for tx in ledger:
        if not tx.merchant:
            continue
        key = fold(tx.merchant)
        if key:
            by_merchant[key][tx.category_id].append(tx)

    known = {fold(m.merchant): m for m in mappings}

    suggestions: list[MerchantMappingSuggestion] = []
    for key, per_category in by_merchant.items():
        total = sum(len(v) for v in per_category.values())
        top_id, top_txs = max(per_category.items(), key=lambda kv: len(kv[1]))
        share = len(top_txs) / total
        if total < MIN_MAPPING_HISTORY or share < MIN_MAPPING_SHARE:
            continue
        existing = known.get(key)
        if existing is not None and existing.category_id == top_id:
            continue
        suggestions.append(
            MerchantMappingSuggestion(
                merchant=top_txs[0].merchant or key,
                category_id=top_id,
                confidence=share,
                times_used=total,
            )
        )

    suggestions.sort(key=lambda s: s.times_used, reverse=True)
    return suggestions


__all__ = [
    "FREQUENCY_BUCKETS",
    "detect_recurring",
    "suggest_budgets",
    "suggest_mappings",
]
