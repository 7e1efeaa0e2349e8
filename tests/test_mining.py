from datetime import date
from decimal import Decimal

import pytest

from budget_engine.mining import detect_recurring, suggest_budgets, suggest_mappings
from budget_engine.models import Frequency, MerchantMapping, Trend

from conftest import tx


def netflix(amounts=("15.49", "15.49", "15.49"), category_id="c-ent"):
    days = ("2024-01-01", "2024-02-01", "2024-03-01")
    return [tx(d, "NETFLIX.COM", a, category_id, merchant="Netflix") for d, a in zip(days, amounts)]


# ---------------------------------------------------------------------------
# Recurring series
# ---------------------------------------------------------------------------


def test_monthly_netflix(categories):
    (s,) = detect_recurring(netflix(), categories)

    assert s.frequency is Frequency.MONTHLY
    assert s.confidence == 0.95
    assert s.merchant == "Netflix"
    assert s.average_amount == Decimal("15.49")
    assert s.next_due_date == date(2024, 4, 1)
    assert s.category_id == "c-ent"
    assert s.kind == "subscription"
    assert len(s.member_transactions) == 3


def test_amount_drift_over_five_percent_drops_series(categories):
    assert detect_recurring(netflix(("15.49", "18.59", "15.49")), categories) == []


def test_small_amount_drift_is_tolerated(categories):
    assert len(detect_recurring(netflix(("15.49", "15.99", "15.49")), categories)) == 1


def test_existing_bill_suppresses_suggestion(categories):
    assert detect_recurring(netflix(), categories, existing_names=["Netflix Premium"]) == []
    assert detect_recurring(netflix(), categories, existing_names=["netflx"]) == []
    assert len(detect_recurring(netflix(), categories, existing_names=["Spotify"])) == 1


def test_income_savings_and_unknown_categories_are_ignored(categories):
    assert detect_recurring(netflix(category_id="c-income"), categories) == []
    assert detect_recurring(netflix(category_id="c-savings"), categories) == []
    assert detect_recurring(netflix(category_id="c-gone"), categories) == []


def test_already_recurring_transactions_are_ignored(categories):
    ledger = [
        tx(t.date.isoformat(), t.description, str(t.amount), t.category_id, merchant=t.merchant, is_recurring=True)
        for t in netflix()
    ]
    assert detect_recurring(ledger, categories) == []


def test_weekly_bill_and_ordering(categories):
    gym = [
        tx(d, "CITY GYM", "10.00", "c-transport")
        for d in ("2024-01-03", "2024-01-10", "2024-01-17", "2024-01-24", "2024-01-31")
    ]
    found = detect_recurring(netflix() + gym, categories)

    assert [s.merchant for s in found] == ["CITY GYM", "Netflix"]
    weekly = found[0]
    assert weekly.frequency is Frequency.WEEKLY
    assert weekly.confidence == 0.9
    assert weekly.next_due_date == date(2024, 2, 7)
    assert weekly.kind == "bill"


def test_irregular_intervals_are_not_recurring(categories):
    ledger = [
        tx(d, "HARDWARE STORE", "20.00", "c-transport")
        for d in ("2024-01-01", "2024-01-05", "2024-02-20")
    ]
    assert detect_recurring(ledger, categories) == []


def test_too_few_transactions(categories):
    assert detect_recurring(netflix()[:2], categories) == []


def test_month_end_next_due_is_calendar_aware(categories):
    ledger = [
        tx(d, "RENT CO", "900.00", "c-transport")
        for d in ("2023-11-30", "2023-12-31", "2024-01-31")
    ]
    (s,) = detect_recurring(ledger, categories)
    assert s.next_due_date == date(2024, 2, 29)


# ---------------------------------------------------------------------------
# Budget suggestions
# ---------------------------------------------------------------------------


def monthly(category_id, per_month):
    return [tx(f"2024-{m:02d}-10", "SPEND", amount, category_id) for m, amount in per_month]


def test_over_budget(categories):
    ledger = monthly("c-dining", [(1, "300"), (2, "300"), (3, "300")])
    (s,) = suggest_budgets(ledger, categories, as_of=date(2024, 3, 31))

    assert s.category_id == "c-dining"
    assert s.category_name == "Dining"
    assert s.current_budget == Decimal("200")
    assert s.average_monthly_spend == Decimal("300.00")
    assert s.suggested_limit == Decimal("330")
    assert s.trend is Trend.STABLE
    assert "50% over" in s.rationale


def test_well_under_a_meaningful_budget(categories):
    ledger = monthly("c-groceries", [(1, "100"), (2, "100"), (3, "100")])
    (s,) = suggest_budgets(ledger, categories)
    assert s.suggested_limit == Decimal("120")


def test_within_band_and_stable_is_left_alone(categories):
    ledger = monthly("c-ent", [(1, "45"), (2, "45"), (3, "45")])
    assert suggest_budgets(ledger, categories) == []


def test_increasing_trend(categories):
    ledger = monthly("c-transport", [(1, "60"), (2, "80"), (3, "100")])
    (s,) = suggest_budgets(ledger, categories)
    assert s.trend is Trend.INCREASING
    assert s.suggested_limit == Decimal("92")


def test_decreasing_trend(categories):
    ledger = monthly("c-transport", [(1, "90"), (2, "50"), (3, "40")])
    (s,) = suggest_budgets(ledger, categories)
    assert s.trend is Trend.DECREASING
    assert s.suggested_limit == Decimal("66")


def test_window_excludes_older_months(categories):
    ledger = monthly("c-dining", [(1, "900"), (2, "200"), (3, "200")])
    assert suggest_budgets(ledger, categories, lookback_months=1, as_of=date(2024, 3, 15)) == []
    assert len(suggest_budgets(ledger, categories, lookback_months=3, as_of=date(2024, 3, 15))) == 1


def test_only_spending_categories(categories):
    ledger = monthly("c-income", [(1, "5000"), (2, "5000"), (3, "5000")])
    assert suggest_budgets(ledger, categories) == []


def test_empty_ledger(categories):
    assert suggest_budgets([], categories) == []
    assert detect_recurring([], categories) == []
    assert suggest_mappings([]) == []


def test_negative_lookback_rejected(categories):
    with pytest.raises(ValueError):
        suggest_budgets(monthly("c-dining", [(1, "1")]), categories, lookback_months=-1)


# ---------------------------------------------------------------------------
# Mapping suggestions
# ---------------------------------------------------------------------------


def shell(categories_in_order):
    return [
        tx(f"2024-01-{i + 1:02d}", "SHELL OIL 57444", "40.00", cid, merchant="Shell")
        for i, cid in enumerate(categories_in_order)
    ]


def test_consistent_merchant_is_suggested():
    (s,) = suggest_mappings(shell(["c-transport"] * 4 + ["c-misc"]))
    assert s.merchant == "Shell"
    assert s.category_id == "c-transport"
    assert s.confidence == pytest.approx(0.8)
    assert s.times_used == 5


def test_mixed_merchant_is_not_suggested():
    assert suggest_mappings(shell(["c-transport"] * 3 + ["c-misc"])) == []


def test_existing_mapping_suppresses_only_when_it_agrees():
    ledger = shell(["c-transport"] * 3)
    assert suggest_mappings(ledger, [MerchantMapping("shell", "c-transport", 0.8, 3)]) == []
    (s,) = suggest_mappings(ledger, [MerchantMapping("SHELL", "c-misc", 0.6, 1)])
    assert s.category_id == "c-transport"


def test_mapping_suggestions_sorted_by_usage():
    ledger = shell(["c-transport"] * 3) + [
        tx(f"2024-02-{d:02d}", "STARBUCKS", "5.75", "c-dining", merchant="Starbucks") for d in range(1, 6)
    ]
    assert [s.merchant for s in suggest_mappings(ledger)] == ["Starbucks", "Shell"]
