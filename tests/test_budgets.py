from datetime import datetime
from decimal import Decimal

from budgets import budget_status, budget_statuses
from records import BudgetRecord, Period

from conftest import txn

NOW = datetime(2026, 10, 14, 12, 0)  # a Wednesday


def food_budget(amount="100.00", period=Period.MONTHLY):
    return BudgetRecord(id="b1", category="Food", amount=Decimal(amount), period=period)


def test_status_without_transactions():
    status = budget_status(food_budget(), [], NOW)
    assert status.spent == Decimal("0")
    assert status.remaining == Decimal("100.00")
    assert status.percentage_used == Decimal("0")
    assert status.is_over_budget is False


def test_over_budget_scenario_caps_percentage():
    records = [
        txn("expense", "40.00", "Food", "2026-10-02T12:00:00"),
        txn("expense", "70.00", "Food", "2026-10-12T19:00:00"),
        txn("expense", "10.00", "Food", "2026-09-20T12:00:00"),
    ]
    status = budget_status(food_budget(), records, NOW)
    assert status.spent == Decimal("110.00")
    assert status.remaining == Decimal("-10.00")
    assert status.percentage_used == Decimal("100")
    assert status.is_over_budget is True


def test_partial_spend_percentage():
    records = [txn("expense", "40.00", "Food", "2026-10-02T12:00:00")]
    status = budget_status(food_budget(), records, NOW)
    assert status.percentage_used == Decimal("40")
    assert status.remaining == Decimal("60.00")
    assert not status.is_over_budget


def test_spending_exactly_the_budget_is_not_over():
    records = [txn("expense", "100.00", "Food", "2026-10-02T12:00:00")]
    status = budget_status(food_budget(), records, NOW)
    assert status.percentage_used == Decimal("100")
    assert status.is_over_budget is False


def test_weekly_budget_only_counts_current_week():
    records = [
        txn("expense", "5.00", "Food", "2026-10-11T08:00:00"),  # Sunday, in window
        txn("expense", "7.00", "Food", "2026-10-10T20:00:00"),  # Saturday before
        txn("expense", "9.00", "Food", "2026-10-17T22:00:00"),  # Saturday, last day
    ]
    status = budget_status(food_budget("20.00", Period.WEEKLY), records, NOW)
    assert status.spent == Decimal("14.00")


def test_yearly_budget_counts_whole_year():
    records = [
        txn("expense", "5.00", "Food", "2026-01-01T00:00:00"),
        txn("expense", "5.00", "Food", "2026-12-31T23:00:00"),
        txn("expense", "5.00", "Food", "2025-12-31T23:00:00"),
    ]
    status = budget_status(food_budget("20.00", Period.YEARLY), records, NOW)
    assert status.spent == Decimal("10.00")


def test_zero_budget_uses_sentinel_percentages():
    spent = [txn("expense", "1.00", "Food", "2026-10-02T12:00:00")]

    idle = budget_status(food_budget("0.00"), [], NOW)
    assert idle.percentage_used == Decimal("0")
    assert idle.is_over_budget is False

    used = budget_status(food_budget("0.00"), spent, NOW)
    assert used.percentage_used == Decimal("100")
    assert used.is_over_budget is True
    assert used.remaining == Decimal("-1.00")


def test_budget_statuses_keeps_budget_order():
    budgets = [
        BudgetRecord(id="1", category="Bills", amount=Decimal("50.00")),
        BudgetRecord(id="2", category="Food", amount=Decimal("50.00")),
    ]
    records = [txn("expense", "25.00", "Food", "2026-10-02T12:00:00")]
    pairs = budget_statuses(budgets, records, NOW)
    assert [b.id for b, _ in pairs] == ["1", "2"]
    assert [s.spent for _, s in pairs] == [Decimal("0"), Decimal("25.00")]
