from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Sequence, Tuple, Union

from aggregation import sum_expenses
from periods import resolve_window
from records import BudgetRecord, TransactionRecord

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class BudgetStatus:
    spent: Decimal
    remaining: Decimal
    percentage_used: Decimal
    is_over_budget: bool


def budget_status(
    budget: BudgetRecord,
    transactions: Iterable[TransactionRecord],
    now: Union[date, datetime],
) -> BudgetStatus:
    """
    Spend against a budget for the period window containing ``now``.

    ``percentage_used`` is capped at 100 for display while ``is_over_budget``
    compares the raw amounts. A zero-amount budget reports 100 once anything
    is spent and 0 otherwise.
    """
    window = resolve_window(now, budget.period)
    spent = sum_expenses(transactions, budget.category, window)

    if budget.amount > 0:
        percentage = min(HUNDRED, spent / budget.amount * HUNDRED)
    else:
        percentage = HUNDRED if spent > 0 else Decimal("0")

    return BudgetStatus(
        spent=spent,
        remaining=budget.amount - spent,
        percentage_used=percentage,
        is_over_budget=spent > budget.amount,
    )


def budget_statuses(
    budgets: Iterable[BudgetRecord],
    transactions: Sequence[TransactionRecord],
    now: Union[date, datetime],
) -> List[Tuple[BudgetRecord, BudgetStatus]]:
    return [(b, budget_status(b, transactions, now)) for b in budgets]
