"""
aggregation.py
--------------
Sums and group-bys over an already fetched list of transactions. These feed
the budget progress bars, the category pies and the monthly income/expense
bar chart. All totals are accumulated as ``Decimal``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from dateutil.relativedelta import relativedelta

from money import ZERO
from periods import Window
from records import TransactionKind, TransactionRecord


class TimeRange(str, enum.Enum):
    ALL = "all"
    MONTH = "month"
    YEAR = "year"


@dataclass(frozen=True)
class MonthlyTotals:
    month: str  # "YYYY-MM"
    income: Decimal
    expense: Decimal

    @property
    def label(self) -> str:
        year, month = self.month.split("-")
        return date(int(year), int(month), 1).strftime("%b %Y")


@dataclass(frozen=True)
class Summary:
    total_income: Decimal
    total_expenses: Decimal
    balance: Decimal


@dataclass(frozen=True)
class CategoryShare:
    category: str
    total: Decimal
    percent: Decimal


def time_range_cutoff(
    time_range: Union[TimeRange, str], now: Optional[Union[date, datetime]] = None
) -> Optional[datetime]:
    """
    Returns the earliest ``occurred_at`` kept by ``time_range``, or None for
    ``all``.

    The cutoff is midnight of the calendar date one month (or year) before
    ``now``. relativedelta clamps missing days, so 31 March goes back to the
    last day of February.
    """
    time_range = TimeRange(time_range)
    if time_range is TimeRange.ALL:
        return None
    if now is None:
        raise ValueError(f"time range {time_range.value!r} needs an explicit 'now'")

    today = now.date() if isinstance(now, datetime) else now
    if time_range is TimeRange.MONTH:
        start = today - relativedelta(months=1)
    else:
        start = today - relativedelta(years=1)
    return datetime(start.year, start.month, start.day)


def filter_by_time_range(
    transactions: Iterable[TransactionRecord],
    time_range: Union[TimeRange, str] = TimeRange.ALL,
    now: Optional[Union[date, datetime]] = None,
) -> List[TransactionRecord]:
    cutoff = time_range_cutoff(time_range, now)
    if cutoff is None:
        return list(transactions)
    return [t for t in transactions if t.occurred_at >= cutoff]


def sum_expenses(transactions: Iterable[TransactionRecord], category: str, window: Window) -> Decimal:
    """Total expense spent in ``category`` inside ``window`` (inclusive)."""
    total = ZERO
    for t in transactions:
        if t.kind is TransactionKind.EXPENSE and t.category == category and window.contains(t.occurred_at):
            total += t.amount
    return total


def group_by_category(
    transactions: Iterable[TransactionRecord],
    kind: Union[TransactionKind, str],
    time_range: Union[TimeRange, str] = TimeRange.ALL,
    now: Optional[Union[date, datetime]] = None,
) -> Dict[str, Decimal]:
    """Per-category totals for one kind. Categories without records are left out."""
    kind = TransactionKind(kind)
    totals: Dict[str, Decimal] = {}
    for t in filter_by_time_range(transactions, time_range, now):
        if t.kind is not kind:
            continue
        totals[t.category] = totals.get(t.category, ZERO) + t.amount
    return totals


def group_by_month(
    transactions: Iterable[TransactionRecord],
    time_range: Union[TimeRange, str] = TimeRange.ALL,
    now: Optional[Union[date, datetime]] = None,
) -> List[MonthlyTotals]:
    """
    Income and expense totals per calendar month, oldest month first.
    """
    buckets: Dict[tuple, Dict[TransactionKind, Decimal]] = {}
    for t in filter_by_time_range(transactions, time_range, now):
        key = (t.occurred_at.year, t.occurred_at.month)
        bucket = buckets.setdefault(key, {TransactionKind.INCOME: ZERO, TransactionKind.EXPENSE: ZERO})
        bucket[t.kind] += t.amount

    return [
        MonthlyTotals(
            month=f"{year}-{month:02d}",
            income=bucket[TransactionKind.INCOME],
            expense=bucket[TransactionKind.EXPENSE],
        )
        for (year, month), bucket in sorted(buckets.items())
    ]


def summarize(transactions: Iterable[TransactionRecord]) -> Summary:
    income = ZERO
    expenses = ZERO
    for t in transactions:
        if t.kind is TransactionKind.INCOME:
            income += t.amount
        else:
            expenses += t.amount
    return Summary(total_income=income, total_expenses=expenses, balance=income - expenses)


def category_shares(totals: Dict[str, Decimal]) -> List[CategoryShare]:
    """Each category's share of the grand total, as a percentage."""
    grand_total = sum(totals.values(), ZERO)
    shares = []
    for category, total in totals.items():
        percent = total / grand_total * 100 if grand_total > 0 else ZERO
        shares.append(CategoryShare(category=category, total=total, percent=percent))
    return shares
