"""Immutable value records handed to the aggregation core.

ORM rows from ``database.py`` and plain dicts (API payloads, fixtures) are
both converted through ``from_row`` so that amounts are always ``Decimal``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from money import parse_money


class TransactionKind(str, enum.Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Period(str, enum.Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


def _field(row: Any, name: str, default: Any = None) -> Any:
    if isinstance(row, dict):
        return row.get(name, default)
    return getattr(row, name, default)


def _to_datetime(value: Any) -> datetime:
    if not isinstance(value, datetime):
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        value = datetime.fromisoformat(str(value))
    # Offsets are folded into naive server-local time.
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    kind: TransactionKind
    amount: Decimal
    category: str
    occurred_at: datetime
    description: Optional[str] = None
    owner_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "TransactionRecord":
        kind = _field(row, "kind") or _field(row, "type")
        occurred = _field(row, "occurred_at") or _field(row, "date")
        return cls(
            id=str(_field(row, "id", "")),
            kind=TransactionKind(kind),
            amount=parse_money(_field(row, "amount")),
            category=_field(row, "category"),
            occurred_at=_to_datetime(occurred),
            description=_field(row, "description"),
            owner_id=_field(row, "user_id"),
        )


@dataclass(frozen=True)
class BudgetRecord:
    id: str
    category: str
    amount: Decimal
    period: Period = Period.MONTHLY
    owner_id: Optional[str] = None

    @classmethod
    def from_row(cls, row: Any) -> "BudgetRecord":
        return cls(
            id=str(_field(row, "id", "")),
            category=_field(row, "category"),
            amount=parse_money(_field(row, "amount")),
            period=Period(_field(row, "period") or Period.MONTHLY),
            owner_id=_field(row, "user_id"),
        )
