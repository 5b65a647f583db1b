"""Owner-scoped reads and writes for transactions and budgets.

Every query filters on ``user_id``; a record owned by someone else behaves
exactly like a missing one.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from database import Budget, Transaction
from records import Period, TransactionKind

TRANSACTION_FIELDS = ("kind", "amount", "category", "description", "occurred_at")
BUDGET_FIELDS = ("category", "amount", "period")


def _apply_changes(row, changes: Dict[str, Any], allowed) -> None:
    for field, value in changes.items():
        if field not in allowed:
            raise ValueError(f"Unknown field: {field}")
        if field == "kind":
            value = TransactionKind(value)
        elif field == "period":
            value = Period(value).value
        setattr(row, field, value)
    row.updated_at = datetime.now()


# --- Transactions ---

def list_transactions(db: Session, user_id: str) -> List[Transaction]:
    return (
        db.query(Transaction)
        .filter(Transaction.user_id == user_id)
        .order_by(Transaction.occurred_at.desc())
        .all()
    )


def get_transaction(db: Session, user_id: str, transaction_id: str) -> Optional[Transaction]:
    return (
        db.query(Transaction)
        .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)
        .first()
    )


def create_transaction(
    db: Session,
    user_id: str,
    kind: TransactionKind,
    amount: Decimal,
    category: str,
    occurred_at: datetime,
    description: Optional[str] = None,
) -> Transaction:
    txn = Transaction(
        user_id=user_id,
        kind=TransactionKind(kind),
        amount=amount,
        category=category,
        description=description or None,
        occurred_at=occurred_at,
    )
    db.add(txn)
    db.commit()
    db.refresh(txn)
    return txn


def update_transaction(
    db: Session, user_id: str, transaction_id: str, changes: Dict[str, Any]
) -> Optional[Transaction]:
    txn = get_transaction(db, user_id, transaction_id)
    if txn is None:
        return None
    if "description" in changes:
        changes = {**changes, "description": changes["description"] or None}
    _apply_changes(txn, changes, TRANSACTION_FIELDS)
    db.commit()
    db.refresh(txn)
    return txn


def delete_transaction(db: Session, user_id: str, transaction_id: str) -> int:
    deleted = (
        db.query(Transaction)
        .filter(Transaction.id == transaction_id, Transaction.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted


# --- Budgets ---

def list_budgets(db: Session, user_id: str) -> List[Budget]:
    return db.query(Budget).filter(Budget.user_id == user_id).order_by(Budget.created_at).all()


def get_budget(db: Session, user_id: str, budget_id: str) -> Optional[Budget]:
    return db.query(Budget).filter(Budget.id == budget_id, Budget.user_id == user_id).first()


def create_budget(
    db: Session,
    user_id: str,
    category: str,
    amount: Decimal,
    period: Period = Period.MONTHLY,
) -> Budget:
    budget = Budget(user_id=user_id, category=category, amount=amount, period=Period(period).value)
    db.add(budget)
    db.commit()
    db.refresh(budget)
    return budget


def update_budget(db: Session, user_id: str, budget_id: str, changes: Dict[str, Any]) -> Optional[Budget]:
    budget = get_budget(db, user_id, budget_id)
    if budget is None:
        return None
    _apply_changes(budget, changes, BUDGET_FIELDS)
    db.commit()
    db.refresh(budget)
    return budget


def delete_budget(db: Session, user_id: str, budget_id: str) -> int:
    deleted = (
        db.query(Budget)
        .filter(Budget.id == budget_id, Budget.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return deleted
