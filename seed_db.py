from datetime import datetime, timedelta
from decimal import Decimal

import crud
from auth import register_user
from database import init_db, SessionLocal, User
from records import Period, TransactionKind

DEMO_USERNAME = "demo"
DEMO_PASSWORD = "demo123"


def seed_demo(db, now=None):
    """
    Creates the demo user with a few weeks of sample activity and two budgets.
    Returns the user, or None if it already exists.
    """
    if db.query(User).filter(User.username == DEMO_USERNAME).first():
        return None

    now = now or datetime.now()
    user = register_user(db, DEMO_USERNAME, DEMO_PASSWORD)

    samples = [
        (TransactionKind.INCOME, "3200.00", "Salary", "Monthly salary", 20),
        (TransactionKind.INCOME, "450.00", "Freelance", "Logo design", 9),
        (TransactionKind.EXPENSE, "1200.00", "Bills", "Rent", 19),
        (TransactionKind.EXPENSE, "84.37", "Food", "Groceries", 6),
        (TransactionKind.EXPENSE, "23.50", "Food", "Lunch", 2),
        (TransactionKind.EXPENSE, "45.00", "Transportation", "Fuel", 4),
        (TransactionKind.EXPENSE, "15.99", "Entertainment", "Streaming", 11),
    ]
    for kind, amount, category, description, days_ago in samples:
        crud.create_transaction(
            db,
            user.id,
            kind=kind,
            amount=Decimal(amount),
            category=category,
            description=description,
            occurred_at=now - timedelta(days=days_ago),
        )

    crud.create_budget(db, user.id, category="Food", amount=Decimal("400.00"), period=Period.MONTHLY)
    crud.create_budget(db, user.id, category="Entertainment", amount=Decimal("50.00"), period=Period.WEEKLY)
    return user


def seed_users():
    init_db()
    db = SessionLocal()
    try:
        if seed_demo(db) is None:
            print("Demo user already exists. Skipping seed.")
        else:
            print(f"Database initialized with demo user '{DEMO_USERNAME}'.")
    finally:
        db.close()


if __name__ == "__main__":
    seed_users()
