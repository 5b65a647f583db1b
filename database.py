import os
import re
import uuid
from datetime import datetime
from sqlalchemy import create_engine, Column, String, Text, Numeric, DateTime, Enum
from sqlalchemy.orm import sessionmaker, declarative_base
from dotenv import load_dotenv

from records import Period, TransactionKind

# Load environment variables
load_dotenv()


def clean_database_url(raw: str) -> str:
    """
    Strips what people tend to paste along with a connection string: a
    leading ``psql`` command and surrounding quotes.
    """
    url = raw.strip()
    url = re.sub(r"^psql\s+", "", url)
    return re.sub(r"^['\"]+|['\"]+$", "", url)


# Database Setup
# Default to local SQLite, but allow override for a hosted Postgres
DB_URL = clean_database_url(os.getenv("DATABASE_URL", "sqlite:///finance_tracker.db"))

engine = create_engine(DB_URL, connect_args={"check_same_thread": False} if "sqlite" in DB_URL else {})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def _new_id():
    return str(uuid.uuid4())


# --- Models ---

class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)
    username = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)  # bcrypt hash, never plain text
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    kind = Column(
        "type",
        Enum(TransactionKind, name="transaction_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    amount = Column(Numeric(10, 2), nullable=False)
    category = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    occurred_at = Column("date", DateTime, nullable=False, default=datetime.now)

    # Bookkeeping
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)


class Budget(Base):
    __tablename__ = "budgets"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    period = Column(String(20), nullable=False, default=Period.MONTHLY.value)  # weekly, monthly, yearly

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now)


# --- Init DB ---
def init_db(bind=None):
    Base.metadata.create_all(bind=bind or engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
