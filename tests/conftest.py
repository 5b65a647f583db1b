from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api import app
from auth import register_user
from database import Base, get_db
from records import TransactionKind, TransactionRecord


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alice(db):
    return register_user(db, "alice", "s3cret")


@pytest.fixture
def bob(db):
    return register_user(db, "bob", "hunter2")


ALICE_AUTH = ("alice", "s3cret")
BOB_AUTH = ("bob", "hunter2")


def txn(kind, amount, category, occurred_at, id="t"):
    """Shorthand for building a TransactionRecord in tests."""
    return TransactionRecord(
        id=id,
        kind=TransactionKind(kind),
        amount=Decimal(amount),
        category=category,
        occurred_at=occurred_at if isinstance(occurred_at, datetime) else datetime.fromisoformat(occurred_at),
    )
