from unittest import mock

import pytest
from sqlalchemy.exc import OperationalError

from conftest import ALICE_AUTH, BOB_AUTH


@pytest.fixture
def users(alice, bob):
    return alice, bob


def post_txn(client, auth=ALICE_AUTH, **overrides):
    body = {"type": "expense", "amount": "40.00", "category": "Food", "date": "2026-10-02"}
    body.update(overrides)
    return client.post("/api/transactions", json=body, auth=auth)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


@pytest.mark.parametrize("path", ["/api/transactions", "/api/budgets", "/api/summary", "/api/charts"])
def test_requires_credentials(client, users, path):
    assert client.get(path).status_code == 401
    res = client.get(path, auth=("alice", "wrong"))
    assert res.status_code == 401
    assert res.json() == {"error": "Unauthorized"}


def test_create_and_list_transactions(client, users):
    res = post_txn(client, description="Groceries")
    assert res.status_code == 201
    created = res.json()
    assert created["amount"] == "40.00"
    assert created["type"] == "expense"
    assert created["date"].startswith("2026-10-02T00:00:00")
    assert created["userId"] == users[0].id
    assert "createdAt" in created and "updatedAt" in created

    listed = client.get("/api/transactions", auth=ALICE_AUTH).json()
    assert [t["id"] for t in listed] == [created["id"]]
    assert client.get("/api/transactions", auth=BOB_AUTH).json() == []


def test_create_transaction_validation_error(client, users):
    res = post_txn(client, amount="abc", category="")
    assert res.status_code == 400
    error = res.json()["error"]
    assert error.startswith("Validation error: ")
    assert "amount" in error and "category" in error


def test_negative_amount_is_rejected(client, users):
    assert post_txn(client, amount="-1.00").status_code == 400


@pytest.mark.parametrize("amount", ["1e30", "9" * 40])
def test_oversized_amount_is_a_validation_error(client, users, amount):
    res = post_txn(client, amount=amount)
    assert res.status_code == 400
    assert res.json()["error"].startswith("Validation error: amount: ")

    res = client.post("/api/budgets", json={"category": "Food", "amount": amount}, auth=ALICE_AUTH)
    assert res.status_code == 400
    assert res.json()["error"].startswith("Validation error: amount: ")


def test_patch_transaction(client, users):
    created = post_txn(client).json()
    res = client.patch(
        f"/api/transactions/{created['id']}",
        json={"amount": "12.5", "description": "Lunch"},
        auth=ALICE_AUTH,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["amount"] == "12.50"
    assert body["description"] == "Lunch"
    assert body["category"] == "Food"


def test_patch_other_users_transaction_is_not_found(client, users):
    created = post_txn(client).json()
    res = client.patch(f"/api/transactions/{created['id']}", json={"amount": "1"}, auth=BOB_AUTH)
    assert res.status_code == 404
    assert res.json() == {"error": "Transaction not found"}


def test_delete_transaction(client, users):
    created = post_txn(client).json()
    res = client.delete(f"/api/transactions/{created['id']}", auth=ALICE_AUTH)
    assert res.json() == {"success": True}
    assert client.get("/api/transactions", auth=ALICE_AUTH).json() == []


def test_budget_crud(client, users):
    res = client.post("/api/budgets", json={"category": "Food", "amount": "100"}, auth=ALICE_AUTH)
    assert res.status_code == 201
    budget = res.json()
    assert budget["period"] == "monthly"
    assert budget["amount"] == "100.00"

    res = client.patch(f"/api/budgets/{budget['id']}", json={"period": "weekly"}, auth=ALICE_AUTH)
    assert res.json()["period"] == "weekly"
    assert res.json()["amount"] == "100.00"

    assert client.patch(f"/api/budgets/{budget['id']}", json={"period": "daily"}, auth=ALICE_AUTH).status_code == 400
    assert client.patch("/api/budgets/missing", json={"amount": "1"}, auth=ALICE_AUTH).json() == {
        "error": "Budget not found"
    }

    assert client.delete(f"/api/budgets/{budget['id']}", auth=ALICE_AUTH).json() == {"success": True}
    assert client.get("/api/budgets", auth=ALICE_AUTH).json() == []


def test_budget_status(client, users):
    client.post("/api/budgets", json={"category": "Food", "amount": "100.00"}, auth=ALICE_AUTH)
    post_txn(client, amount="40.00", date="2026-10-02")
    post_txn(client, amount="70.00", date="2026-10-12T19:00:00")
    post_txn(client, amount="10.00", date="2026-09-20")

    res = client.get("/api/budgets/status", params={"asOf": "2026-10-14T12:00:00"}, auth=ALICE_AUTH)
    assert res.status_code == 200
    [status] = res.json()
    assert status["category"] == "Food"
    assert status["spent"] == "110.00"
    assert status["remaining"] == "-10.00"
    assert status["percentageUsed"] == 100.0
    assert status["isOverBudget"] is True


def test_summary(client, users):
    post_txn(client, type="income", amount="1000.00", category="Salary")
    post_txn(client, amount="250.25")
    assert client.get("/api/summary", auth=ALICE_AUTH).json() == {
        "totalIncome": "1000.00",
        "totalExpenses": "250.25",
        "balance": "749.75",
    }


def test_charts(client, users):
    post_txn(client, type="income", amount="1000.00", category="Salary", date="2026-01-10")
    post_txn(client, amount="30.00", category="Food", date="2026-02-10")
    post_txn(client, amount="10.00", category="Bills", date="2026-02-11")

    body = client.get("/api/charts", params={"asOf": "2026-02-15T12:00:00"}, auth=ALICE_AUTH).json()
    assert body["incomeByCategory"] == [{"name": "Salary", "value": "1000.00", "percent": 100.0}]
    assert sorted((s["name"], s["value"], s["percent"]) for s in body["expenseByCategory"]) == [
        ("Bills", "10.00", 25.0),
        ("Food", "30.00", 75.0),
    ]
    assert body["monthly"] == [
        {"month": "2026-01", "label": "Jan 2026", "income": "1000.00", "expense": "0.00"},
        {"month": "2026-02", "label": "Feb 2026", "income": "0.00", "expense": "40.00"},
    ]

    recent = client.get(
        "/api/charts", params={"timeRange": "month", "asOf": "2026-02-15T12:00:00"}, auth=ALICE_AUTH
    ).json()
    assert recent["incomeByCategory"] == []
    assert [m["month"] for m in recent["monthly"]] == ["2026-02"]


def test_charts_rejects_unknown_time_range(client, users):
    res = client.get("/api/charts", params={"timeRange": "decade"}, auth=ALICE_AUTH)
    assert res.status_code == 400
    assert res.json()["error"].startswith("Validation error: timeRange")


def test_database_failure_returns_500(client, users):
    with mock.patch("crud.list_transactions", side_effect=OperationalError("SELECT", {}, Exception("down"))):
        res = client.get("/api/transactions", auth=ALICE_AUTH)
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to fetch transactions"}
