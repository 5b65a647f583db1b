"""HTTP API for transactions, budgets and the aggregates built on them."""

import logging
import os
from contextlib import asynccontextmanager, contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

import crud
from aggregation import TimeRange, category_shares, group_by_category, group_by_month, summarize
from auth import authenticate
from budgets import budget_statuses
from database import Budget, Transaction, get_db, init_db
from money import format_money, parse_money
from records import BudgetRecord, Period, TransactionKind, TransactionRecord

logger = logging.getLogger(__name__)


def _parse_datetime(value):
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    return value


def _to_local_naive(value: datetime) -> datetime:
    # Everything is stored in naive server-local time.
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


Money = Annotated[Decimal, BeforeValidator(parse_money)]
LocalDateTime = Annotated[datetime, BeforeValidator(_parse_datetime), AfterValidator(_to_local_naive)]
Category = Annotated[str, Field(min_length=1, max_length=100)]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title="Finance Tracker API", version="0.1.0", lifespan=lifespan)
security = HTTPBasic(auto_error=False)


# --- Error handling ---

@app.exception_handler(StarletteHTTPException)
async def http_error(request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        path = [str(p) for p in err["loc"] if p not in ("body", "query", "path")]
        messages.append(f"{'.'.join(path) or 'root'}: {err['msg']}")
    return JSONResponse({"error": f"Validation error: {', '.join(messages)}"}, status_code=400)


@contextmanager
def db_errors(db: Session, action: str):
    try:
        yield
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to %s", action)
        raise HTTPException(status_code=500, detail=f"Failed to {action}")


def current_user_id(
    credentials: Optional[HTTPBasicCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> str:
    user = authenticate(db, credentials.username, credentials.password) if credentials else None
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized", headers={"WWW-Authenticate": "Basic"})
    return user.id


def _as_of(value: Optional[datetime]) -> datetime:
    return _to_local_naive(value) if value is not None else datetime.now()


# --- Schemas ---

class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransactionCreate(BaseModel):
    type: TransactionKind
    amount: Money
    category: Category
    description: Optional[str] = None
    date: LocalDateTime


class TransactionUpdate(BaseModel):
    type: Optional[TransactionKind] = None
    amount: Optional[Money] = None
    category: Optional[Category] = None
    description: Optional[str] = None
    date: Optional[LocalDateTime] = None


class TransactionOut(ApiModel):
    id: str
    user_id: str
    type: TransactionKind
    amount: str
    category: str
    description: Optional[str]
    date: datetime
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, t: Transaction) -> "TransactionOut":
        return cls(
            id=t.id,
            user_id=t.user_id,
            type=t.kind,
            amount=format_money(t.amount),
            category=t.category,
            description=t.description,
            date=t.occurred_at,
            created_at=t.created_at,
            updated_at=t.updated_at,
        )


class BudgetCreate(BaseModel):
    category: Category
    amount: Money
    period: Period = Period.MONTHLY


class BudgetUpdate(BaseModel):
    category: Optional[Category] = None
    amount: Optional[Money] = None
    period: Optional[Period] = None


class BudgetOut(ApiModel):
    id: str
    user_id: str
    category: str
    amount: str
    period: Period
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, b: Budget) -> "BudgetOut":
        return cls(
            id=b.id,
            user_id=b.user_id,
            category=b.category,
            amount=format_money(b.amount),
            period=b.period,
            created_at=b.created_at,
            updated_at=b.updated_at,
        )


class BudgetStatusOut(ApiModel):
    id: str
    category: str
    amount: str
    period: Period
    spent: str
    remaining: str
    percentage_used: float
    is_over_budget: bool


class SummaryOut(ApiModel):
    total_income: str
    total_expenses: str
    balance: str


class CategorySlice(ApiModel):
    name: str
    value: str
    percent: float


class MonthBar(ApiModel):
    month: str
    label: str
    income: str
    expense: str


class ChartsOut(ApiModel):
    expense_by_category: List[CategorySlice]
    income_by_category: List[CategorySlice]
    monthly: List[MonthBar]


def _load_records(db: Session, user_id: str) -> List[TransactionRecord]:
    with db_errors(db, "fetch transactions"):
        rows = crud.list_transactions(db, user_id)
    return [TransactionRecord.from_row(t) for t in rows]


def _slices(totals) -> List[CategorySlice]:
    return [
        CategorySlice(name=s.category, value=format_money(s.total), percent=round(float(s.percent), 2))
        for s in category_shares(totals)
    ]


# --- Transactions ---

@app.get("/api/transactions", response_model=List[TransactionOut])
def list_transactions(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    with db_errors(db, "fetch transactions"):
        rows = crud.list_transactions(db, user_id)
    return [TransactionOut.from_row(t) for t in rows]


@app.post("/api/transactions", response_model=TransactionOut, status_code=201)
def create_transaction(
    req: TransactionCreate, user_id: str = Depends(current_user_id), db: Session = Depends(get_db)
):
    with db_errors(db, "create transaction"):
        txn = crud.create_transaction(
            db,
            user_id,
            kind=req.type,
            amount=req.amount,
            category=req.category,
            description=req.description,
            occurred_at=req.date,
        )
    return TransactionOut.from_row(txn)


@app.patch("/api/transactions/{transaction_id}", response_model=TransactionOut)
def update_transaction(
    transaction_id: str,
    req: TransactionUpdate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    changes = {}
    if req.type is not None:
        changes["kind"] = req.type
    if req.amount is not None:
        changes["amount"] = req.amount
    if req.category is not None:
        changes["category"] = req.category
    if "description" in req.model_fields_set:
        changes["description"] = req.description
    if req.date is not None:
        changes["occurred_at"] = req.date

    with db_errors(db, "update transaction"):
        txn = crud.update_transaction(db, user_id, transaction_id, changes)
    if txn is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionOut.from_row(txn)


@app.delete("/api/transactions/{transaction_id}")
def delete_transaction(transaction_id: str, user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    with db_errors(db, "delete transaction"):
        crud.delete_transaction(db, user_id, transaction_id)
    return {"success": True}


# --- Budgets ---

@app.get("/api/budgets", response_model=List[BudgetOut])
def list_budgets(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    with db_errors(db, "fetch budgets"):
        rows = crud.list_budgets(db, user_id)
    return [BudgetOut.from_row(b) for b in rows]


@app.post("/api/budgets", response_model=BudgetOut, status_code=201)
def create_budget(req: BudgetCreate, user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    with db_errors(db, "create budget"):
        budget = crud.create_budget(db, user_id, category=req.category, amount=req.amount, period=req.period)
    return BudgetOut.from_row(budget)


@app.patch("/api/budgets/{budget_id}", response_model=BudgetOut)
def update_budget(
    budget_id: str,
    req: BudgetUpdate,
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    changes = {k: v for k, v in req.model_dump().items() if v is not None}
    with db_errors(db, "update budget"):
        budget = crud.update_budget(db, user_id, budget_id, changes)
    if budget is None:
        raise HTTPException(status_code=404, detail="Budget not found")
    return BudgetOut.from_row(budget)


@app.delete("/api/budgets/{budget_id}")
def delete_budget(budget_id: str, user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    with db_errors(db, "delete budget"):
        crud.delete_budget(db, user_id, budget_id)
    return {"success": True}


@app.get("/api/budgets/status", response_model=List[BudgetStatusOut])
def budget_status(
    as_of: Optional[datetime] = Query(None, alias="asOf"),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    now = _as_of(as_of)
    with db_errors(db, "fetch budgets"):
        budgets = [BudgetRecord.from_row(b) for b in crud.list_budgets(db, user_id)]
    records = _load_records(db, user_id)

    return [
        BudgetStatusOut(
            id=b.id,
            category=b.category,
            amount=format_money(b.amount),
            period=b.period,
            spent=format_money(status.spent),
            remaining=format_money(status.remaining),
            percentage_used=round(float(status.percentage_used), 2),
            is_over_budget=status.is_over_budget,
        )
        for b, status in budget_statuses(budgets, records, now)
    ]


# --- Aggregates ---

@app.get("/api/summary", response_model=SummaryOut)
def summary(user_id: str = Depends(current_user_id), db: Session = Depends(get_db)):
    totals = summarize(_load_records(db, user_id))
    return SummaryOut(
        total_income=format_money(totals.total_income),
        total_expenses=format_money(totals.total_expenses),
        balance=format_money(totals.balance),
    )


@app.get("/api/charts", response_model=ChartsOut)
def charts(
    time_range: TimeRange = Query(TimeRange.ALL, alias="timeRange"),
    as_of: Optional[datetime] = Query(None, alias="asOf"),
    user_id: str = Depends(current_user_id),
    db: Session = Depends(get_db),
):
    now = _as_of(as_of)
    records = _load_records(db, user_id)

    expense_totals = group_by_category(records, TransactionKind.EXPENSE, time_range, now)
    income_totals = group_by_category(records, TransactionKind.INCOME, time_range, now)
    monthly = group_by_month(records, time_range, now)

    return ChartsOut(
        expense_by_category=_slices(expense_totals),
        income_by_category=_slices(income_totals),
        monthly=[
            MonthBar(month=m.month, label=m.label, income=format_money(m.income), expense=format_money(m.expense))
            for m in monthly
        ],
    )


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=True,
    )
