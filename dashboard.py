# dashboard.py: table frames and plotly figures built from the aggregates

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from aggregation import MonthlyTotals, category_shares
from budgets import BudgetStatus
from money import format_money
from records import BudgetRecord, TransactionRecord

TRANSACTION_COLUMNS = ["Date", "Type", "Category", "Description", "Amount", "ID"]


def transactions_frame(records: Iterable[TransactionRecord]) -> pd.DataFrame:
    """
    Flattens transaction records into a display frame, newest first.
    Amounts are kept as 2-decimal strings so nothing is rounded twice.
    """
    rows = [{
        "Date": t.occurred_at,
        "Type": t.kind.value.title(),
        "Category": t.category,
        "Description": t.description or "",
        "Amount": format_money(t.amount),
        "ID": t.id,
    } for t in records]

    if not rows:
        return pd.DataFrame(columns=TRANSACTION_COLUMNS)

    df = pd.DataFrame(rows, columns=TRANSACTION_COLUMNS)
    df["Date"] = pd.to_datetime(df["Date"])
    return df.sort_values("Date", ascending=False).reset_index(drop=True)


def budget_frame(pairs: Iterable[Tuple[BudgetRecord, BudgetStatus]]) -> pd.DataFrame:
    rows = [{
        "Category": b.category,
        "Period": b.period.value.title(),
        "Budget": format_money(b.amount),
        "Spent": format_money(s.spent),
        "Remaining": format_money(s.remaining),
        "Used %": round(float(s.percentage_used), 1),
        "Over Budget": s.is_over_budget,
    } for b, s in pairs]
    return pd.DataFrame(rows, columns=["Category", "Period", "Budget", "Spent", "Remaining", "Used %", "Over Budget"])


def _empty_figure(title: str) -> go.Figure:
    fig = go.Figure()
    fig.add_annotation(text="No data", showarrow=False, x=0.5, y=0.5, xref="paper", yref="paper")
    fig.update_layout(title=title, xaxis_visible=False, yaxis_visible=False, height=400)
    return fig


def category_pie(totals: Dict[str, Decimal], title: str) -> go.Figure:
    """
    Donut chart of per-category totals.
    """
    if not totals:
        return _empty_figure(title)

    by_cat = pd.DataFrame([
        {"Category": s.category, "Amount": float(s.total), "Share": f"{float(s.percent):.1f}%"}
        for s in category_shares(totals)
    ])

    fig = px.pie(by_cat, values="Amount", names="Category", hole=0.4, title=title, hover_data=["Share"])
    fig.update_traces(textposition="inside", textinfo="percent+label")
    fig.update_layout(height=400)
    return fig


def income_vs_expense_bar(monthly: List[MonthlyTotals]) -> go.Figure:
    """
    Bar chart of Income vs Expenses per month.
    """
    title = "Income vs Expenses Trend"
    if not monthly:
        return _empty_figure(title)

    labels = [m.label for m in monthly]
    fig = go.Figure()
    fig.add_trace(go.Bar(x=labels, y=[float(m.income) for m in monthly], name="Income", marker_color="#4CAF50"))
    fig.add_trace(go.Bar(x=labels, y=[float(m.expense) for m in monthly], name="Expenses", marker_color="#FF5252"))

    fig.update_layout(barmode="group", title=title, height=400)
    return fig
