import streamlit as st
import os
import time
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

import crud
from aggregation import TimeRange, group_by_category, group_by_month, summarize
from auth import authenticate, register_user
from budgets import budget_statuses
from dashboard import budget_frame, category_pie, income_vs_expense_bar, transactions_frame
from database import SessionLocal, init_db
from money import format_money, parse_money
from records import BudgetRecord, Period, TransactionKind, TransactionRecord

BUDGET_CATEGORIES = [
    "Food",
    "Transportation",
    "Shopping",
    "Bills",
    "Entertainment",
    "Healthcare",
    "Education",
    "Other",
]
CATEGORIES = BUDGET_CATEGORIES[:-1] + ["Salary", "Freelance", "Investment", "Other"]
TIME_RANGE_LABELS = {TimeRange.ALL: "All Time", TimeRange.MONTH: "Last Month", TimeRange.YEAR: "Last Year"}

# --- Configuration ---
st.set_page_config(page_title="Finance Tracker", layout="wide", page_icon="💰")

# --- Database Session ---
init_db()

if "db" not in st.session_state:
    st.session_state.db = SessionLocal()

def get_db():
    return st.session_state.db

# --- Authentication ---
def check_login():
    """Sign-in / sign-up screen. Returns True once a user is in session."""
    if "user_id" not in st.session_state:
        st.session_state["user_id"] = None
        st.session_state["username"] = None
        st.session_state["failed_attempts"] = []
        st.session_state["lock_until"] = None

    if st.session_state.get("user_id"):
        return True

    st.title("💰 Finance Tracker")
    st.caption("Track your income and expenses, manage budgets, and visualize your financial health.")

    sign_in, sign_up = st.tabs(["Sign In", "Get Started"])

    with sign_in:
        username = st.text_input("Username", key="login_user")
        password = st.text_input("Password", type="password", key="login_pass")

        now = time.time()
        lock_until = st.session_state.get("lock_until")
        if lock_until and now < lock_until:
            st.error(f"Too many failed attempts. Please wait {int(lock_until - now)} seconds before trying again.")
        elif st.button("Sign In", type="primary"):
            # Keep the last 5 minutes of failures
            st.session_state["failed_attempts"] = [t for t in st.session_state["failed_attempts"] if now - t < 300]

            user = authenticate(get_db(), username, password)
            if user:
                st.session_state["user_id"] = user.id
                st.session_state["username"] = user.username
                st.session_state["failed_attempts"] = []
                st.session_state["lock_until"] = None
                st.rerun()
            else:
                st.session_state["failed_attempts"].append(now)
                st.error("❌ Invalid credentials")
                print(f"Failed login attempt for user {username} at {time.strftime('%Y-%m-%d %H:%M:%S')}")

                if len(st.session_state["failed_attempts"]) >= 5:
                    st.session_state["lock_until"] = now + 60
                    st.warning("Too many failed attempts. Login temporarily locked for 60 seconds.")

        if os.getenv("SHOW_DEMO_CREDENTIALS", "false").lower() == "true":
            st.caption("Demo login: **demo** / **demo123** (run `python seed_db.py` first)")

    with sign_up:
        with st.form("sign_up"):
            new_user = st.text_input("Choose a username")
            new_pass = st.text_input("Choose a password", type="password")
            if st.form_submit_button("Create Account"):
                try:
                    user = register_user(get_db(), new_user, new_pass)
                except ValueError as exc:
                    st.error(str(exc))
                else:
                    st.session_state["user_id"] = user.id
                    st.session_state["username"] = user.username
                    st.rerun()

    return False

if not check_login():
    st.stop()

user_id = st.session_state["user_id"]

# --- Data Loading ---
def load_snapshot():
    """
    Fetches the user's transactions and budgets. On failure the previous
    snapshot stays on screen.
    """
    db = get_db()
    try:
        transactions = [TransactionRecord.from_row(t) for t in crud.list_transactions(db, user_id)]
        budgets = [BudgetRecord.from_row(b) for b in crud.list_budgets(db, user_id)]
    except SQLAlchemyError as exc:
        db.rollback()
        st.error(f"Could not load your data: {exc}")
        return st.session_state.get("snapshot", ([], []))

    st.session_state["snapshot"] = (transactions, budgets)
    return transactions, budgets

def run_write(action, label):
    db = get_db()
    try:
        action(db)
    except SQLAlchemyError as exc:
        db.rollback()
        st.error(f"Failed to {label}: {exc}")
        return False
    return True

transactions, budgets = load_snapshot()
now = datetime.now()

# --- Main App ---
with st.sidebar:
    st.header(f"👤 {st.session_state.get('username')}")
    if st.button("Sign Out"):
        for key in ("user_id", "username", "snapshot"):
            st.session_state.pop(key, None)
        st.rerun()

st.title("💰 Finance Tracker")

tab1, tab2, tab3 = st.tabs(["📊 Dashboard", "🎯 Budgets", "📈 Charts"])

with tab1:
    totals = summarize(transactions)
    col1, col2, col3 = st.columns(3)
    col1.metric("💰 Total Income", f"${format_money(totals.total_income)}")
    col2.metric("💸 Total Expenses", f"${format_money(totals.total_expenses)}")
    col3.metric("📊 Balance", f"${format_money(totals.balance)}")

    with st.expander("➕ Add Transaction"):
        with st.form("add_transaction", clear_on_submit=True):
            kind = st.radio("Type", [k.value for k in TransactionKind], horizontal=True, format_func=str.title)
            category = st.selectbox("Category", CATEGORIES)
            amount = st.text_input("Amount ($)", placeholder="0.00")
            description = st.text_input("Description (optional)")
            when = st.date_input("Date", value=now.date())

            if st.form_submit_button("Add Transaction"):
                try:
                    value = parse_money(amount)
                except ValueError as exc:
                    st.error(str(exc))
                else:
                    occurred = datetime(when.year, when.month, when.day)
                    saved = run_write(
                        lambda db: crud.create_transaction(
                            db, user_id, kind=TransactionKind(kind), amount=value,
                            category=category, description=description, occurred_at=occurred,
                        ),
                        "create transaction",
                    )
                    if saved:
                        st.rerun()

    st.subheader("Recent Transactions")
    df = transactions_frame(transactions)
    if df.empty:
        st.info("No transactions yet. Add your first transaction above!")
    else:
        st.dataframe(df.drop(columns=["ID"]), use_container_width=True, hide_index=True)

        labels = {
            row["ID"]: f"{row['Date']:%b %d, %Y} • {row['Category']} • ${row['Amount']}"
            for _, row in df.iterrows()
        }
        to_delete = st.selectbox("Select to Delete", list(labels), format_func=labels.get, key="del_txn")
        if st.button("Delete Transaction"):
            if run_write(lambda db: crud.delete_transaction(db, user_id, to_delete), "delete transaction"):
                st.rerun()

with tab2:
    st.subheader("🎯 Budget Management")

    with st.expander("➕ Add Budget"):
        with st.form("add_budget", clear_on_submit=True):
            category = st.selectbox("Category", BUDGET_CATEGORIES)
            amount = st.text_input("Budget Amount ($)", placeholder="0.00")
            period = st.selectbox("Period", [p.value for p in Period], index=1, format_func=str.title)

            if st.form_submit_button("Save Budget"):
                try:
                    value = parse_money(amount)
                except ValueError as exc:
                    st.error(str(exc))
                else:
                    if run_write(
                        lambda db: crud.create_budget(db, user_id, category=category, amount=value, period=Period(period)),
                        "create budget",
                    ):
                        st.rerun()

    pairs = budget_statuses(budgets, transactions, now)
    if not pairs:
        st.info("No budgets configured yet.")
    else:
        for budget, status in pairs:
            label = "Over budget" if status.is_over_budget else "On track"
            st.markdown(
                f"**{budget.category}** ({budget.period.value}): "
                f"${format_money(status.spent)} / ${format_money(budget.amount)} ({label})"
            )
            st.progress(
                float(status.percentage_used) / 100,
                text=f"Spent ${format_money(status.spent)} • Remaining ${format_money(status.remaining)}",
            )
            if status.is_over_budget:
                st.error(f"Over by ${format_money(-status.remaining)}. Consider pausing discretionary spend here.")

        st.dataframe(budget_frame(pairs), use_container_width=True, hide_index=True)

        names = {b.id: f"{b.category} ({b.period.value})" for b in budgets}
        to_delete = st.selectbox("Select to Delete", list(names), format_func=names.get, key="del_budget")
        if st.button("Delete Budget"):
            if run_write(lambda db: crud.delete_budget(db, user_id, to_delete), "delete budget"):
                st.rerun()

with tab3:
    time_range = st.radio(
        "Time Range", list(TIME_RANGE_LABELS), format_func=TIME_RANGE_LABELS.get, horizontal=True
    )

    col1, col2 = st.columns(2)
    with col1:
        expenses = group_by_category(transactions, TransactionKind.EXPENSE, time_range, now)
        st.plotly_chart(category_pie(expenses, "Expenses by Category"), use_container_width=True)
    with col2:
        income = group_by_category(transactions, TransactionKind.INCOME, time_range, now)
        st.plotly_chart(category_pie(income, "Income by Category"), use_container_width=True)

    st.plotly_chart(income_vs_expense_bar(group_by_month(transactions, time_range, now)), use_container_width=True)
