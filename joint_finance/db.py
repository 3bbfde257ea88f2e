from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from dataclasses import fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

import pandas as pd

from .analytics import FRAME_COLUMNS
from .config import DB_PATH, ensure_data_directories
from .models import Account, Budget, Debt, Goal, Transaction

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
PRAGMA foreign_keys=ON;

CREATE TABLE IF NOT EXISTS accounts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    opening_balance REAL NOT NULL DEFAULT 0,
    currency TEXT NOT NULL,
    ownership TEXT NOT NULL DEFAULT 'individual',
    owner_id TEXT NOT NULL DEFAULT '',
    credit_limit REAL,
    created_at TEXT
);

CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    transaction_date TEXT NOT NULL,
    description TEXT,
    amount REAL NOT NULL,
    category TEXT,
    type TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'actual',
    currency TEXT NOT NULL,
    user_id TEXT NOT NULL DEFAULT '',
    account_id INTEGER REFERENCES accounts (id) ON DELETE SET NULL,
    is_joint INTEGER NOT NULL DEFAULT 0,
    is_reimbursable INTEGER NOT NULL DEFAULT 0,
    reimbursement_status TEXT NOT NULL DEFAULT 'not_reimbursable',
    reimbursement_amount REAL,
    reimbursement_date TEXT,
    linked_reimbursement_id INTEGER,
    original_expense_id INTEGER,
    recurring_id INTEGER,
    notes TEXT,
    created_at TEXT
);

CREATE INDEX IF NOT EXISTS ix_txn_date ON transactions (transaction_date);
CREATE INDEX IF NOT EXISTS ix_txn_category ON transactions (category);
CREATE INDEX IF NOT EXISTS ix_txn_user ON transactions (user_id);

CREATE TABLE IF NOT EXISTS budgets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    category TEXT NOT NULL,
    amount REAL NOT NULL,
    period TEXT NOT NULL,
    user_id TEXT NOT NULL DEFAULT '',
    starting_balance REAL NOT NULL DEFAULT 0,
    alert_threshold REAL NOT NULL DEFAULT 80,
    is_active INTEGER NOT NULL DEFAULT 1,
    UNIQUE (user_id, category, period)
);

CREATE TABLE IF NOT EXISTS debts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    total_amount REAL NOT NULL,
    remaining_amount REAL NOT NULL,
    interest_rate REAL NOT NULL DEFAULT 0,
    minimum_payment REAL NOT NULL DEFAULT 0,
    due_date TEXT,
    user_id TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS goals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    target_amount REAL NOT NULL,
    current_amount REAL NOT NULL DEFAULT 0,
    target_date TEXT,
    priority TEXT NOT NULL DEFAULT 'medium',
    user_id TEXT NOT NULL DEFAULT ''
);
"""

# Transaction dataclass field -> transactions table column
TRANSACTION_COLUMNS = {
    f.name: ('transaction_date' if f.name == 'date' else f.name)
    for f in fields(Transaction)
    if f.name != 'id'
}

_DATE_FIELDS = {'date', 'reimbursement_date'}
_BOOL_FIELDS = {'is_joint', 'is_reimbursable'}


def _db_path() -> str:
    # Read at call time so tests can point the module at a temporary file
    return str(DB_PATH)


def _ensure_dirs() -> None:
    ensure_data_directories()
    Path(_db_path()).parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def connect() -> Iterator[sqlite3.Connection]:
    _ensure_dirs()
    conn = sqlite3.connect(_db_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys=ON")
    try:
        yield conn
    finally:
        conn.close()


def init_db() -> None:
    with connect() as conn:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    logger.info("Ledger initialised at %s", _db_path())


def _to_iso_date(value: Any) -> Optional[str]:
    """Normalize a date-like value to ``YYYY-MM-DD``.

    Raises:
        ValueError: If the value is not empty and cannot be parsed.
    """
    if value is None or value == "":
        return None
    if pd.isna(value):
        return None
    if hasattr(value, 'to_pydatetime'):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        return value.date().isoformat()
    ts = pd.to_datetime(value, errors='coerce')
    if pd.isna(ts):
        raise ValueError(f"Unparseable date: {value!r}")
    return ts.date().isoformat()


def _now() -> str:
    return datetime.now().isoformat(timespec='seconds')


def _require_row(conn: sqlite3.Connection, table: str, record_id: int) -> sqlite3.Row:
    row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (record_id,)).fetchone()
    if row is None:
        raise KeyError(f"No {table} row with id {record_id}")
    return row


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def add_account(account: Account) -> int:
    """Store an account; its ``balance`` becomes the opening balance."""
    with connect() as conn:
        cur = conn.execute(
            "INSERT INTO accounts (name, type, opening_balance, currency, ownership, owner_id, credit_limit, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (account.name, account.type, account.balance, account.currency, account.ownership,
             account.owner_id, account.credit_limit, _now()),
        )
        conn.commit()
        account_id = cur.lastrowid
    logger.info("Added account %s (%s) id=%s", account.name, account.type, account_id)
    return account_id


def fetch_accounts(user_id: Optional[str] = None, joint_view: bool = False) -> List[Account]:
    """Accounts visible to ``user_id`` with balances derived from the ledger.

    Balance = opening balance + actual income - actual expenses booked to
    the account.  Projected and pending transactions do not move it.
    Transactions are assumed to be in the account's currency.
    """
    where = ""
    params: List[Any] = []
    if user_id is not None and not joint_view:
        where = "WHERE a.owner_id = ? OR a.ownership = 'joint'"
        params.append(user_id)

    sql = f"""
    SELECT a.id, a.name, a.type, a.currency, a.ownership, a.owner_id, a.credit_limit,
           a.opening_balance + COALESCE(SUM(
               CASE
                   WHEN t.status = 'actual' AND t.type = 'income' THEN t.amount
                   WHEN t.status = 'actual' AND t.type = 'expense' THEN -t.amount
                   ELSE 0
               END), 0) AS balance
    FROM accounts a
    LEFT JOIN transactions t ON t.account_id = a.id
    {where}
    GROUP BY a.id
    ORDER BY a.id
    """
    with connect() as conn:
        rows = conn.execute(sql, params).fetchall()
    return [
        Account(
            name=row['name'],
            type=row['type'],
            balance=float(row['balance']),
            currency=row['currency'],
            ownership=row['ownership'],
            owner_id=row['owner_id'],
            credit_limit=row['credit_limit'],
            id=row['id'],
        )
        for row in rows
    ]


def delete_account(account_id: int) -> None:
    with connect() as conn:
        _require_row(conn, 'accounts', account_id)
        conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
        conn.commit()
    logger.info("Deleted account id=%s", account_id)


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------

def _transaction_values(txn: Transaction) -> List[Any]:
    if txn.amount is None or pd.isna(txn.amount) or txn.amount < 0:
        raise ValueError(f"Transaction amount must be a non-negative number, got {txn.amount!r}")
    if _to_iso_date(txn.date) is None:
        raise ValueError("Transaction date is required")
    values = []
    for name in TRANSACTION_COLUMNS:
        value = getattr(txn, name)
        if name in _DATE_FIELDS:
            value = _to_iso_date(value)
        elif name in _BOOL_FIELDS:
            value = int(bool(value))
        values.append(value)
    return values


def _check_account(conn: sqlite3.Connection, account_id: Optional[int]) -> None:
    if account_id is not None:
        _require_row(conn, 'accounts', account_id)


def add_transaction(txn: Transaction) -> int:
    """Insert a transaction and return its id.

    Raises:
        ValueError: If the amount is negative or the date is missing.
        KeyError: If ``account_id`` does not reference a stored account.
    """
    values = _transaction_values(txn)
    columns = list(TRANSACTION_COLUMNS.values()) + ['created_at']
    placeholders = ", ".join("?" for _ in columns)
    with connect() as conn:
        _check_account(conn, txn.account_id)
        cur = conn.execute(
            f"INSERT INTO transactions ({', '.join(columns)}) VALUES ({placeholders})",
            values + [_now()],
        )
        conn.commit()
        txn_id = cur.lastrowid
    logger.info("Added %s transaction id=%s amount=%.2f category=%s", txn.type, txn_id, txn.amount, txn.category)
    return txn_id


def add_transactions(transactions: Sequence[Transaction]) -> List[int]:
    return [add_transaction(txn) for txn in transactions]


def _row_to_transaction(row: sqlite3.Row) -> Transaction:
    kwargs = {name: row[column] for name, column in TRANSACTION_COLUMNS.items()}
    for name in _BOOL_FIELDS:
        kwargs[name] = bool(kwargs[name])
    return Transaction(id=row['id'], **kwargs)


def get_transaction(transaction_id: int) -> Transaction:
    with connect() as conn:
        return _row_to_transaction(_require_row(conn, 'transactions', transaction_id))


def update_transaction(transaction_id: int, **changes: Any) -> Transaction:
    """Apply field changes to a stored transaction and return the new record.

    Changes are validated by rebuilding the record, so an invalid type or
    status is rejected before anything is written.

    Raises:
        KeyError: If the transaction does not exist.
        ValueError: For unknown fields or invalid values.
    """
    unknown = set(changes) - set(TRANSACTION_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown transaction fields: {', '.join(sorted(unknown))}")

    with connect() as conn:
        current = _row_to_transaction(_require_row(conn, 'transactions', transaction_id))
        updated = replace(current, **changes)
        values = _transaction_values(updated)
        _check_account(conn, updated.account_id)
        assignments = ", ".join(f"{column} = ?" for column in TRANSACTION_COLUMNS.values())
        conn.execute(f"UPDATE transactions SET {assignments} WHERE id = ?", values + [transaction_id])
        conn.commit()
    logger.info("Updated transaction id=%s fields=%s", transaction_id, sorted(changes))
    return updated


def delete_transaction(transaction_id: int) -> None:
    with connect() as conn:
        _require_row(conn, 'transactions', transaction_id)
        conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        conn.commit()
    logger.info("Deleted transaction id=%s", transaction_id)


def _transaction_filters(
    user_id: Optional[str],
    joint_view: bool,
    start_date: Any,
    end_date: Any,
    categories: Optional[Sequence[str]],
    statuses: Optional[Sequence[str]],
) -> tuple:
    where: List[str] = []
    params: List[Any] = []

    if user_id is not None and not joint_view:
        where.append("(user_id = ? OR is_joint = 1)")
        params.append(user_id)
    if start_date:
        where.append("transaction_date >= ?")
        params.append(_to_iso_date(start_date))
    if end_date:
        where.append("transaction_date <= ?")
        params.append(_to_iso_date(end_date))
    if categories:
        where.append("category IN ({})".format(",".join("?" for _ in categories)))
        params.extend(categories)
    if statuses:
        where.append("status IN ({})".format(",".join("?" for _ in statuses)))
        params.extend(statuses)

    clause = (" WHERE " + " AND ".join(where)) if where else ""
    return clause, params


def fetch_transactions(
    user_id: Optional[str] = None,
    joint_view: bool = False,
    start_date: Any = None,
    end_date: Any = None,
    categories: Optional[Sequence[str]] = None,
    statuses: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Transactions as a frame using the analytics column names.

    The personal view (``user_id`` given, ``joint_view`` False) holds the
    user's own rows plus every joint-flagged row; the joint view holds all.
    """
    clause, params = _transaction_filters(user_id, joint_view, start_date, end_date, categories, statuses)
    selected = ", ".join(
        f"{TRANSACTION_COLUMNS[name]} AS '{label}'" if name != 'id' else f"id AS '{label}'"
        for name, label in FRAME_COLUMNS.items()
    )
    sql = f"SELECT {selected} FROM transactions{clause} ORDER BY transaction_date ASC, id ASC"

    with connect() as conn:
        conn.row_factory = None
        df = pd.read_sql_query(sql, conn, params=params)
    df['Transaction Date'] = pd.to_datetime(df['Transaction Date'])
    df['Reimbursement Date'] = pd.to_datetime(df['Reimbursement Date'])
    for label in ('Joint', 'Reimbursable'):
        df[label] = df[label].astype(bool)
    return df


def fetch_transaction_records(
    user_id: Optional[str] = None,
    joint_view: bool = False,
    start_date: Any = None,
    end_date: Any = None,
    categories: Optional[Sequence[str]] = None,
    statuses: Optional[Sequence[str]] = None,
) -> List[Transaction]:
    """Same selection as :func:`fetch_transactions`, as dataclass records."""
    clause, params = _transaction_filters(user_id, joint_view, start_date, end_date, categories, statuses)
    with connect() as conn:
        rows = conn.execute(
            f"SELECT * FROM transactions{clause} ORDER BY transaction_date ASC, id ASC", params
        ).fetchall()
    return [_row_to_transaction(row) for row in rows]


def fetch_distinct_categories() -> List[str]:
    with connect() as conn:
        rows = conn.execute(
            "SELECT DISTINCT category FROM transactions WHERE category IS NOT NULL ORDER BY category"
        ).fetchall()
    return [r[0] for r in rows if r[0]]


# ---------------------------------------------------------------------------
# Budgets
# ---------------------------------------------------------------------------

def upsert_budget(budget: Budget) -> int:
    """Save a budget; an existing (user, category, period) row is replaced.

    Raises:
        ValueError: If the limit is negative.
    """
    if budget.amount < 0:
        raise ValueError(f"Budget amount must be non-negative, got {budget.amount}")
    with connect() as conn:
        conn.execute(
            "INSERT INTO budgets (name, category, amount, period, user_id, starting_balance, alert_threshold, is_active) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT (user_id, category, period) DO UPDATE SET "
            "name = excluded.name, amount = excluded.amount, starting_balance = excluded.starting_balance, "
            "alert_threshold = excluded.alert_threshold, is_active = excluded.is_active",
            (budget.name, budget.category, budget.amount, budget.period, budget.user_id,
             budget.starting_balance, budget.alert_threshold, int(budget.is_active)),
        )
        conn.commit()
        row = conn.execute(
            "SELECT id FROM budgets WHERE user_id = ? AND category = ? AND period = ?",
            (budget.user_id, budget.category, budget.period),
        ).fetchone()
    logger.info("Saved %s budget for %s id=%s", budget.period, budget.category, row['id'])
    return row['id']


def fetch_budgets(user_id: Optional[str] = None, active_only: bool = False) -> List[Budget]:
    where: List[str] = []
    params: List[Any] = []
    if user_id is not None:
        where.append("user_id = ?")
        params.append(user_id)
    if active_only:
        where.append("is_active = 1")
    sql = "SELECT * FROM budgets"
    if where:
        sql += " WHERE " + " AND ".join(where)
    sql += " ORDER BY id"

    with connect() as conn:
        rows = conn.execute(sql, params).fetchall()
    return [
        Budget(
            category=row['category'],
            amount=row['amount'],
            period=row['period'],
            name=row['name'],
            user_id=row['user_id'],
            starting_balance=row['starting_balance'],
            alert_threshold=row['alert_threshold'],
            is_active=bool(row['is_active']),
            id=row['id'],
        )
        for row in rows
    ]


def delete_budget(budget_id: int) -> None:
    with connect() as conn:
        _require_row(conn, 'budgets', budget_id)
        conn.execute("DELETE FROM budgets WHERE id = ?", (budget_id,))
        conn.commit()
    logger.info("Deleted budget id=%s", budget_id)


# ---------------------------------------------------------------------------
# Debts and goals
# ---------------------------------------------------------------------------

def add_debt(debt: Debt) -> int:
    if debt.remaining_amount < 0 or debt.total_amount < 0:
        raise ValueError("Debt amounts must be non-negative")
    with connect() as conn:
        cur = conn.execute(
            "INSERT INTO debts (name, total_amount, remaining_amount, interest_rate, minimum_payment, due_date, user_id) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (debt.name, debt.total_amount, debt.remaining_amount, debt.interest_rate,
             debt.minimum_payment, _to_iso_date(debt.due_date), debt.user_id),
        )
        conn.commit()
        debt_id = cur.lastrowid
    logger.info("Added debt %s id=%s", debt.name, debt_id)
    return debt_id


def fetch_debts(user_id: Optional[str] = None) -> List[Debt]:
    sql = "SELECT * FROM debts"
    params: List[Any] = []
    if user_id is not None:
        sql += " WHERE user_id = ?"
        params.append(user_id)
    with connect() as conn:
        rows = conn.execute(sql + " ORDER BY id", params).fetchall()
    return [
        Debt(
            name=row['name'],
            total_amount=row['total_amount'],
            remaining_amount=row['remaining_amount'],
            interest_rate=row['interest_rate'],
            minimum_payment=row['minimum_payment'],
            due_date=row['due_date'],
            user_id=row['user_id'],
            id=row['id'],
        )
        for row in rows
    ]


def record_debt_payment(debt_id: int, amount: float) -> float:
    """Reduce a debt's remaining amount, never below zero; returns the new remainder."""
    if amount <= 0:
        raise ValueError("Payment amount must be positive")
    with connect() as conn:
        row = _require_row(conn, 'debts', debt_id)
        remaining = max(row['remaining_amount'] - amount, 0.0)
        conn.execute("UPDATE debts SET remaining_amount = ? WHERE id = ?", (remaining, debt_id))
        conn.commit()
    logger.info("Recorded payment of %.2f on debt id=%s", amount, debt_id)
    return remaining


def add_goal(goal: Goal) -> int:
    if goal.target_amount <= 0:
        raise ValueError("Goal target must be positive")
    with connect() as conn:
        cur = conn.execute(
            "INSERT INTO goals (name, target_amount, current_amount, target_date, priority, user_id) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (goal.name, goal.target_amount, goal.current_amount, _to_iso_date(goal.target_date),
             goal.priority, goal.user_id),
        )
        conn.commit()
        goal_id = cur.lastrowid
    logger.info("Added goal %s id=%s", goal.name, goal_id)
    return goal_id


def fetch_goals(user_id: Optional[str] = None) -> List[Goal]:
    sql = "SELECT * FROM goals"
    params: List[Any] = []
    if user_id is not None:
        sql += " WHERE user_id = ?"
        params.append(user_id)
    with connect() as conn:
        rows = conn.execute(sql + " ORDER BY id", params).fetchall()
    return [
        Goal(
            name=row['name'],
            target_amount=row['target_amount'],
            current_amount=row['current_amount'],
            target_date=row['target_date'],
            priority=row['priority'],
            user_id=row['user_id'],
            id=row['id'],
        )
        for row in rows
    ]


def contribute_to_goal(goal_id: int, amount: float) -> float:
    """Add ``amount`` to a goal's saved total and return the new total."""
    with connect() as conn:
        row = _require_row(conn, 'goals', goal_id)
        current = row['current_amount'] + amount
        conn.execute("UPDATE goals SET current_amount = ? WHERE id = ?", (current, goal_id))
        conn.commit()
    logger.info("Goal id=%s now at %.2f", goal_id, current)
    return current


def ledger_summary() -> Dict[str, int]:
    """Row counts per table."""
    with connect() as conn:
        return {
            table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in ('accounts', 'transactions', 'budgets', 'debts', 'goals')
        }
