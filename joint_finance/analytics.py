"""Transaction frames and household finance analytics.

Every aggregate in the package is computed over a pandas DataFrame built
by :func:`transactions_to_frame`.  Amounts are stored positive; the
``Type`` column (``income`` / ``expense``) carries the direction and the
``Status`` column (``projected`` / ``pending`` / ``actual``) says whether
the money has actually moved.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .currency import convert_currency
from .models import Debt, Goal, Transaction

FRAME_COLUMNS = {
    'id': 'id',
    'date': 'Transaction Date',
    'description': 'Description',
    'amount': 'Amount',
    'category': 'Category',
    'type': 'Type',
    'status': 'Status',
    'currency': 'Currency',
    'user_id': 'User',
    'account_id': 'Account',
    'is_joint': 'Joint',
    'is_reimbursable': 'Reimbursable',
    'reimbursement_status': 'Reimbursement Status',
    'reimbursement_amount': 'Reimbursement Amount',
    'reimbursement_date': 'Reimbursement Date',
}

ACTUAL_ONLY = ('actual',)

TransactionsLike = Union[pd.DataFrame, Iterable[Transaction]]


def transactions_to_frame(
    transactions: TransactionsLike,
    currency: Optional[str] = None,
    rates: Optional[Mapping[str, float]] = None,
) -> pd.DataFrame:
    """Build a normalized transaction DataFrame.

    Args:
        transactions: Transaction records, or a frame already using the
            ``FRAME_COLUMNS`` names.
        currency: When given, every amount is converted into this currency.
        rates: Optional exchange-rate override passed to the converter.

    Returns:
        DataFrame with parsed dates, numeric amounts and lower-cased
        type/status text.
    """
    if isinstance(transactions, pd.DataFrame):
        frame = transactions.copy()
    else:
        rows = [asdict(txn) for txn in transactions]
        frame = pd.DataFrame(rows, columns=list(FRAME_COLUMNS.keys()) if not rows else None)
        frame = frame[[col for col in FRAME_COLUMNS if col in frame.columns]]
        frame = frame.rename(columns=FRAME_COLUMNS)

    frame = _prepare_frame(frame)
    if currency and not frame.empty:
        frame['Amount'] = [
            convert_currency(amount, source if isinstance(source, str) and source else currency, currency, rates)
            for amount, source in zip(frame['Amount'], frame['Currency'])
        ]
        frame['Currency'] = currency
    return frame


def _prepare_frame(frame: pd.DataFrame) -> pd.DataFrame:
    for column in FRAME_COLUMNS.values():
        if column not in frame.columns:
            frame[column] = None

    frame['Transaction Date'] = pd.to_datetime(frame['Transaction Date'], errors='coerce')
    frame['Amount'] = pd.to_numeric(frame['Amount'], errors='coerce').fillna(0.0).astype(float)
    frame['Category'] = frame['Category'].fillna('Uncategorized').astype(str)
    frame['Type'] = frame['Type'].fillna('expense').astype(str).str.strip().str.lower()
    frame['Status'] = frame['Status'].fillna('actual').astype(str).str.strip().str.lower()
    frame['Joint'] = frame['Joint'].fillna(False).astype(bool)
    frame['Reimbursable'] = frame['Reimbursable'].fillna(False).astype(bool)
    frame['Reimbursement Status'] = frame['Reimbursement Status'].fillna('not_reimbursable')
    return frame


def expense_rows(frame: pd.DataFrame, statuses: Optional[Sequence[str]] = ACTUAL_ONLY) -> pd.DataFrame:
    """Expense transactions, optionally restricted to the given statuses."""
    mask = frame['Type'] == 'expense'
    if statuses:
        mask &= frame['Status'].isin(statuses)
    return frame[mask].copy()


def income_rows(frame: pd.DataFrame, statuses: Optional[Sequence[str]] = ACTUAL_ONLY) -> pd.DataFrame:
    mask = frame['Type'] == 'income'
    if statuses:
        mask &= frame['Status'].isin(statuses)
    return frame[mask].copy()


def filter_by_date_range(frame: pd.DataFrame, start_date: Any = None, end_date: Any = None) -> pd.DataFrame:
    """Filter ``frame`` to ``start_date <= date <= end_date`` (either bound optional)."""
    data = frame
    if start_date is not None:
        data = data[data['Transaction Date'] >= pd.to_datetime(start_date)]
    if end_date is not None:
        data = data[data['Transaction Date'] <= pd.to_datetime(end_date)]
    return data.copy()


def trailing_window(frame: pd.DataFrame, days: int, as_of: Optional[datetime] = None) -> pd.DataFrame:
    """Rows dated on or after ``as_of - days``.

    There is no upper bound, so future-dated actual rows are included.
    """
    reference = pd.Timestamp(as_of) if as_of is not None else pd.Timestamp.now()
    cutoff = reference - pd.Timedelta(days=days)
    return frame[frame['Transaction Date'] >= cutoff].copy()


def filter_for_view(frame: pd.DataFrame, user_id: Optional[str], joint_view: bool = False) -> pd.DataFrame:
    """Personal view keeps the user's rows plus joint-flagged rows; joint view keeps everything."""
    if joint_view or not user_id:
        return frame.copy()
    return frame[(frame['User'] == user_id) | frame['Joint']].copy()


class HouseholdAnalytics:
    """Summaries over a prepared transaction frame."""

    def __init__(self, transactions: TransactionsLike, currency: Optional[str] = None):
        self.data = transactions_to_frame(transactions, currency=currency)

    def calculate_period_summary(self, start_date: Any = None, end_date: Any = None) -> Dict[str, Any]:
        """Income, expenses, net flow and savings rate for a date range."""
        filtered = filter_by_date_range(self.data, start_date, end_date)

        income = float(income_rows(filtered)['Amount'].sum())
        expense_data = expense_rows(filtered)
        expenses = float(expense_data['Amount'].sum())
        net_flow = income - expenses
        savings_rate = (net_flow / income * 100) if income > 0 else 0.0

        largest_expenses = expense_data.sort_values('Amount', ascending=False).head(10)

        return {
            'income': income,
            'expenses': expenses,
            'net_flow': net_flow,
            'savings_rate': savings_rate,
            'transaction_count': len(filtered),
            'largest_expenses': largest_expenses,
        }

    def calculate_monthly_breakdown(self) -> pd.DataFrame:
        """Monthly income/expenses/net for actual transactions."""
        actual = self.data[self.data['Status'] == 'actual'].copy()
        if actual.empty:
            return pd.DataFrame(columns=['Month', 'Income', 'Expenses', 'Net', 'Savings Rate'])

        actual['Month'] = actual['Transaction Date'].dt.to_period('M')
        actual['Income'] = np.where(actual['Type'] == 'income', actual['Amount'], 0.0)
        actual['Expenses'] = np.where(actual['Type'] == 'expense', actual['Amount'], 0.0)
        monthly = actual.groupby('Month')[['Income', 'Expenses']].sum().sort_index()
        monthly['Net'] = monthly['Income'] - monthly['Expenses']
        monthly['Savings Rate'] = np.where(
            monthly['Income'] > 0,
            monthly['Net'] / monthly['Income'].where(monthly['Income'] > 0, 1.0) * 100,
            0.0,
        )
        monthly = monthly.reset_index()
        monthly['Month'] = monthly['Month'].astype(str)
        return monthly

    def calculate_category_spending(self, start_date: Any = None, end_date: Any = None) -> pd.DataFrame:
        """Spending by category for a date range, largest first."""
        expenses = expense_rows(filter_by_date_range(self.data, start_date, end_date))
        if expenses.empty:
            return pd.DataFrame(columns=['Total_Spent', 'Transaction_Count', 'Avg_Transaction'])

        spending = expenses.groupby('Category').agg(
            Total_Spent=('Amount', 'sum'),
            Transaction_Count=('Amount', 'count'),
            Avg_Transaction=('Amount', 'mean'),
        ).round(2)
        return spending.sort_values('Total_Spent', ascending=False)

    def calculate_spending_trends(self, category: Optional[str] = None, period: str = 'monthly') -> pd.DataFrame:
        """Expense totals per week, month or year."""
        data = self.data if category is None else self.data[self.data['Category'] == category]
        expenses = expense_rows(data)
        freq = {'weekly': 'W', 'monthly': 'M', 'yearly': 'Y'}.get(period)
        if freq is None:
            raise ValueError(f"Unknown trend period '{period}'")
        if expenses.empty:
            return pd.DataFrame(columns=['Period', 'Amount'])
        expenses['Period'] = expenses['Transaction Date'].dt.to_period(freq)
        trends = expenses.groupby('Period')['Amount'].sum().reset_index()
        trends['Period'] = trends['Period'].astype(str)
        return trends

    def average_monthly_savings(self, months: int = 3) -> float:
        """Mean net flow over the most recent ``months`` months with activity."""
        breakdown = self.calculate_monthly_breakdown()
        if breakdown.empty:
            return 0.0
        return float(breakdown['Net'].tail(months).mean())


def goal_progress(goals: Iterable[Goal], monthly_savings: float = 0.0) -> List[Dict[str, Any]]:
    """Progress towards savings goals.

    ``months_to_goal`` is infinite when nothing is being saved.
    """
    progress = []
    for goal in goals:
        if goal.target_amount <= 0:
            continue
        percentage = goal.current_amount / goal.target_amount * 100
        remaining = max(goal.target_amount - goal.current_amount, 0.0)
        if remaining == 0:
            months_to_goal = 0.0
        elif monthly_savings > 0:
            months_to_goal = remaining / monthly_savings
        else:
            months_to_goal = float('inf')

        progress.append({
            'name': goal.name,
            'current_amount': goal.current_amount,
            'target_amount': goal.target_amount,
            'progress_percentage': min(percentage, 100.0),
            'remaining_amount': remaining,
            'months_to_goal': months_to_goal,
            'status': 'Completed' if percentage >= 100 else 'In Progress',
        })
    return progress


def months_to_payoff(balance: float, annual_rate: float, payment: float) -> float:
    """Months needed to clear ``balance`` with a fixed monthly ``payment``.

    Returns infinity when the payment never covers the monthly interest.
    """
    if balance <= 0:
        return 0.0
    if payment <= 0:
        return float('inf')
    monthly_rate = annual_rate / 100 / 12
    if monthly_rate == 0:
        return float(np.ceil(balance / payment))
    if payment <= balance * monthly_rate:
        return float('inf')
    months = -np.log(1 - monthly_rate * balance / payment) / np.log(1 + monthly_rate)
    return float(np.ceil(months))


def debt_summary(debts: Iterable[Debt]) -> Dict[str, Any]:
    """Totals across debts with a balance-weighted average interest rate."""
    debts = list(debts)
    total_remaining = sum(d.remaining_amount for d in debts)
    total_original = sum(d.total_amount for d in debts)
    minimum_payments = sum(d.minimum_payment for d in debts)
    weighted_rate = (
        sum(d.interest_rate * d.remaining_amount for d in debts) / total_remaining
        if total_remaining > 0 else 0.0
    )
    paid_off = (1 - total_remaining / total_original) * 100 if total_original > 0 else 0.0

    schedule = [
        {
            'name': d.name,
            'remaining_amount': d.remaining_amount,
            'interest_rate': d.interest_rate,
            'minimum_payment': d.minimum_payment,
            'months_to_payoff': months_to_payoff(d.remaining_amount, d.interest_rate, d.minimum_payment),
        }
        for d in sorted(debts, key=lambda item: item.interest_rate, reverse=True)
    ]

    return {
        'total_remaining': total_remaining,
        'total_original': total_original,
        'minimum_payments': minimum_payments,
        'weighted_interest_rate': weighted_rate,
        'percent_paid_off': paid_off,
        'debts': schedule,
    }
