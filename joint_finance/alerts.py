"""Spending alerts derived from budget status and recent transactions."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional

import pandas as pd

from .analytics import TransactionsLike, expense_rows, trailing_window, transactions_to_frame
from .config import DEFAULT_ALERT_THRESHOLDS, LARGE_TRANSACTION_AMOUNT
from .currency import format_currency
from .models import Alert


def _severity(percentage: float) -> str:
    if percentage >= 100:
        return 'critical'
    if percentage >= 90:
        return 'warning'
    return 'info'


def _row_thresholds(row: pd.Series, thresholds: List[float]) -> List[float]:
    """Shared thresholds plus the budget's own alert threshold, ascending."""
    own = row.get('Alert Threshold')
    if own is None or pd.isna(own):
        return thresholds
    return sorted(set(thresholds) | {float(own)})


def check_budget_thresholds(
    status_frame: pd.DataFrame,
    thresholds: Iterable[float] = DEFAULT_ALERT_THRESHOLDS,
    currency: str = 'ILS',
) -> List[Alert]:
    """One alert per budget that has crossed any of its thresholds.

    ``status_frame`` is the output of :func:`joint_finance.budgets.budget_status_frame`.
    Each row is checked against ``thresholds`` and against its own
    ``Alert Threshold`` column when present. The alert records the highest
    threshold crossed.
    """
    thresholds = sorted(float(t) for t in thresholds)
    if status_frame.empty:
        return []

    alerts = []
    for _, row in status_frame.iterrows():
        percentage = float(row['Percentage'])
        crossed = [t for t in _row_thresholds(row, thresholds) if percentage >= t]
        if not crossed:
            continue
        alerts.append(Alert(
            type='budget_threshold',
            title=f"Budget Alert: {row['Name']}",
            message=(
                f"You've spent {format_currency(row['Spent'], currency)} ({percentage:.0f}%) "
                f"of your {format_currency(row['Limit'], currency)} budget for {row['Name']}."
            ),
            severity=_severity(percentage),
            metadata={
                'budget_id': row['Budget ID'],
                'category': row['Category'],
                'spent': float(row['Spent']),
                'limit': float(row['Limit']),
                'percentage': percentage,
                'threshold': crossed[-1],
            },
        ))
    return alerts


def check_unusual_spending(
    transactions: TransactionsLike,
    as_of: Optional[datetime] = None,
    multiplier: float = 2.0,
    min_transactions: int = 10,
    window_days: int = 30,
    currency: str = 'ILS',
) -> List[Alert]:
    """Flag a day whose spending exceeds ``multiplier`` x the trailing daily average.

    Needs at least ``min_transactions`` expenses in the window to say anything.
    """
    reference = pd.Timestamp(as_of) if as_of is not None else pd.Timestamp.now()
    frame = transactions_to_frame(transactions)
    recent = expense_rows(trailing_window(frame, window_days, reference), statuses=None)
    if len(recent) < min_transactions:
        return []

    avg_daily = float(recent['Amount'].sum()) / window_days
    today_mask = recent['Transaction Date'].dt.normalize() == reference.normalize()
    today_spending = float(recent.loc[today_mask, 'Amount'].sum())

    if avg_daily <= 0 or today_spending <= avg_daily * multiplier:
        return []

    return [Alert(
        type='unusual_spending',
        title='Unusual Spending Detected',
        message=(
            f"Today's spending ({format_currency(today_spending, currency)}) is significantly higher "
            f"than your daily average ({format_currency(avg_daily, currency)})."
        ),
        severity='warning',
        metadata={
            'today_spending': today_spending,
            'avg_daily_spending': avg_daily,
            'ratio': today_spending / avg_daily,
        },
    )]


def check_large_transactions(
    transactions: TransactionsLike,
    threshold: float = LARGE_TRANSACTION_AMOUNT,
    currency: str = 'ILS',
) -> List[Alert]:
    """An info alert for every expense at or above ``threshold``."""
    frame = transactions_to_frame(transactions)
    large = expense_rows(frame, statuses=None)
    large = large[large['Amount'] >= threshold]

    return [
        Alert(
            type='large_transaction',
            title='Large Transaction',
            message=f"{row['Description']}: {format_currency(row['Amount'], currency)} on {row['Transaction Date']:%Y-%m-%d}.",
            severity='info',
            metadata={'transaction_id': row['id'], 'amount': float(row['Amount'])},
        )
        for _, row in large.iterrows()
    ]
