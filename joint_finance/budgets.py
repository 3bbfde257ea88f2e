"""Budget aggregation: spend per category against per-category limits.

The aggregator evaluates every budget independently, even when two
budgets share a category.  Spend is the sum of expense transactions in
the budget's category; by default it is windowed to the date range of
the selected period (this week, this month, this year).  Pass
``windowed=False`` to evaluate against all history instead.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import pandas as pd

from .analytics import TransactionsLike, expense_rows, filter_by_date_range, transactions_to_frame
from .models import Budget
from .periods import calculate_whats_left, convert_budget_amount, period_date_range

ON_TRACK = ('on-track', '#10B981')
# (minimum percentage, status, color), most severe first
STATUS_TIERS = (
    (100.0, 'over-budget', '#EF4444'),
    (90.0, 'danger', '#F97316'),
    (80.0, 'warning', '#EAB308'),
)

STATUS_COLUMNS = [
    'Budget ID', 'Name', 'Category', 'Period', 'Limit', 'Spent',
    'Remaining', 'Available', 'Percentage', 'Status', 'Color', 'Alert Threshold',
]


@dataclass
class BudgetProgress:
    percentage: float
    status: str
    color: str


def budget_percentage(spent: float, limit: float) -> float:
    """Percentage of ``limit`` used; 0 when there is no positive limit."""
    return (spent / limit * 100) if limit > 0 else 0.0


def status_for_percentage(percentage: float) -> BudgetProgress:
    for threshold, status, color in STATUS_TIERS:
        if percentage >= threshold:
            return BudgetProgress(percentage, status, color)
    return BudgetProgress(percentage, *ON_TRACK)


def calculate_budget_progress(spent: float, limit: float) -> BudgetProgress:
    """Percentage used and status tier for one budget.

    Example:
        >>> calculate_budget_progress(85, 100).status
        'warning'
        >>> calculate_budget_progress(0, 0).percentage
        0.0
    """
    return status_for_percentage(budget_percentage(spent, limit))


def category_spending(
    transactions: TransactionsLike,
    start_date=None,
    end_date=None,
    statuses: Optional[Sequence[str]] = None,
) -> pd.Series:
    """Total expense amount per category, optionally windowed by date."""
    frame = transactions_to_frame(transactions)
    expenses = expense_rows(filter_by_date_range(frame, start_date, end_date), statuses=statuses)
    if expenses.empty:
        return pd.Series(dtype=float)
    return expenses.groupby('Category')['Amount'].sum()


def budget_status_frame(
    transactions: TransactionsLike,
    budgets: Iterable[Budget],
    period: str = 'monthly',
    reference: Optional[Union[date, datetime, str]] = None,
    windowed: bool = True,
    statuses: Optional[Sequence[str]] = None,
) -> pd.DataFrame:
    """Evaluate each budget for the selected display ``period``.

    Args:
        transactions: Transaction records or a prepared frame.
        budgets: Budgets to evaluate; inactive budgets are skipped.
        period: Display period; each limit is converted into it.
        reference: Any date inside the period to evaluate (defaults to now).
        windowed: Restrict spend to the period's date range when True.
        statuses: Transaction statuses counted as spend; ``None`` counts all.

    Returns:
        DataFrame with one row per budget and ``STATUS_COLUMNS`` columns.
    """
    if windowed:
        start, end = period_date_range(period, reference)
        spending = category_spending(transactions, start, end, statuses=statuses)
    else:
        spending = category_spending(transactions, statuses=statuses)

    rows = []
    for budget in budgets:
        if not budget.is_active:
            continue
        limit = convert_budget_amount(budget.amount, budget.period, period)
        spent = float(spending.get(budget.category, 0.0))
        progress = calculate_budget_progress(spent, limit)
        rows.append({
            'Budget ID': budget.id,
            'Name': budget.name,
            'Category': budget.category,
            'Period': period,
            'Limit': limit,
            'Spent': spent,
            'Remaining': limit - spent,
            # Remaining plus whatever balance the budget started the period with
            'Available': calculate_whats_left(limit, spent, budget.starting_balance)['whats_left'],
            'Percentage': progress.percentage,
            'Status': progress.status,
            'Color': progress.color,
            'Alert Threshold': budget.alert_threshold,
        })

    return pd.DataFrame(rows, columns=STATUS_COLUMNS)


def apply_budget_status(
    budgets: Sequence[Budget],
    transactions: TransactionsLike,
    **kwargs,
) -> List[Budget]:
    """Return copies of ``budgets`` with ``spent`` filled in from transactions.

    Keyword arguments are forwarded to :func:`budget_status_frame`.  The
    spent figure is expressed in the display period used for evaluation.
    """
    frame = budget_status_frame(transactions, budgets, **kwargs)
    updated = []
    active = [b for b in budgets if b.is_active]
    for budget, (_, row) in zip(active, frame.iterrows()):
        updated.append(replace(budget, spent=float(row['Spent'])))
    return updated


def budget_totals(status_frame: pd.DataFrame) -> Dict[str, Union[float, str]]:
    """Overall limit, spend and status across every row of a status frame."""
    limit = float(status_frame['Limit'].sum()) if not status_frame.empty else 0.0
    spent = float(status_frame['Spent'].sum()) if not status_frame.empty else 0.0
    progress = calculate_budget_progress(spent, limit)
    if 'Available' in status_frame.columns and not status_frame.empty:
        available = float(status_frame['Available'].sum())
    else:
        available = limit - spent
    return {
        'limit': limit,
        'spent': spent,
        'remaining': limit - spent,
        'available': available,
        'percentage': progress.percentage,
        'status': progress.status,
    }


def infer_group(category: Optional[str], groups_map: Mapping[str, List[str]]) -> str:
    """Group containing ``category``, falling back to the first group.

    Example:
        >>> groups = {'Needs': ['Groceries'], 'Wants': ['Entertainment']}
        >>> infer_group('Entertainment', groups)
        'Wants'
        >>> infer_group('Unknown', groups)
        'Needs'
    """
    if category:
        for group, cats in groups_map.items():
            if category in cats:
                return group
    return next(iter(groups_map.keys()), 'Other')


def aggregate_budgets_by_group(
    budgets: Iterable[Budget],
    groups_map: Mapping[str, List[str]],
    period: str = 'monthly',
) -> Dict[str, float]:
    """Sum budget limits (in ``period``) into their envelope groups."""
    grouped: Dict[str, float] = {group: 0.0 for group in groups_map}
    for budget in budgets:
        if not budget.is_active:
            continue
        group = infer_group(budget.category, groups_map)
        amount = convert_budget_amount(budget.amount, budget.period, period)
        grouped[group] = grouped.get(group, 0.0) + amount
    return grouped
