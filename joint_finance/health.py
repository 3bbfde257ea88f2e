"""Financial health scoring.

Four component metrics are computed from transaction, budget and account
snapshots, each mapped through a fixed breakpoint table into a 0-100
sub-score:

* savings rate over the trailing 30 days,
* debt-to-income ratio (debt-type account balances over 30-day income),
* budget adherence (share of budgets within their monthly limit),
* emergency fund months (liquid balances over the 90-day monthly average
  of expenses).

The overall score is the weighted sum, rounded half-up.  Only ``actual``
transactions count.  Zero denominators never raise: the metric becomes 0,
or the neutral budget score of 50 when no budgets exist.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .analytics import TransactionsLike, expense_rows, income_rows, trailing_window, transactions_to_frame
from .config import EXPENSE_AVERAGE_MONTHS, EXPENSE_AVERAGE_WINDOW_DAYS, SAVINGS_WINDOW_DAYS
from .currency import convert_currency
from .models import (
    DEBT_ACCOUNT_TYPES,
    LIQUID_ACCOUNT_TYPES,
    Account,
    Budget,
    FinancialHealth,
    Recommendation,
)

logger = logging.getLogger(__name__)

# Ordered (threshold, score) tables.  "at least" tables match the first
# threshold the value reaches; "below" tables match the first threshold the
# value is under.
SAVINGS_RATE_BREAKPOINTS = ((20.0, 100), (15.0, 80), (10.0, 60), (5.0, 40), (0.0, 20))
SAVINGS_RATE_FLOOR = 0
DEBT_RATIO_BREAKPOINTS = ((20.0, 100), (30.0, 80), (40.0, 60), (50.0, 40))
DEBT_RATIO_FLOOR = 20
EMERGENCY_FUND_BREAKPOINTS = ((6.0, 100), (4.0, 80), (2.0, 60), (1.0, 40))
EMERGENCY_FUND_FLOOR = 20
NEUTRAL_BUDGET_SCORE = 50

SCORE_WEIGHTS = {
    'savings': 0.30,
    'debt': 0.25,
    'budget': 0.25,
    'emergency_fund': 0.20,
}

TREND_BANDS = ((70, 'improving'), (50, 'stable'))

HEALTH_LABELS = ((80, 'Excellent', '#10B981'), (60, 'Good', '#EAB308'), (40, 'Fair', '#F97316'))
HEALTH_FLOOR = ('Needs Improvement', '#EF4444')

AccountLike = Union[Account, Mapping[str, Any]]


def round_half_up(value: float, digits: int = 0) -> float:
    """Round like a calculator (2.5 -> 3), not like :func:`round` (2.5 -> 2)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(float(value))).quantize(quantum, rounding=ROUND_HALF_UP))


def score_at_least(value: float, table: Sequence[Tuple[float, int]], floor: int) -> int:
    for threshold, score in table:
        if value >= threshold:
            return score
    return floor


def score_below(value: float, table: Sequence[Tuple[float, int]], floor: int) -> int:
    for threshold, score in table:
        if value < threshold:
            return score
    return floor


def _account_fields(account: AccountLike) -> Tuple[str, float, Optional[str]]:
    if isinstance(account, Mapping):
        return str(account.get('type', '')), float(account.get('balance', 0.0)), account.get('currency')
    return account.type, float(account.balance), account.currency


def _account_balances(
    accounts: Iterable[AccountLike],
    types: set,
    currency: Optional[str],
    absolute: bool = False,
) -> float:
    total = 0.0
    for account in accounts:
        kind, balance, account_currency = _account_fields(account)
        if kind not in types:
            continue
        if currency and account_currency:
            balance = convert_currency(balance, account_currency, currency)
        total += abs(balance) if absolute else balance
    return total


def _window_income(frame: pd.DataFrame, as_of: Optional[datetime]) -> float:
    recent = trailing_window(frame, SAVINGS_WINDOW_DAYS, as_of)
    return float(income_rows(recent)['Amount'].sum())


def savings_rate_score(transactions: TransactionsLike, as_of: Optional[datetime] = None) -> Tuple[float, int]:
    """``(rate %, score)`` for the trailing 30 days; rate is 0 without income."""
    frame = transactions_to_frame(transactions)
    recent = trailing_window(frame, SAVINGS_WINDOW_DAYS, as_of)
    income = float(income_rows(recent)['Amount'].sum())
    expenses = float(expense_rows(recent)['Amount'].sum())

    rate = (income - expenses) / income * 100 if income > 0 else 0.0
    score = score_at_least(rate, SAVINGS_RATE_BREAKPOINTS, SAVINGS_RATE_FLOOR)
    return round_half_up(rate, 1), score


def debt_score(
    transactions: TransactionsLike,
    accounts: Iterable[AccountLike],
    as_of: Optional[datetime] = None,
    currency: Optional[str] = None,
) -> Tuple[float, int]:
    """``(debt-to-income %, score)``; ratio is 0 when there is no income."""
    frame = transactions_to_frame(transactions)
    monthly_income = _window_income(frame, as_of)
    total_debt = _account_balances(accounts, DEBT_ACCOUNT_TYPES, currency, absolute=True)

    ratio = total_debt / monthly_income * 100 if monthly_income > 0 else 0.0
    score = score_below(ratio, DEBT_RATIO_BREAKPOINTS, DEBT_RATIO_FLOOR)
    return round_half_up(ratio, 1), score


def budget_adherence_score(
    transactions: TransactionsLike,
    budgets: Sequence[Budget],
    as_of: Optional[datetime] = None,
) -> Tuple[float, int]:
    """``(adherence %, score)``; ``(0, 50)`` when no budgets exist."""
    if not budgets:
        return 0.0, NEUTRAL_BUDGET_SCORE

    frame = transactions_to_frame(transactions)
    recent = expense_rows(trailing_window(frame, SAVINGS_WINDOW_DAYS, as_of))
    spending = recent.groupby('Category')['Amount'].sum() if not recent.empty else pd.Series(dtype=float)

    within = sum(
        1 for budget in budgets
        if float(spending.get(budget.category, 0.0)) <= budget.monthly_amount
    )
    adherence = within / len(budgets) * 100
    return round_half_up(adherence, 1), int(round_half_up(adherence))


def emergency_fund_score(
    transactions: TransactionsLike,
    accounts: Iterable[AccountLike],
    as_of: Optional[datetime] = None,
    currency: Optional[str] = None,
) -> Tuple[float, int]:
    """``(months covered, score)``; months is 0 without expense history."""
    frame = transactions_to_frame(transactions)
    liquid = _account_balances(accounts, LIQUID_ACCOUNT_TYPES, currency)
    recent = expense_rows(trailing_window(frame, EXPENSE_AVERAGE_WINDOW_DAYS, as_of))
    avg_monthly_expenses = float(recent['Amount'].sum()) / EXPENSE_AVERAGE_MONTHS

    months = liquid / avg_monthly_expenses if avg_monthly_expenses > 0 else 0.0
    score = score_at_least(months, EMERGENCY_FUND_BREAKPOINTS, EMERGENCY_FUND_FLOOR)
    return round_half_up(months, 1), score


def overall_score(savings: int, debt: int, budget: int, emergency_fund: int) -> int:
    weighted = (
        savings * SCORE_WEIGHTS['savings']
        + debt * SCORE_WEIGHTS['debt']
        + budget * SCORE_WEIGHTS['budget']
        + emergency_fund * SCORE_WEIGHTS['emergency_fund']
    )
    return int(round_half_up(weighted))


def trend_for_score(score: int) -> str:
    for threshold, trend in TREND_BANDS:
        if score >= threshold:
            return trend
    return 'declining'


def generate_recommendations(
    savings_rate: float,
    debt_to_income_ratio: float,
    budget_adherence: float,
    emergency_fund_months: float,
) -> List[Recommendation]:
    """Apply the fixed rule table, in order; results are not ranked or deduplicated."""
    recommendations: List[Recommendation] = []

    if emergency_fund_months < 3:
        recommendations.append(Recommendation(
            'Emergency Fund', 'high',
            'Build your emergency fund to cover at least 3-6 months of expenses. '
            f'You currently have {emergency_fund_months:.1f} months covered.',
        ))

    if savings_rate < 10:
        recommendations.append(Recommendation(
            'Savings', 'high',
            f'Increase your savings rate to at least 10-20% of income. Current rate: {savings_rate:.1f}%.',
        ))
    elif savings_rate < 20:
        recommendations.append(Recommendation(
            'Savings', 'medium',
            'Good progress! Try to increase your savings rate to 20% for optimal financial health. '
            f'Current: {savings_rate:.1f}%.',
        ))

    if debt_to_income_ratio > 40:
        recommendations.append(Recommendation(
            'Debt', 'high',
            f'Your debt-to-income ratio is {debt_to_income_ratio:.1f}%. '
            'Focus on paying down high-interest debt to get below 30%.',
        ))
    elif debt_to_income_ratio > 30:
        recommendations.append(Recommendation(
            'Debt', 'medium',
            'Consider accelerating debt payments to reduce your debt-to-income ratio below 30%. '
            f'Current: {debt_to_income_ratio:.1f}%.',
        ))

    if budget_adherence < 70:
        recommendations.append(Recommendation(
            'Budgeting', 'high',
            f"You're staying within budget only {budget_adherence:.0f}% of the time. "
            'Review and adjust your budgets to be more realistic.',
        ))
    elif budget_adherence < 90:
        recommendations.append(Recommendation(
            'Budgeting', 'medium',
            f"Good budget adherence at {budget_adherence:.0f}%. Identify the categories where you're overspending.",
        ))

    if savings_rate >= 20 and emergency_fund_months >= 6:
        recommendations.append(Recommendation(
            'Overall', 'low',
            'Excellent financial health! Consider increasing investments or setting new financial goals.',
        ))

    return recommendations


def calculate_financial_health(
    transactions: TransactionsLike,
    budgets: Sequence[Budget],
    accounts: Iterable[AccountLike],
    as_of: Optional[datetime] = None,
    previous: Optional[FinancialHealth] = None,
    currency: Optional[str] = None,
    user_id: str = '',
) -> FinancialHealth:
    """Score a household's finances from already-loaded records.

    Args:
        transactions: Transaction records or a prepared frame.
        budgets: Budgets whose monthly limits are checked for adherence.
        accounts: Accounts (or ``{'type', 'balance'}`` mappings).
        as_of: End of the trailing windows; defaults to now.
        previous: Earlier snapshot used to fill ``score_change``.
        currency: Convert amounts and balances into this currency first.
        user_id: Stamped onto the result.

    Returns:
        A FinancialHealth snapshot with ``0 <= overall_score <= 100``.
    """
    accounts = list(accounts)
    frame = transactions_to_frame(transactions, currency=currency)
    as_of = as_of or datetime.now()

    savings_rate, savings_points = savings_rate_score(frame, as_of)
    debt_ratio, debt_points = debt_score(frame, accounts, as_of, currency)
    adherence, budget_points = budget_adherence_score(frame, budgets, as_of)
    fund_months, fund_points = emergency_fund_score(frame, accounts, as_of, currency)

    score = overall_score(savings_points, debt_points, budget_points, fund_points)
    change = score - previous.overall_score if previous is not None else 0

    logger.debug(
        "Health score %s (savings=%s debt=%s budget=%s emergency=%s)",
        score, savings_points, debt_points, budget_points, fund_points,
    )

    return FinancialHealth(
        overall_score=score,
        savings_rate=savings_rate,
        savings_rate_score=savings_points,
        debt_to_income_ratio=debt_ratio,
        debt_score=debt_points,
        budget_adherence=adherence,
        budget_score=budget_points,
        emergency_fund_months=fund_months,
        emergency_fund_score=fund_points,
        trend=trend_for_score(score),
        recommendations=generate_recommendations(savings_rate, debt_ratio, adherence, fund_months),
        score_change=change,
        user_id=user_id,
        calculated_at=as_of,
    )


def top_recommendations(health: FinancialHealth, limit: int = 3) -> List[Recommendation]:
    return health.recommendations[:max(limit, 0)]


def health_score_label(score: float) -> str:
    for threshold, label, _ in HEALTH_LABELS:
        if score >= threshold:
            return label
    return HEALTH_FLOOR[0]


def health_score_color(score: float) -> str:
    for threshold, _, color in HEALTH_LABELS:
        if score >= threshold:
            return color
    return HEALTH_FLOOR[1]
