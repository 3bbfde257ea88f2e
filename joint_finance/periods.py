"""Budget period conversion and date-range helpers.

Amounts move between weekly, monthly and yearly bases through an
implicit monthly amount.  A month is 4.33 weeks; a year is 12 months.
``WEEKS_PER_YEAR`` is kept for display purposes only and never feeds the
conversion, so weekly -> yearly is ``x * 4.33 * 12`` (51.96 weeks).

Example:
    >>> convert_budget_amount(100, 'weekly', 'monthly')
    433.0
    >>> calculate_all_periods(1200, 'yearly')['monthly']
    100.0
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Dict, Optional, Tuple, Union

import pandas as pd

from .models import PERIODS

WEEKS_PER_MONTH = 4.33
MONTHS_PER_YEAR = 12
WEEKS_PER_YEAR = 52

PERIOD_LABELS = {
    'weekly': 'per week',
    'monthly': 'per month',
    'yearly': 'per year',
}


def _validate_period(period: str) -> str:
    if period not in PERIODS:
        raise ValueError(f"Unknown budget period '{period}'. Expected one of: {', '.join(PERIODS)}")
    return period


def convert_budget_amount(amount: float, from_period: str, to_period: str) -> float:
    """Convert ``amount`` from one budget period to another.

    Converting to the same period returns ``amount`` unchanged.  Chained
    conversions may drift by fractions of a cent; this is not corrected.
    """
    _validate_period(from_period)
    _validate_period(to_period)
    if from_period == to_period:
        return amount

    if from_period == 'weekly':
        monthly = amount * WEEKS_PER_MONTH
    elif from_period == 'yearly':
        monthly = amount / MONTHS_PER_YEAR
    else:
        monthly = amount

    if to_period == 'weekly':
        return monthly / WEEKS_PER_MONTH
    if to_period == 'yearly':
        return monthly * MONTHS_PER_YEAR
    return monthly


def calculate_all_periods(amount: float, base_period: str) -> Dict[str, float]:
    """Express ``amount`` in every supported period."""
    return {period: convert_budget_amount(amount, base_period, period) for period in PERIODS}


def period_multiplier(period: str) -> float:
    """Multiplier that turns a monthly amount into ``period``."""
    _validate_period(period)
    if period == 'weekly':
        return 1 / WEEKS_PER_MONTH
    if period == 'yearly':
        return float(MONTHS_PER_YEAR)
    return 1.0


def format_period_label(period: str) -> str:
    return PERIOD_LABELS[_validate_period(period)]


def _as_datetime(value: Optional[Union[date, datetime, str]]) -> datetime:
    if value is None:
        return datetime.now()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return pd.to_datetime(value).to_pydatetime()


def period_date_range(
    period: str,
    reference: Optional[Union[date, datetime, str]] = None,
) -> Tuple[datetime, datetime]:
    """Return the inclusive ``(start, end)`` of the period containing ``reference``.

    Weeks run Sunday to Saturday; months and years are calendar ranges.
    """
    _validate_period(period)
    ref = _as_datetime(reference)
    day = ref.date()

    if period == 'weekly':
        # date.weekday(): Monday=0 ... Sunday=6
        start_day = day - timedelta(days=(day.weekday() + 1) % 7)
        end_day = start_day + timedelta(days=6)
    elif period == 'monthly':
        start_day = day.replace(day=1)
        end_day = (pd.Timestamp(start_day) + pd.offsets.MonthEnd(0)).date()
    else:
        start_day = day.replace(month=1, day=1)
        end_day = day.replace(month=12, day=31)

    return datetime.combine(start_day, time.min), datetime.combine(end_day, time.max)


def format_period_date_range(
    period: str,
    reference: Optional[Union[date, datetime, str]] = None,
) -> str:
    """Human readable range, e.g. ``"Oct 18 - Oct 24"``.

    The year is appended only when the range crosses a year boundary.
    """
    start, end = period_date_range(period, reference)
    show_year = start.year != end.year

    def _fmt(value: datetime) -> str:
        text = f"{value.strftime('%b')} {value.day}"
        return f"{text}, {value.year}" if show_year else text

    return f"{_fmt(start)} - {_fmt(end)}"


def calculate_whats_left(
    income: float,
    expenses: float,
    starting_balance: float = 0.0,
) -> Dict[str, Union[float, bool]]:
    """Money left for the period after expenses, including any carried balance."""
    whats_left = income - expenses + starting_balance
    percentage_used = (expenses / income * 100) if income > 0 else 0.0
    return {
        'whats_left': whats_left,
        'is_deficit': whats_left < 0,
        'percentage_used': percentage_used,
    }
