"""Record types shared by the ledger, aggregators and scorers.

These are plain data classes so the arithmetic modules can work on
in-memory lists without touching the database layer.  Vocabulary values
(transaction types, statuses, periods) are kept as lowercase strings and
validated on construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from .config import BASE_CURRENCY

DateLike = Union[date, datetime, str]

PERIODS = ('weekly', 'monthly', 'yearly')
TRANSACTION_TYPES = ('income', 'expense')
TRANSACTION_STATUSES = ('projected', 'pending', 'actual')
ACCOUNT_TYPES = ('checking', 'savings', 'credit', 'debt', 'investment', 'cash', 'other')
LIQUID_ACCOUNT_TYPES = {'checking', 'savings'}
DEBT_ACCOUNT_TYPES = {'credit', 'debt'}
REIMBURSEMENT_STATUSES = ('not_reimbursable', 'pending', 'received', 'denied')
RECURRING_FREQUENCIES = ('daily', 'weekly', 'biweekly', 'monthly', 'quarterly', 'yearly')


def _check_choice(value: str, choices, label: str) -> str:
    if value not in choices:
        raise ValueError(f"Unknown {label} '{value}'. Expected one of: {', '.join(choices)}")
    return value


@dataclass
class Transaction:
    """A single income or expense entry."""
    date: DateLike
    description: str
    amount: float
    category: str
    type: str
    status: str = 'actual'
    currency: str = BASE_CURRENCY
    user_id: str = ''
    account_id: Optional[int] = None
    is_joint: bool = False
    is_reimbursable: bool = False
    reimbursement_status: str = 'not_reimbursable'
    reimbursement_amount: Optional[float] = None
    reimbursement_date: Optional[DateLike] = None
    linked_reimbursement_id: Optional[int] = None
    original_expense_id: Optional[int] = None
    recurring_id: Optional[int] = None
    notes: Optional[str] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        _check_choice(self.type, TRANSACTION_TYPES, 'transaction type')
        _check_choice(self.status, TRANSACTION_STATUSES, 'transaction status')
        _check_choice(self.reimbursement_status, REIMBURSEMENT_STATUSES, 'reimbursement status')


@dataclass
class Budget:
    """Spending limit for one category over a weekly, monthly or yearly period.

    ``spent`` is derived by the aggregator and never stored authoritatively.
    """
    category: str
    amount: float
    period: str = 'monthly'
    name: str = ''
    user_id: str = ''
    starting_balance: float = 0.0
    alert_threshold: float = 80.0
    is_active: bool = True
    spent: float = 0.0
    id: Optional[int] = None

    def __post_init__(self) -> None:
        _check_choice(self.period, PERIODS, 'budget period')
        if not self.name:
            self.name = self.category

    @property
    def monthly_amount(self) -> float:
        from .periods import convert_budget_amount
        return convert_budget_amount(self.amount, self.period, 'monthly')

    @property
    def weekly_amount(self) -> float:
        from .periods import convert_budget_amount
        return convert_budget_amount(self.amount, self.period, 'weekly')

    @property
    def yearly_amount(self) -> float:
        from .periods import convert_budget_amount
        return convert_budget_amount(self.amount, self.period, 'yearly')


@dataclass
class Account:
    name: str
    type: str
    balance: float = 0.0
    currency: str = BASE_CURRENCY
    ownership: str = 'individual'
    owner_id: str = ''
    credit_limit: Optional[float] = None
    id: Optional[int] = None

    def __post_init__(self) -> None:
        _check_choice(self.type, ACCOUNT_TYPES, 'account type')


@dataclass
class Debt:
    name: str
    total_amount: float
    remaining_amount: float
    interest_rate: float = 0.0
    minimum_payment: float = 0.0
    due_date: Optional[DateLike] = None
    user_id: str = ''
    id: Optional[int] = None


@dataclass
class Goal:
    name: str
    target_amount: float
    current_amount: float = 0.0
    target_date: Optional[DateLike] = None
    priority: str = 'medium'
    user_id: str = ''
    id: Optional[int] = None


@dataclass
class RecurringTemplate:
    """Blueprint that the recurring processor turns into concrete transactions."""
    description: str
    amount: float
    category: str
    type: str
    frequency: str
    start_date: DateLike
    next_occurrence: Optional[DateLike] = None
    end_date: Optional[DateLike] = None
    last_generated: Optional[DateLike] = None
    paused_until: Optional[DateLike] = None
    is_active: bool = True
    currency: str = BASE_CURRENCY
    account_id: Optional[int] = None
    user_id: str = ''
    is_joint: bool = False
    id: Optional[int] = None

    def __post_init__(self) -> None:
        _check_choice(self.type, TRANSACTION_TYPES, 'transaction type')
        _check_choice(self.frequency, RECURRING_FREQUENCIES, 'recurring frequency')


@dataclass
class Recommendation:
    category: str
    priority: str
    message: str
    actionable: bool = True


@dataclass
class FinancialHealth:
    """Derived health snapshot; recomputed on demand, never persisted."""
    overall_score: int
    savings_rate: float
    savings_rate_score: int
    debt_to_income_ratio: float
    debt_score: int
    budget_adherence: float
    budget_score: int
    emergency_fund_months: float
    emergency_fund_score: int
    trend: str
    recommendations: List[Recommendation] = field(default_factory=list)
    score_change: int = 0
    user_id: str = ''
    calculated_at: datetime = field(default_factory=datetime.now)


@dataclass
class Alert:
    type: str
    title: str
    message: str
    severity: str
    metadata: Dict[str, Any] = field(default_factory=dict)
