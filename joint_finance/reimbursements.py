"""Tracking for expenses that someone else is expected to pay back.

A reimbursable expense moves from ``pending`` to ``received`` (optionally
linked to the income transaction that repaid it) or ``denied``.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .config import REIMBURSEMENT_OVERDUE_DAYS
from .health import round_half_up
from .models import Transaction

STATUS_LABELS = {
    'not_reimbursable': 'Not Reimbursable',
    'pending': 'Pending',
    'received': 'Received',
    'denied': 'Denied',
}

STATUS_COLORS = {
    'not_reimbursable': '#6B7280',
    'pending': '#EAB308',
    'received': '#10B981',
    'denied': '#EF4444',
}


def _timestamp(value: Any) -> pd.Timestamp:
    return pd.Timestamp(value)


def _received_amount(txn: Transaction) -> float:
    return txn.reimbursement_amount if txn.reimbursement_amount is not None else txn.amount


def net_expense(expense_amount: float, reimbursement_amount: float = 0.0) -> float:
    return expense_amount - reimbursement_amount


def pending_reimbursements(transactions: Iterable[Transaction]) -> Dict[str, Any]:
    """Total, count and oldest date of reimbursable expenses still pending."""
    pending = [
        t for t in transactions
        if t.is_reimbursable and t.reimbursement_status == 'pending'
    ]
    oldest = min((_timestamp(t.date) for t in pending), default=None)
    return {
        'total_pending': sum(t.amount for t in pending),
        'count': len(pending),
        'oldest_date': oldest.to_pydatetime() if oldest is not None else None,
        'transactions': pending,
    }


def reimbursement_stats(
    transactions: Iterable[Transaction],
    start_date: Any,
    end_date: Any,
) -> Dict[str, float]:
    """Totals and turnaround for reimbursable expenses dated within the range.

    ``reimbursement_rate`` is received / (received + denied) * 100 and is 0
    when nothing has been decided yet.
    """
    start, end = _timestamp(start_date), _timestamp(end_date)
    scoped = [
        t for t in transactions
        if t.is_reimbursable and start <= _timestamp(t.date) <= end
    ]
    pending = [t for t in scoped if t.reimbursement_status == 'pending']
    received = [t for t in scoped if t.reimbursement_status == 'received']
    denied = [t for t in scoped if t.reimbursement_status == 'denied']

    total_received = sum(_received_amount(t) for t in received)
    total_denied = sum(t.amount for t in denied)

    turnaround = [
        (_timestamp(t.reimbursement_date) - _timestamp(t.date)).days
        for t in received
        if t.reimbursement_date is not None
    ]
    average_days = sum(turnaround) / len(turnaround) if turnaround else 0.0

    requested = total_received + total_denied
    rate = total_received / requested * 100 if requested > 0 else 0.0

    return {
        'total_reimbursable': sum(t.amount for t in scoped),
        'total_pending': sum(t.amount for t in pending),
        'total_received': total_received,
        'total_denied': total_denied,
        'pending_count': len(pending),
        'received_count': len(received),
        'denied_count': len(denied),
        'average_days_to_reimburse': int(round_half_up(average_days)),
        'reimbursement_rate': round_half_up(rate, 1),
    }


def is_reimbursement_overdue(
    transaction: Transaction,
    days_threshold: int = REIMBURSEMENT_OVERDUE_DAYS,
    as_of: Optional[datetime] = None,
) -> bool:
    if not transaction.is_reimbursable or transaction.reimbursement_status != 'pending':
        return False
    reference = _timestamp(as_of) if as_of is not None else pd.Timestamp.now()
    return (reference - _timestamp(transaction.date)).days > days_threshold


def link_reimbursement(expense: Transaction, income: Transaction) -> Tuple[Transaction, Transaction]:
    """Mark ``expense`` as repaid by ``income`` and cross-link both.

    Returns updated copies; the originals are left untouched.

    Raises:
        ValueError: If the pair is not an expense followed by an income.
    """
    if expense.type != 'expense' or income.type != 'income':
        raise ValueError("A reimbursement links an expense to an income transaction")
    updated_expense = replace(
        expense,
        is_reimbursable=True,
        linked_reimbursement_id=income.id,
        reimbursement_status='received',
        reimbursement_amount=income.amount,
        reimbursement_date=income.date,
    )
    updated_income = replace(
        income,
        original_expense_id=expense.id,
        notes=f"Reimbursement for: {expense.description}",
    )
    return updated_expense, updated_income


def category_reimbursement_breakdown(transactions: Iterable[Transaction]) -> List[Dict[str, Any]]:
    """Per-category totals split by reimbursement status, in first-seen order."""
    breakdown: Dict[str, Dict[str, float]] = {}
    for txn in transactions:
        if not txn.is_reimbursable:
            continue
        entry = breakdown.setdefault(
            txn.category,
            {'total_reimbursable': 0.0, 'pending': 0.0, 'received': 0.0, 'denied': 0.0},
        )
        entry['total_reimbursable'] += txn.amount
        if txn.reimbursement_status == 'pending':
            entry['pending'] += txn.amount
        elif txn.reimbursement_status == 'received':
            entry['received'] += _received_amount(txn)
        elif txn.reimbursement_status == 'denied':
            entry['denied'] += txn.amount

    return [{'category': category, **values} for category, values in breakdown.items()]


def reimbursement_status_label(status: str) -> str:
    return STATUS_LABELS[status]


def reimbursement_status_color(status: str) -> str:
    return STATUS_COLORS[status]
