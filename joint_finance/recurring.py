"""Scheduling for recurring income and expense templates."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .models import RecurringTemplate, Transaction

logger = logging.getLogger(__name__)

FREQUENCY_OFFSETS: Dict[str, pd.DateOffset] = {
    'daily': pd.DateOffset(days=1),
    'weekly': pd.DateOffset(days=7),
    'biweekly': pd.DateOffset(days=14),
    'monthly': pd.DateOffset(months=1),
    'quarterly': pd.DateOffset(months=3),
    'yearly': pd.DateOffset(years=1),
}

# Occurrences per month, used to express any template as a monthly amount
MONTHLY_MULTIPLIERS: Dict[str, float] = {
    'daily': 365 / 12,
    'weekly': 52 / 12,
    'biweekly': 26 / 12,
    'monthly': 1.0,
    'quarterly': 1 / 3,
    'yearly': 1 / 12,
}

AUTO_GENERATED_SUFFIX = ' (Auto-generated)'


def calculate_next_occurrence(current: Any, frequency: str) -> datetime:
    """Date of the occurrence after ``current``.

    Unknown frequencies fall back to monthly.  Month arithmetic clamps to the
    last day of shorter months (Jan 31 -> Feb 28/29).
    """
    offset = FREQUENCY_OFFSETS.get(frequency, FREQUENCY_OFFSETS['monthly'])
    return (pd.Timestamp(current) + offset).to_pydatetime()


def monthly_equivalent(template: RecurringTemplate) -> float:
    return template.amount * MONTHLY_MULTIPLIERS[template.frequency]


def _is_paused(template: RecurringTemplate, as_of: pd.Timestamp) -> bool:
    return template.paused_until is not None and pd.Timestamp(template.paused_until) > as_of


def generate_due_transactions(
    templates: Iterable[RecurringTemplate],
    as_of: Optional[Any] = None,
) -> Tuple[List[Transaction], List[RecurringTemplate]]:
    """Materialize every occurrence due on or before ``as_of``.

    Missed occurrences are caught up, each dated on its own scheduled day.

    Returns:
        ``(new_transactions, updated_templates)``; templates carry the advanced
        ``next_occurrence`` and ``last_generated`` values.
    """
    reference = pd.Timestamp(as_of) if as_of is not None else pd.Timestamp.now()
    created: List[Transaction] = []
    updated: List[RecurringTemplate] = []

    for template in templates:
        if not template.is_active or _is_paused(template, reference):
            updated.append(template)
            continue

        occurrence = pd.Timestamp(template.next_occurrence or template.start_date)
        end = pd.Timestamp(template.end_date) if template.end_date is not None else None
        last_generated = template.last_generated

        while occurrence <= reference and (end is None or occurrence <= end):
            created.append(Transaction(
                date=occurrence.date(),
                description=f"{template.description}{AUTO_GENERATED_SUFFIX}",
                amount=template.amount,
                category=template.category,
                type=template.type,
                status='actual',
                currency=template.currency,
                user_id=template.user_id,
                account_id=template.account_id,
                is_joint=template.is_joint,
                recurring_id=template.id,
            ))
            last_generated = occurrence.date()
            occurrence = pd.Timestamp(calculate_next_occurrence(occurrence, template.frequency))

        still_active = end is None or occurrence <= end
        updated.append(replace(
            template,
            next_occurrence=occurrence.date(),
            last_generated=last_generated,
            is_active=still_active,
        ))

    logger.info("Generated %d recurring transactions", len(created))
    return created, updated


def upcoming_occurrences(template: RecurringTemplate, count: int = 3) -> List[date]:
    """The next ``count`` scheduled dates for a template."""
    occurrence = pd.Timestamp(template.next_occurrence or template.start_date)
    dates = []
    for _ in range(max(count, 0)):
        dates.append(occurrence.date())
        occurrence = pd.Timestamp(calculate_next_occurrence(occurrence, template.frequency))
    return dates
