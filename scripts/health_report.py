#!/usr/bin/env python3
"""Print the financial health score and budget status from the ledger."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from joint_finance import db
from joint_finance.analytics import transactions_to_frame
from joint_finance.budgets import budget_status_frame, budget_totals
from joint_finance.config import BASE_CURRENCY
from joint_finance.currency import currency_name, format_currency
from joint_finance.health import calculate_financial_health, health_score_label, top_recommendations
from joint_finance.logging_config import configure_logging
from joint_finance.models import PERIODS
from joint_finance.periods import format_period_date_range

logger = logging.getLogger(__name__)


def main(
    user_id: Optional[str] = None,
    joint_view: bool = False,
    period: str = 'monthly',
    currency: str = BASE_CURRENCY,
    limit: int = 3,
) -> None:
    db.init_db()
    transactions = transactions_to_frame(
        db.fetch_transactions(user_id=user_id, joint_view=joint_view), currency=currency,
    )
    budgets = db.fetch_budgets(user_id=None if joint_view else user_id, active_only=True)
    accounts = db.fetch_accounts(user_id=user_id, joint_view=joint_view)
    logger.info(
        "Loaded %d transactions, %d budgets, %d accounts",
        len(transactions), len(budgets), len(accounts),
    )

    health = calculate_financial_health(
        transactions, budgets, accounts, currency=currency, user_id=user_id or '',
    )
    print(f"Reporting in {currency_name(currency)} ({currency})")
    print(f"Financial health: {health.overall_score}/100 ({health_score_label(health.overall_score)}, {health.trend})")
    print(f"  Savings rate:      {health.savings_rate:.1f}%  -> {health.savings_rate_score}")
    print(f"  Debt-to-income:    {health.debt_to_income_ratio:.1f}%  -> {health.debt_score}")
    print(f"  Budget adherence:  {health.budget_adherence:.1f}%  -> {health.budget_score}")
    print(f"  Emergency fund:    {health.emergency_fund_months:.1f} months  -> {health.emergency_fund_score}")

    recommendations = top_recommendations(health, limit)
    if recommendations:
        print("\nRecommendations:")
        for rec in recommendations:
            print(f"  [{rec.priority}] {rec.category}: {rec.message}")

    status = budget_status_frame(transactions, budgets, period=period)
    if status.empty:
        print("\nNo active budgets.")
        return

    print(f"\nBudgets ({format_period_date_range(period)}):")
    display = status[['Name', 'Limit', 'Spent', 'Remaining', 'Available', 'Percentage', 'Status']].copy()
    for column in ('Limit', 'Spent', 'Remaining', 'Available'):
        display[column] = display[column].map(lambda value: format_currency(value, currency))
    display['Percentage'] = display['Percentage'].map(lambda value: f"{value:.0f}%")
    print(display.to_string(index=False))

    totals = budget_totals(status)
    print(
        f"\nTotal: {format_currency(totals['spent'], currency)} of "
        f"{format_currency(totals['limit'], currency)} ({totals['percentage']:.0f}%, {totals['status']})"
    )


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description='Show financial health and budget status.')
    parser.add_argument('--user', default=None, help='User id for the personal view')
    parser.add_argument('--joint', action='store_true', help='Include every household member')
    parser.add_argument('--period', choices=PERIODS, default='monthly', help='Budget display period')
    parser.add_argument('--currency', default=BASE_CURRENCY, help='Reporting currency')
    parser.add_argument('--limit', type=int, default=3, help='How many recommendations to show')
    parser.add_argument('--verbose', action='store_true', help='Log at DEBUG level')
    return parser.parse_args(argv)


if __name__ == '__main__':
    args = parse_args()
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    main(
        user_id=args.user,
        joint_view=args.joint,
        period=args.period,
        currency=args.currency.upper(),
        limit=args.limit,
    )
