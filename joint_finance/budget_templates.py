"""Starter budget templates scaled to a household's monthly income.

Each template is a table of ``(category, share of income, group type)``
rows.  Group types are ``needs``, ``wants``, ``savings`` and ``other``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .models import Budget

TEMPLATE_GROUP_TYPES = ('needs', 'wants', 'savings', 'other')

# 50% needs, 30% wants, 20% savings; shares are of total income
FIFTY_THIRTY_TWENTY: Tuple[Tuple[str, float, str], ...] = (
    ('Housing', 0.50 * 0.50, 'needs'),
    ('Food', 0.50 * 0.20, 'needs'),
    ('Transportation', 0.50 * 0.15, 'needs'),
    ('Utilities', 0.50 * 0.10, 'needs'),
    ('Insurance', 0.50 * 0.05, 'needs'),
    ('Entertainment', 0.30 * 0.33, 'wants'),
    ('Dining Out', 0.30 * 0.33, 'wants'),
    ('Shopping', 0.30 * 0.17, 'wants'),
    ('Hobbies', 0.30 * 0.17, 'wants'),
    ('Emergency Fund', 0.20 * 0.50, 'savings'),
    ('Retirement', 0.20 * 0.25, 'savings'),
    ('Debt Repayment', 0.20 * 0.25, 'savings'),
)

ZERO_BASED: Tuple[Tuple[str, float, str], ...] = (
    ('Housing', 0.30, 'needs'),
    ('Food & Groceries', 0.10, 'needs'),
    ('Transportation', 0.08, 'needs'),
    ('Utilities', 0.05, 'needs'),
    ('Insurance', 0.05, 'needs'),
    ('Healthcare', 0.05, 'needs'),
    ('Debt Payments', 0.10, 'savings'),
    ('Emergency Fund', 0.10, 'savings'),
    ('Retirement Savings', 0.07, 'savings'),
    ('Entertainment', 0.05, 'wants'),
    ('Personal Care', 0.03, 'wants'),
    ('Miscellaneous', 0.02, 'wants'),
)

ESSENTIALS_FIRST: Tuple[Tuple[str, float, str], ...] = (
    ('Housing/Rent', 0.30, 'needs'),
    ('Food & Groceries', 0.12, 'needs'),
    ('Utilities', 0.08, 'needs'),
    ('Transportation', 0.10, 'needs'),
    ('Insurance', 0.05, 'needs'),
    ('Healthcare', 0.05, 'needs'),
    ('Debt Minimum Payments', 0.10, 'needs'),
    ('Emergency Savings', 0.05, 'savings'),
    ('Personal Care', 0.03, 'wants'),
    ('Entertainment', 0.05, 'wants'),
    ('Additional Savings', 0.05, 'savings'),
    ('Miscellaneous', 0.02, 'other'),
)

TEMPLATE_DEFINITIONS = {
    '50-30-20': (
        '50/30/20 Rule',
        'Allocate 50% to needs, 30% to wants, and 20% to savings and debt repayment',
        FIFTY_THIRTY_TWENTY,
    ),
    'zero-based': (
        'Zero-Based Budget',
        'Assign every shekel a specific purpose until income minus expenses equals zero',
        ZERO_BASED,
    ),
    'essentials-first': (
        'Essentials First',
        'Cover all essential expenses first, then allocate remaining funds',
        ESSENTIALS_FIRST,
    ),
}


@dataclass
class TemplateCategory:
    name: str
    amount: float
    percentage: float
    type: str


@dataclass
class BudgetTemplate:
    id: str
    name: str
    description: str
    monthly_income: float
    categories: List[TemplateCategory] = field(default_factory=list)


def build_template(template_id: str, monthly_income: float) -> BudgetTemplate:
    """Instantiate a template for ``monthly_income``.

    Raises:
        ValueError: If ``template_id`` is not a known template.
    """
    if template_id not in TEMPLATE_DEFINITIONS:
        raise ValueError(
            f"Unknown budget template '{template_id}'. Expected one of: {', '.join(TEMPLATE_DEFINITIONS)}"
        )
    name, description, rows = TEMPLATE_DEFINITIONS[template_id]
    categories = [
        TemplateCategory(category, monthly_income * share, round(share * 100, 2), group_type)
        for category, share, group_type in rows
    ]
    return BudgetTemplate(template_id, name, description, monthly_income, categories)


def get_budget_templates(monthly_income: float) -> List[BudgetTemplate]:
    return [build_template(template_id, monthly_income) for template_id in TEMPLATE_DEFINITIONS]


def get_template_by_id(template_id: str, monthly_income: float) -> Optional[BudgetTemplate]:
    if template_id not in TEMPLATE_DEFINITIONS:
        return None
    return build_template(template_id, monthly_income)


def template_to_budgets(template: BudgetTemplate, user_id: str = '') -> List[Budget]:
    """Monthly budgets for every category in ``template``."""
    return [
        Budget(
            category=category.name,
            amount=category.amount,
            period='monthly',
            name=f"{category.name} Budget",
            user_id=user_id,
        )
        for category in template.categories
    ]


def template_groups(template: BudgetTemplate) -> Dict[str, List[str]]:
    """Group type -> category names, usable with ``aggregate_budgets_by_group``."""
    groups: Dict[str, List[str]] = {group_type: [] for group_type in TEMPLATE_GROUP_TYPES}
    for category in template.categories:
        groups.setdefault(category.type, []).append(category.name)
    return groups


def calculate_template_totals(template: BudgetTemplate) -> Dict[str, float]:
    """Totals per group type and what is left of income after allocation."""
    totals = {group_type: 0.0 for group_type in TEMPLATE_GROUP_TYPES}
    for category in template.categories:
        totals[category.type] = totals.get(category.type, 0.0) + category.amount
    allocated = sum(totals.values())
    return {
        'total_needs': totals['needs'],
        'total_wants': totals['wants'],
        'total_savings': totals['savings'],
        'total_other': totals['other'],
        'total_allocated': allocated,
        'unallocated': template.monthly_income - allocated,
    }
