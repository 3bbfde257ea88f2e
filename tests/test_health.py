from datetime import datetime, timedelta
from itertools import product

import pytest

from joint_finance.health import (
    NEUTRAL_BUDGET_SCORE,
    budget_adherence_score,
    calculate_financial_health,
    debt_score,
    emergency_fund_score,
    generate_recommendations,
    health_score_color,
    health_score_label,
    overall_score,
    round_half_up,
    savings_rate_score,
    top_recommendations,
    trend_for_score,
)
from joint_finance.models import Account, Budget, Transaction

AS_OF = datetime(2024, 10, 20, 12, 0)


def txn(days_ago, amount, type_, category='General', status='actual'):
    return Transaction(
        date=AS_OF - timedelta(days=days_ago),
        description=category,
        amount=amount,
        category=category,
        type=type_,
        status=status,
    )


def test_savings_rate_example():
    transactions = [txn(5, 10000, 'income', 'Salary'), txn(3, 7000, 'expense', 'Rent')]
    rate, score = savings_rate_score(transactions, AS_OF)
    assert rate == 30.0
    assert score == 100


@pytest.mark.parametrize(
    "expenses, expected",
    [(800, 100), (850, 80), (880, 60), (930, 40), (1000, 20), (1200, 0)],
)
def test_savings_rate_breakpoints(expenses, expected):
    transactions = [txn(1, 1000, 'income'), txn(1, expenses, 'expense')]
    assert savings_rate_score(transactions, AS_OF)[1] == expected


def test_savings_rate_ignores_old_and_non_actual_rows():
    transactions = [
        txn(5, 1000, 'income'),
        txn(2, 500, 'expense', status='projected'),
        txn(3, 300, 'expense', status='pending'),
        txn(45, 900, 'expense'),
    ]
    rate, score = savings_rate_score(transactions, AS_OF)
    assert rate == 100.0
    assert score == 100


def test_savings_rate_without_income_is_zero():
    rate, score = savings_rate_score([txn(1, 250, 'expense')], AS_OF)
    assert rate == 0.0
    assert score == 20


def test_no_debt_scores_100_even_without_income():
    assert debt_score([], [], AS_OF) == (0.0, 100)
    accounts = [Account(name='Checking', type='checking', balance=5000)]
    assert debt_score([txn(1, 4000, 'income')], accounts, AS_OF) == (0.0, 100)


@pytest.mark.parametrize(
    "debt, expected",
    [(100, 100), (200, 80), (350, 60), (450, 40), (500, 20), (2000, 20)],
)
def test_debt_ratio_breakpoints(debt, expected):
    accounts = [Account(name='Card', type='credit', balance=-debt)]
    ratio, score = debt_score([txn(1, 1000, 'income')], accounts, AS_OF)
    assert ratio == pytest.approx(debt / 10)
    assert score == expected


def test_debt_uses_absolute_balances_of_credit_and_debt_accounts():
    accounts = [
        {'type': 'credit', 'balance': -150},
        {'type': 'debt', 'balance': 100},
        {'type': 'savings', 'balance': -999},
    ]
    ratio, _ = debt_score([txn(1, 1000, 'income')], accounts, AS_OF)
    assert ratio == 25.0


def test_zero_budgets_is_neutral():
    assert budget_adherence_score([txn(1, 100, 'expense')], [], AS_OF) == (0.0, NEUTRAL_BUDGET_SCORE)
    assert NEUTRAL_BUDGET_SCORE == 50


def test_budget_adherence_uses_monthly_limits():
    transactions = [txn(2, 450, 'expense', 'Groceries'), txn(2, 300, 'expense', 'Dining')]
    budgets = [
        Budget(category='Groceries', amount=100, period='weekly'),  # 433 per month
        Budget(category='Dining', amount=300),
        Budget(category='Travel', amount=1000),
    ]
    adherence, score = budget_adherence_score(transactions, budgets, AS_OF)
    assert adherence == pytest.approx(66.7)
    assert score == 67


def test_emergency_fund_example():
    # 3000 over 90 days is an average monthly expense of 1000
    transactions = [txn(10, 1000, 'expense'), txn(40, 1000, 'expense'), txn(70, 1000, 'expense')]
    months, score = emergency_fund_score(transactions, [], AS_OF)
    assert months == 0.0
    assert score == 20


@pytest.mark.parametrize(
    "liquid, expected",
    [(6000, 100), (4500, 80), (2000, 60), (1000, 40), (999, 20)],
)
def test_emergency_fund_breakpoints(liquid, expected):
    transactions = [txn(10, 3000, 'expense')]
    accounts = [
        Account(name='Checking', type='checking', balance=liquid / 2),
        Account(name='Savings', type='savings', balance=liquid / 2),
        Account(name='Brokerage', type='investment', balance=50000),
    ]
    assert emergency_fund_score(transactions, accounts, AS_OF)[1] == expected


def test_emergency_fund_without_expenses():
    accounts = [Account(name='Savings', type='savings', balance=10000)]
    assert emergency_fund_score([], accounts, AS_OF) == (0.0, 20)


def test_overall_score_weights_and_half_up_rounding():
    assert overall_score(100, 100, 100, 100) == 100
    assert overall_score(0, 0, 0, 0) == 0
    # 0.3*40 + 0.25*60 + 0.25*50 + 0.2*20 = 43.5
    assert overall_score(40, 60, 50, 20) == 44
    assert round_half_up(2.5) == 3
    assert round_half_up(0.05, 1) == 0.1


def test_overall_score_bounds_over_all_breakpoints():
    savings = [0, 20, 40, 60, 80, 100]
    others = [20, 40, 60, 80, 100]
    budget = [0, 13, 50, 67, 100]
    for s, d, b, e in product(savings, others, budget, others):
        assert 0 <= overall_score(s, d, b, e) <= 100


def test_trend_bands():
    assert trend_for_score(70) == 'improving'
    assert trend_for_score(69) == 'stable'
    assert trend_for_score(50) == 'stable'
    assert trend_for_score(49) == 'declining'


def test_calculate_financial_health_end_to_end():
    transactions = [
        txn(5, 10000, 'income', 'Salary'),
        txn(3, 7000, 'expense', 'Rent'),
        txn(40, 2000, 'expense', 'Rent'),
    ]
    budgets = [Budget(category='Rent', amount=8000)]
    accounts = [
        Account(name='Checking', type='checking', balance=12000),
        Account(name='Card', type='credit', balance=-1500),
    ]
    health = calculate_financial_health(transactions, budgets, accounts, as_of=AS_OF, user_id='alice')

    assert health.savings_rate_score == 100
    assert health.debt_to_income_ratio == 15.0
    assert health.debt_score == 100
    assert health.budget_score == 100
    # 12000 / (9000 / 3) = 4 months
    assert health.emergency_fund_months == 4.0
    assert health.emergency_fund_score == 80
    assert health.overall_score == 96
    assert health.trend == 'improving'
    assert health.score_change == 0
    assert health.user_id == 'alice'
    assert health.calculated_at == AS_OF


def test_degenerate_inputs_never_raise():
    health = calculate_financial_health([], [], [], as_of=AS_OF)
    assert health.savings_rate == 0.0
    assert health.savings_rate_score == 20
    assert health.debt_score == 100
    assert health.budget_score == 50
    assert health.emergency_fund_score == 20
    # 0.3*20 + 0.25*100 + 0.25*50 + 0.2*20 = 47.5
    assert health.overall_score == 48
    assert 0 <= health.overall_score <= 100


def test_score_change_against_previous_snapshot():
    previous = calculate_financial_health([], [], [], as_of=AS_OF)
    transactions = [txn(5, 10000, 'income'), txn(3, 7000, 'expense')]
    current = calculate_financial_health(transactions, [], [], as_of=AS_OF, previous=previous)
    assert current.score_change == current.overall_score - previous.overall_score


def test_currency_conversion_applies_to_transactions_and_accounts():
    transactions = [
        Transaction(date=AS_OF, description='Pay', amount=1000, category='Salary', type='income', currency='USD'),
        Transaction(date=AS_OF, description='Rent', amount=1825, category='Rent', type='expense', currency='ILS'),
    ]
    health = calculate_financial_health(transactions, [], [], as_of=AS_OF, currency='ILS')
    # 1000 USD is 3650 ILS; half of it is spent
    assert health.savings_rate == 50.0


def test_recommendations_follow_rule_order():
    recs = generate_recommendations(savings_rate=5, debt_to_income_ratio=45, budget_adherence=50, emergency_fund_months=1)
    assert [(r.category, r.priority) for r in recs] == [
        ('Emergency Fund', 'high'),
        ('Savings', 'high'),
        ('Debt', 'high'),
        ('Budgeting', 'high'),
    ]


def test_recommendations_medium_tiers():
    recs = generate_recommendations(savings_rate=15, debt_to_income_ratio=35, budget_adherence=80, emergency_fund_months=4)
    assert [(r.category, r.priority) for r in recs] == [
        ('Savings', 'medium'),
        ('Debt', 'medium'),
        ('Budgeting', 'medium'),
    ]


def test_recommendations_positive_only_when_healthy():
    recs = generate_recommendations(savings_rate=25, debt_to_income_ratio=10, budget_adherence=95, emergency_fund_months=8)
    assert len(recs) == 1
    assert recs[0].category == 'Overall'
    assert recs[0].priority == 'low'


def test_recommendation_message_includes_metric():
    recs = generate_recommendations(savings_rate=30, debt_to_income_ratio=0, budget_adherence=100, emergency_fund_months=2.5)
    assert '2.5 months' in recs[0].message


def test_top_recommendations_truncates():
    health = calculate_financial_health([], [], [], as_of=AS_OF)
    assert len(top_recommendations(health, 1)) == 1
    assert top_recommendations(health, 0) == []


@pytest.mark.parametrize(
    "score, label, color",
    [(95, 'Excellent', '#10B981'), (60, 'Good', '#EAB308'), (45, 'Fair', '#F97316'), (10, 'Needs Improvement', '#EF4444')],
)
def test_health_labels(score, label, color):
    assert health_score_label(score) == label
    assert health_score_color(score) == color
