import pytest

from joint_finance.budget_templates import (
    build_template,
    calculate_template_totals,
    get_budget_templates,
    get_template_by_id,
    template_groups,
    template_to_budgets,
)
from joint_finance.budgets import aggregate_budgets_by_group


def test_all_templates_available():
    templates = get_budget_templates(10000)
    assert [t.id for t in templates] == ['50-30-20', 'zero-based', 'essentials-first']


@pytest.mark.parametrize("template_id", ['zero-based', 'essentials-first'])
def test_templates_allocate_all_income(template_id):
    totals = calculate_template_totals(build_template(template_id, 10000))
    assert totals['total_allocated'] == pytest.approx(10000)
    assert totals['unallocated'] == pytest.approx(0)


def test_fifty_thirty_twenty_split():
    totals = calculate_template_totals(build_template('50-30-20', 10000))
    assert totals['total_needs'] == pytest.approx(5000)
    assert totals['total_savings'] == pytest.approx(2000)
    assert totals['total_wants'] == pytest.approx(3000)


def test_essentials_first_groups():
    template = build_template('essentials-first', 8000)
    totals = calculate_template_totals(template)
    assert totals['total_needs'] == pytest.approx(8000 * 0.80)
    assert totals['total_other'] == pytest.approx(160)
    housing = next(c for c in template.categories if c.name == 'Housing/Rent')
    assert housing.amount == pytest.approx(2400)
    assert housing.percentage == 30.0


def test_unknown_template():
    assert get_template_by_id('envelope', 1000) is None
    with pytest.raises(ValueError):
        build_template('envelope', 1000)


def test_template_to_budgets():
    template = build_template('zero-based', 10000)
    budgets = template_to_budgets(template, user_id='alice')
    assert len(budgets) == len(template.categories)
    housing = budgets[0]
    assert housing.name == 'Housing Budget'
    assert housing.period == 'monthly'
    assert housing.amount == pytest.approx(3000)
    assert housing.user_id == 'alice'


def test_template_groups_feed_group_aggregation():
    template = build_template('essentials-first', 10000)
    grouped = aggregate_budgets_by_group(template_to_budgets(template), template_groups(template))
    assert grouped['needs'] == pytest.approx(8000)
    assert grouped['savings'] == pytest.approx(1000)
    assert grouped['wants'] == pytest.approx(800)
    assert grouped['other'] == pytest.approx(200)
