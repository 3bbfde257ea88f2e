from datetime import date, datetime

import pytest

from joint_finance.periods import (
    calculate_all_periods,
    calculate_whats_left,
    convert_budget_amount,
    format_period_date_range,
    format_period_label,
    period_date_range,
    period_multiplier,
)


@pytest.mark.parametrize("period", ["weekly", "monthly", "yearly"])
@pytest.mark.parametrize("amount", [0, 1, 99.99, 1234.5])
def test_same_period_is_identity(period, amount):
    assert convert_budget_amount(amount, period, period) == amount


@pytest.mark.parametrize("amount", [0, 10, 250.25])
def test_weekly_to_monthly_uses_433_weeks(amount):
    assert convert_budget_amount(amount, 'weekly', 'monthly') == pytest.approx(amount * 4.33)


@pytest.mark.parametrize("amount", [0, 10, 250.25])
def test_monthly_to_yearly_multiplies_by_twelve(amount):
    assert convert_budget_amount(amount, 'monthly', 'yearly') == pytest.approx(amount * 12)


def test_weekly_to_yearly_goes_through_monthly():
    # 4.33 * 12 = 51.96 weeks, not 52
    assert convert_budget_amount(100, 'weekly', 'yearly') == pytest.approx(5196.0)
    assert convert_budget_amount(5196, 'yearly', 'weekly') == pytest.approx(100.0)


def test_reverse_conversions_divide():
    assert convert_budget_amount(433, 'monthly', 'weekly') == pytest.approx(100.0)
    assert convert_budget_amount(1200, 'yearly', 'monthly') == pytest.approx(100.0)


def test_unknown_period_raises():
    with pytest.raises(ValueError):
        convert_budget_amount(10, 'daily', 'monthly')
    with pytest.raises(ValueError):
        convert_budget_amount(10, 'monthly', 'fortnightly')


def test_calculate_all_periods():
    result = calculate_all_periods(1200, 'yearly')
    assert set(result) == {'weekly', 'monthly', 'yearly'}
    assert result['yearly'] == 1200
    assert result['monthly'] == pytest.approx(100.0)
    assert result['weekly'] == pytest.approx(100 / 4.33)


def test_period_multiplier_and_label():
    assert period_multiplier('monthly') == 1.0
    assert period_multiplier('yearly') == 12.0
    assert period_multiplier('weekly') == pytest.approx(1 / 4.33)
    assert format_period_label('weekly') == 'per week'
    assert format_period_label('yearly') == 'per year'


def test_week_range_starts_on_sunday():
    # 2024-10-23 is a Wednesday
    start, end = period_date_range('weekly', date(2024, 10, 23))
    assert start == datetime(2024, 10, 20)
    assert end.date() == date(2024, 10, 26)
    assert end.hour == 23 and end.minute == 59


def test_week_range_on_sunday_is_that_sunday():
    start, _ = period_date_range('weekly', datetime(2024, 10, 20, 15, 30))
    assert start == datetime(2024, 10, 20)


def test_month_and_year_ranges():
    start, end = period_date_range('monthly', '2024-02-10')
    assert start == datetime(2024, 2, 1)
    assert end.date() == date(2024, 2, 29)

    start, end = period_date_range('yearly', date(2023, 6, 1))
    assert start == datetime(2023, 1, 1)
    assert end.date() == date(2023, 12, 31)


def test_format_period_date_range():
    assert format_period_date_range('weekly', date(2024, 10, 23)) == 'Oct 20 - Oct 26'
    assert format_period_date_range('monthly', date(2024, 2, 10)) == 'Feb 1 - Feb 29'


def test_format_period_date_range_across_years():
    # Week of Sunday 2024-12-29 ends on Saturday 2025-01-04
    assert format_period_date_range('weekly', date(2024, 12, 31)) == 'Dec 29, 2024 - Jan 4, 2025'


def test_calculate_whats_left():
    result = calculate_whats_left(5000, 3000, starting_balance=200)
    assert result['whats_left'] == 2200
    assert result['is_deficit'] is False
    assert result['percentage_used'] == pytest.approx(60.0)


def test_calculate_whats_left_without_income():
    result = calculate_whats_left(0, 150)
    assert result['whats_left'] == -150
    assert result['is_deficit'] is True
    assert result['percentage_used'] == 0.0
