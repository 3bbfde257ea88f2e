from datetime import date, datetime, timedelta

from joint_finance.alerts import check_budget_thresholds, check_large_transactions, check_unusual_spending
from joint_finance.budgets import budget_status_frame
from joint_finance.models import Budget, Transaction

AS_OF = datetime(2024, 10, 20, 18, 0)


def expense(when, amount, category='General', **kwargs):
    return Transaction(date=when, description=category, amount=amount, category=category, type='expense', **kwargs)


def status_frame():
    transactions = [
        expense(date(2024, 10, 5), 85, 'Groceries'),
        expense(date(2024, 10, 6), 95, 'Dining'),
        expense(date(2024, 10, 7), 130, 'Fuel'),
        expense(date(2024, 10, 8), 10, 'Books'),
    ]
    budgets = [
        Budget(category='Groceries', amount=100, id=1),
        Budget(category='Dining', amount=100, id=2),
        Budget(category='Fuel', amount=100, id=3),
        Budget(category='Books', amount=100, id=4),
    ]
    return budget_status_frame(transactions, budgets, reference=date(2024, 10, 20))


def test_budget_threshold_alerts():
    alerts = {a.metadata['category']: a for a in check_budget_thresholds(status_frame(), currency='USD')}

    assert set(alerts) == {'Groceries', 'Dining', 'Fuel'}
    assert alerts['Groceries'].severity == 'info'
    assert alerts['Groceries'].metadata['threshold'] == 80.0
    assert alerts['Dining'].severity == 'warning'
    assert alerts['Dining'].metadata['threshold'] == 90.0
    assert alerts['Fuel'].severity == 'critical'
    assert alerts['Fuel'].metadata['threshold'] == 100.0
    assert '$130.00' in alerts['Fuel'].message


def test_budget_threshold_alerts_custom_thresholds():
    frame = status_frame()
    frame['Alert Threshold'] = 150.0
    alerts = check_budget_thresholds(frame, thresholds=[120])
    assert [a.metadata['category'] for a in alerts] == ['Fuel']
    assert alerts[0].metadata['threshold'] == 120.0


def test_budget_own_alert_threshold_fires_below_shared_thresholds():
    transactions = [expense(date(2024, 10, 5), 60, 'Food')]
    budgets = [Budget(category='Food', amount=100, alert_threshold=50.0, id=7)]
    frame = budget_status_frame(transactions, budgets, reference=date(2024, 10, 20))

    alerts = check_budget_thresholds(frame)
    assert len(alerts) == 1
    assert alerts[0].severity == 'info'
    assert alerts[0].metadata['threshold'] == 50.0
    assert alerts[0].metadata['budget_id'] == 7


def test_budget_own_alert_threshold_joins_shared_thresholds():
    budgets = [Budget(category='Groceries', amount=100, alert_threshold=95.0, id=1)]
    frame = budget_status_frame([expense(date(2024, 10, 5), 85, 'Groceries')], budgets, reference=date(2024, 10, 20))
    assert check_budget_thresholds(frame, thresholds=[]) == []
    assert check_budget_thresholds(frame)[0].metadata['threshold'] == 80.0


def test_no_thresholds_means_no_alerts():
    frame = status_frame().drop(columns=['Alert Threshold'])
    assert check_budget_thresholds(frame, thresholds=[]) == []


def test_unusual_spending_detected():
    history = [expense(AS_OF - timedelta(days=d), 20) for d in range(1, 11)]
    today = [expense(AS_OF, 500)]
    alerts = check_unusual_spending(history + today, as_of=AS_OF)
    assert len(alerts) == 1
    assert alerts[0].type == 'unusual_spending'
    assert alerts[0].metadata['today_spending'] == 500


def test_unusual_spending_needs_enough_history():
    history = [expense(AS_OF - timedelta(days=d), 20) for d in range(1, 5)]
    assert check_unusual_spending(history + [expense(AS_OF, 500)], as_of=AS_OF) == []


def test_normal_day_is_not_flagged():
    history = [expense(AS_OF - timedelta(days=d), 100) for d in range(0, 30)]
    assert check_unusual_spending(history, as_of=AS_OF) == []


def test_large_transactions():
    transactions = [expense(date(2024, 10, 1), 999.99, id=1), expense(date(2024, 10, 2), 2500, 'Laptop', id=2)]
    alerts = check_large_transactions(transactions)
    assert len(alerts) == 1
    assert alerts[0].metadata['transaction_id'] == 2
    assert 'Laptop' in alerts[0].message
