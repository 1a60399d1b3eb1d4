import logging
from datetime import date

import pytest

from ledger_reconcile.balances import account_summary, balance_at_date, calculate_balances, sort_by_date
from ledger_reconcile.projections import (
    build_register,
    filter_projections,
    project,
    projection_id,
    strip_projected_suffix,
)

TODAY = date(2025, 2, 20)

@pytest.fixture
def rent(make_bill):
    return make_bill('rent', 'Rent', -1500.00, day_of_month=1,
                     next_due_date=date(2025, 3, 1), category='Housing')

@pytest.fixture
def weekly_gym(make_bill):
    return make_bill('gym', 'ACME GYM', -30.00, frequency='weekly',
                     next_due_date=date(2025, 3, 1), category='Fitness')

@pytest.mark.dependency()
class TestProject:
    """Test suite for projected transaction generation"""

    @pytest.mark.dependency()
    def test_monthly_projections(self, rent, account_id):
        projections = project([rent], 60, today=TODAY)

        assert [tx.date for tx in projections] == [date(2025, 3, 1), date(2025, 4, 1)]
        first = projections[0]
        assert first.id == 'proj-rent-2025-03-01'
        assert first.description == 'Rent (Projected)'
        assert first.amount == -1500.00
        assert first.category == 'Housing'
        assert first.account_id == account_id
        assert first.recurring_bill_id == 'rent'
        assert first.is_pending is True
        assert first.is_projected is True

    @pytest.mark.dependency(depends=["TestProject::test_monthly_projections"])
    def test_idempotent(self, rent):
        assert project([rent], 60, today=TODAY) == project([rent], 60, today=TODAY)

    def test_horizon_is_inclusive(self, rent):
        assert len(project([rent], 9, today=TODAY)) == 1
        assert project([rent], 8, today=TODAY) == []

    def test_grouped_by_bill(self, rent, make_bill):
        netflix = make_bill('netflix', 'NETFLIX.COM', -15.49, day_of_month=25,
                            next_due_date=date(2025, 2, 25))
        projections = project([rent, netflix], 60, today=TODAY)

        assert [tx.id for tx in projections] == [
            'proj-rent-2025-03-01',
            'proj-rent-2025-04-01',
            'proj-netflix-2025-02-25',
            'proj-netflix-2025-03-25',
        ]

    def test_skips_inactive_and_invalid_bills(self, rent, make_bill, caplog):
        bills = [
            make_bill('old', 'Old Gym', -25.00, next_due_date=date(2025, 3, 5), is_active=False),
            make_bill('odd', 'Odd Bill', -10.00, frequency='fortnightly', next_due_date=date(2025, 3, 5)),
            make_bill('undated', 'Undated Bill', -10.00),
            rent,
        ]
        with caplog.at_level(logging.WARNING):
            projections = project(bills, 60, today=TODAY)

        assert {tx.recurring_bill_id for tx in projections} == {'rent'}
        assert "Skipping projections for bill 'Odd Bill'" in caplog.text
        assert "Skipping projections for bill 'Undated Bill'" in caplog.text

    def test_month_end_day_is_kept(self, make_bill):
        """A bill due on the 31st returns to the 31st after February"""
        loan = make_bill('loan', 'Car Loan', -250.00, next_due_date=date(2025, 1, 31))
        projections = project([loan], 120, today=date(2025, 1, 1))

        assert [tx.date for tx in projections] == [
            date(2025, 1, 31),
            date(2025, 2, 28),
            date(2025, 3, 31),
            date(2025, 4, 30),
        ]

    def test_helpers(self):
        assert projection_id('rent', date(2025, 3, 1)) == 'proj-rent-2025-03-01'
        assert strip_projected_suffix('Rent (Projected)') == 'Rent'

class TestFilterProjections:
    """Test suite for dropping dismissed and already-paid projections"""

    def test_dismissed(self, rent):
        projections = project([rent], 60, today=TODAY)
        kept = filter_projections(projections, [], dismissed=['proj-rent-2025-03-01'])
        assert [tx.id for tx in kept] == ['proj-rent-2025-04-01']

    def test_same_day_real_transaction(self, rent, make_transaction):
        projections = project([rent], 60, today=TODAY)
        ledger = [make_transaction('r1', date(2025, 3, 1), 'rent', -1500.00)]
        kept = filter_projections(projections, ledger)
        assert [tx.id for tx in kept] == ['proj-rent-2025-04-01']

    def test_linked_payment_covers_closest_projection(self, weekly_gym, make_transaction):
        """A payment on Mar 2 covers the Mar 1 projection, not Mar 8"""
        projections = project([weekly_gym], 16, today=TODAY)
        assert [tx.date for tx in projections] == [date(2025, 3, 1), date(2025, 3, 8)]

        ledger = [make_transaction('g1', date(2025, 3, 2), 'ACME GYM MEMBERSHIP', -30.00,
                                   recurring_bill_id='gym')]
        kept = filter_projections(projections, ledger)
        assert [tx.date for tx in kept] == [date(2025, 3, 8)]

    def test_linked_payment_outside_window(self, rent, make_transaction):
        projections = project([rent], 60, today=TODAY)
        ledger = [make_transaction('r1', date(2025, 2, 15), 'RENT PAYMENT', -1500.00,
                                   recurring_bill_id='rent')]
        assert len(filter_projections(projections, ledger)) == 2

    def test_ignores_projected_ledger_entries(self, rent):
        projections = project([rent], 60, today=TODAY)
        assert filter_projections(projections, projections) == projections

class TestBuildRegister:
    """Test suite for the combined ledger and projection register"""

    def test_register_balances(self, rent, make_transaction):
        ledger = [make_transaction('t1', date(2025, 2, 25), 'PAYROLL', 2000.00)]
        register = build_register(ledger, [rent], starting_balance=100.0, horizon_days=15, today=TODAY)

        assert [tx.id for tx in register] == ['t1', 'proj-rent-2025-03-01']
        assert [tx.balance for tx in register] == [2100.0, 600.0]

    def test_account_filter(self, rent, make_transaction):
        ledger = [
            make_transaction('t1', date(2025, 2, 25), 'PAYROLL', 2000.00),
            make_transaction('s1', date(2025, 2, 26), 'TRANSFER', 500.00, account_id='savings'),
        ]
        register = build_register(ledger, [rent], horizon_days=15, account_id='checking', today=TODAY)
        assert [tx.id for tx in register] == ['t1', 'proj-rent-2025-03-01']

    def test_without_projections(self, rent, make_transaction):
        ledger = [make_transaction('t1', date(2025, 2, 25), 'PAYROLL', 2000.00)]
        register = build_register(ledger, [rent], include_projections=False, today=TODAY)
        assert [tx.balance for tx in register] == [2000.0]

    def test_stored_projections_are_not_counted_twice(self, rent, make_transaction):
        stored = make_transaction('proj-rent-2025-03-01', date(2025, 3, 1), 'Rent (Projected)', -1500.00,
                                  is_pending=True, recurring_bill_id='rent')
        ledger = [make_transaction('t1', date(2025, 2, 25), 'PAYROLL', 2000.00), stored]

        register = build_register(ledger, [rent], starting_balance=100.0, horizon_days=15, today=TODAY)
        assert [tx.id for tx in register] == ['t1', 'proj-rent-2025-03-01']
        assert [tx.balance for tx in register] == [2100.0, 600.0]

        without = build_register(ledger, [rent], include_projections=False, today=TODAY)
        assert [tx.id for tx in without] == ['t1']

@pytest.mark.dependency()
class TestBalances:
    """Test suite for running balance calculation"""

    @pytest.mark.dependency()
    def test_running_balance(self, make_transaction):
        transactions = [
            make_transaction('a', date(2025, 1, 1), 'A', 100.00),
            make_transaction('b', date(2025, 1, 2), 'B', -30.00),
            make_transaction('c', date(2025, 1, 3), 'C', -20.00),
        ]
        result = calculate_balances(transactions, starting_balance=50.0)

        assert [tx.balance for tx in result] == [150.0, 120.0, 100.0]
        assert all(tx.balance is None for tx in transactions)
        assert calculate_balances(result, starting_balance=50.0) == result

    @pytest.mark.dependency(depends=["TestBalances::test_running_balance"])
    def test_same_day_order(self, make_transaction):
        transactions = [
            make_transaction('late', date(2025, 1, 5), 'LATE', 10.00),
            make_transaction('x', date(2025, 1, 2), 'X', -5.00),
            make_transaction('y', date(2025, 1, 2), 'Y', 7.00),
        ]
        ordered = sort_by_date(transactions)
        assert [tx.id for tx in ordered] == ['x', 'y', 'late']
        assert [tx.balance for tx in calculate_balances(ordered)] == [-5.0, 2.0, 12.0]

    def test_accumulates_in_given_order(self, make_transaction):
        transactions = [
            make_transaction('late', date(2025, 1, 5), 'LATE', 10.00),
            make_transaction('early', date(2025, 1, 1), 'EARLY', -4.00),
        ]
        assert [tx.balance for tx in calculate_balances(transactions)] == [10.0, 6.0]

    def test_cents_are_rounded(self, make_transaction):
        transactions = [
            make_transaction('a', date(2025, 1, 1), 'A', 0.10),
            make_transaction('b', date(2025, 1, 1), 'B', 0.20),
        ]
        assert calculate_balances(transactions)[-1].balance == 0.3

    def test_empty(self):
        assert calculate_balances([], starting_balance=10.0) == []

    def test_balance_at_date(self, make_transaction):
        transactions = [
            make_transaction('a', date(2025, 1, 1), 'A', 100.00),
            make_transaction('b', date(2025, 1, 10), 'B', -40.00),
        ]
        assert balance_at_date(transactions, 10.0, date(2025, 1, 5)) == 110.0
        assert balance_at_date(transactions, 10.0, date(2025, 1, 10)) == 70.0

    def test_account_summary(self, make_transaction):
        transactions = [
            make_transaction('t1', date(2025, 2, 25), 'PAYROLL', 2000.00),
            make_transaction('proj-rent-2025-03-01', date(2025, 3, 1), 'Rent (Projected)', -1500.00),
            make_transaction('g1', date(2025, 3, 5), 'GROCERIES', -50.00),
        ]
        summary = account_summary(transactions, starting_balance=100.0, today=date(2025, 3, 1))

        assert summary == {
            'current_balance': 2100.0,
            'projected_balance': 550.0,
            'total_income': 2000.0,
            'total_expenses': 1550.0,
            'transaction_count': 2
        }
        assert account_summary([], starting_balance=5.0)['current_balance'] == 5.0
