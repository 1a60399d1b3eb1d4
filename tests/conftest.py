import pytest
import pandas as pd
from datetime import date

from ledger_reconcile.models import RecurringBill, Transaction

ACCOUNT = 'checking'

@pytest.fixture
def account_id():
    return ACCOUNT

@pytest.fixture
def make_transaction():
    """Helper fixture to build ledger transactions on the default account"""
    def _make(id, tx_date, description, amount, **kwargs):
        kwargs.setdefault('account_id', ACCOUNT)
        return Transaction(id=id, date=tx_date, description=description, amount=amount, **kwargs)
    return _make

@pytest.fixture
def make_bill():
    """Helper fixture to build recurring bills on the default account"""
    def _make(id, description, amount, **kwargs):
        kwargs.setdefault('account_id', ACCOUNT)
        kwargs.setdefault('frequency', 'monthly')
        return RecurringBill(id=id, description=description, amount=amount, **kwargs)
    return _make

@pytest.fixture
def sample_bills(make_bill):
    """Recurring bills covering fixed and variable amounts.

    - rent: fixed, due on the 1st
    - netflix: fixed, due on the 12th
    - electric: variable within 10%, due on the 20th
    """
    return [
        make_bill('rent', 'Rent', -1500.00, day_of_month=1,
                  next_due_date=date(2025, 2, 1), category='Housing'),
        make_bill('netflix', 'NETFLIX.COM', -15.49, day_of_month=12,
                  next_due_date=date(2025, 1, 12), category='Entertainment'),
        make_bill('electric', 'CITY ELECTRIC UTILITY', -100.00, amount_type='variable',
                  amount_tolerance=10, day_of_month=20,
                  next_due_date=date(2025, 1, 20), category='Utilities'),
    ]

@pytest.fixture
def sample_ledger(make_transaction):
    """Existing ledger with posted, pending and manual entries"""
    return [
        make_transaction('t1', date(2025, 1, 2), 'PAYROLL DEPOSIT ACME CORP', 2500.00, category='Income'),
        make_transaction('t2', date(2025, 1, 5), 'KROGER #123 AUSTIN TX', -84.12, category='Groceries'),
        make_transaction('p1', date(2025, 1, 10), 'AMAZON MKTPLACE PMTS', -42.00,
                         category='Shopping', is_pending=True),
        make_transaction('m1', date(2025, 1, 15), 'Dentist copay', -35.00, is_manual=True),
    ]

@pytest.fixture
def incoming_records():
    """Incoming batch as structured records from a parser (camelCase keys)"""
    return [
        {'id': 'n1', 'date': '2025-01-12', 'description': 'NETFLIX.COM 866-579-7172 CA',
         'amount': '-15.49', 'category': 'Entertainment', 'isPending': False},
        {'id': 'e1', 'date': '01/20/2025', 'description': 'CITY ELECTRIC UTILITY AUTOPAY',
         'amount': '-104.37', 'isPending': 'false'},
        {'id': 'c1', 'date': '2025-01-21', 'description': 'COFFEE SHOP',
         'amount': '($4.50)'},
    ]

@pytest.fixture
def incoming_df():
    """Incoming batch as read from a standardized CSV (all strings)"""
    return pd.DataFrame({
        'id': ['d1', 'd2'],
        'date': ['2025-01-22', '2025-01-23'],
        'description': ['SHELL OIL 12345 | SHELL OIL 12345', 'TARGET 00012345'],
        'amount': ['-45.10', '-23.99'],
        'category': ['Gas', ''],
        'isPending': ['false', 'true']
    })
