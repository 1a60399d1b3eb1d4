"""
Running balance calculations.

``calculate_balances`` accumulates amounts in the order given. It does not
sort; use ``sort_by_date`` first for chronological balances (the sort is
stable, so same-day transactions keep their input order).
"""

import logging
from dataclasses import replace

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

def sort_by_date(transactions):
    """Return transactions ordered by date, preserving input order on ties."""
    return sorted(transactions, key=lambda tx: tx.date)

def calculate_balances(transactions, starting_balance=0.0):
    """Compute the running balance after each transaction.

    Args:
        transactions (list): Transactions in the order to accumulate
        starting_balance (float): Balance before the first transaction

    Returns:
        list: New Transaction objects with ``balance`` set, same length and order
    """
    if not transactions:
        return []

    amounts = np.array([tx.amount for tx in transactions], dtype=float)
    running = np.round(float(starting_balance) + np.cumsum(amounts), 2)
    return [replace(tx, balance=float(balance)) for tx, balance in zip(transactions, running)]

def balance_at_date(transactions, starting_balance, on_date):
    """Balance after every transaction dated on or before ``on_date``."""
    total = sum(tx.amount for tx in transactions if tx.date <= on_date)
    return round(float(starting_balance) + total, 2)

def account_summary(transactions, starting_balance=0.0, today=None):
    """Summarize an account's transactions.

    Args:
        transactions (list): Ledger and (optionally) projected transactions
        starting_balance (float): Balance before the first transaction
        today (date, optional): Cut-off for the current balance. Defaults to
            the latest non-projected transaction.

    Returns:
        dict: current_balance, projected_balance, total_income,
        total_expenses and transaction_count
    """
    if not transactions:
        return {
            'current_balance': round(float(starting_balance), 2),
            'projected_balance': round(float(starting_balance), 2),
            'total_income': 0.0,
            'total_expenses': 0.0,
            'transaction_count': 0
        }

    df = pd.DataFrame({
        'date': [tx.date for tx in transactions],
        'amount': [tx.amount for tx in transactions],
        'projected': [tx.is_projected for tx in transactions],
    })

    actual = df[~df['projected']]
    if today is not None:
        actual = actual[actual['date'] <= today]

    summary = {
        'current_balance': round(float(starting_balance) + float(actual['amount'].sum()), 2),
        'projected_balance': round(float(starting_balance) + float(df['amount'].sum()), 2),
        'total_income': round(float(df.loc[df['amount'] > 0, 'amount'].sum()), 2),
        'total_expenses': round(float(df.loc[df['amount'] < 0, 'amount'].abs().sum()), 2),
        'transaction_count': int((~df['projected']).sum())
    }
    logger.debug(f"Account summary: {summary}")
    return summary
