"""
Ledger Reconcile - reconciliation, bill matching and balance projection for
a personal transaction ledger.

This package provides functionality to:
- Merge imported transaction batches into an account ledger, detecting
  duplicates and pending transactions that have posted
- Link transactions to recurring bills by amount and fuzzy description
- Propose next-due-date and amount updates for matched bills
- Project future transactions from recurring bill schedules
- Compute running balances
- Suggest recurring bills from transaction history

Amounts are signed: negative for debits, positive for credits.
"""

from .balances import calculate_balances, sort_by_date
from .bill_matcher import match_bill
from .bill_updates import apply_bill_updates, propose_bill_updates
from .errors import RowError, ScheduleError, StructuralError
from .models import RecurringBill, Transaction
from .projections import build_register, filter_projections, project
from .reconciler import ReconciliationResult, reconcile
from .recurring_detection import RecurringSuggestion, detect_recurring_bills
from .schedule import next_occurrence

__all__ = [
    'Transaction',
    'RecurringBill',
    'RowError',
    'ScheduleError',
    'StructuralError',
    'reconcile',
    'ReconciliationResult',
    'match_bill',
    'next_occurrence',
    'project',
    'filter_projections',
    'build_register',
    'calculate_balances',
    'sort_by_date',
    'propose_bill_updates',
    'apply_bill_updates',
    'detect_recurring_bills',
    'RecurringSuggestion'
]
