"""
Linking of transactions to recurring bills.

A bill matches a transaction when the bill is active, belongs to the same
account, and both the amount test and the description test pass:

- fixed bills: amounts differ by no more than one cent
- variable bills: amounts differ by at most ``amount_tolerance`` percent of
  the bill's amount (default 10%)

When several bills qualify, the first one in list order wins.
"""

import logging

from ledger_reconcile.models import FIXED
from ledger_reconcile.similarity import bill_descriptions_match
from ledger_reconcile.utils import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

# Absorbs float noise so a difference of exactly one cent is "within" a cent
_FLOAT_SLACK = 1e-9

def amounts_equal(a, b, tolerance=DEFAULT_SETTINGS.amount_tolerance):
    """Return True if two amounts differ by at most ``tolerance``."""
    return abs(a - b) <= tolerance + _FLOAT_SLACK

def amount_matches(bill, amount, settings=DEFAULT_SETTINGS):
    """Apply the fixed/variable amount test for a bill."""
    amount_type = bill.amount_type or FIXED
    if amount_type == FIXED:
        return amounts_equal(bill.amount, amount, settings.amount_tolerance)

    tolerance = bill.amount_tolerance or settings.default_variable_tolerance
    max_diff = abs(bill.amount) * (tolerance / 100)
    return abs(bill.amount - amount) <= max_diff + _FLOAT_SLACK

def bill_matches(bill, tx, settings=DEFAULT_SETTINGS):
    if not bill.is_active or bill.account_id != tx.account_id:
        return False
    if not amount_matches(bill, tx.amount, settings):
        return False
    return bill_descriptions_match(bill.description, tx.description, settings)

def matching_bills(tx, bills, settings=DEFAULT_SETTINGS):
    """Return every bill that satisfies both tests, in list order."""
    return [bill for bill in bills if bill_matches(bill, tx, settings)]

def match_bill(tx, bills, settings=None):
    """Find the recurring bill a transaction pays.

    Args:
        tx (Transaction): Incoming transaction (``account_id`` already set)
        bills (list): Recurring bills to search
        settings (Settings, optional): Thresholds. Defaults to DEFAULT_SETTINGS.

    Returns:
        RecurringBill or None: The first matching bill
    """
    settings = settings or DEFAULT_SETTINGS
    candidates = matching_bills(tx, bills, settings)
    if not candidates:
        return None
    if len(candidates) > 1:
        logger.debug(
            f"Transaction '{tx.description}' matches {len(candidates)} bills "
            f"{[bill.id for bill in candidates]}; using first ({candidates[0].id})"
        )
    return candidates[0]
