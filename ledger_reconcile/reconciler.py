"""
Import reconciliation.

Merges a batch of incoming transactions into an account's ledger. Each
incoming transaction is first linked to a recurring bill (if one matches),
then classified against the ledger. Match targets are searched in priority
order:

1. ID: an entry with the same id on the same account
2. Pending: a pending entry on the same account with the same amount and a
   similar description (the bank may reword a transaction when it posts)
3. Data: a posted entry on the same account with the same date, the exact
   same description and the same amount

Outcomes:
- posted: matched a pending entry and the incoming transaction has cleared;
  the entry is replaced with the incoming data
- updated: matched a pending entry and is still pending, or matched a manual
  entry; the entry is refreshed from the incoming data
- skipped: matched an entry that was already imported
- new: no match; appended, or replaces a projected entry for the same bill
  dated within the projected window

The user's reconciled flag is always carried over. The ledger passed in is
never modified; a new list is returned.

The pending and data rules only consider entries that were in the ledger
before the call, so two identical charges in one batch are both kept.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List

import pandas as pd

from ledger_reconcile.bill_matcher import amounts_equal, match_bill
from ledger_reconcile.bill_updates import BillMatch, BillUpdateProposal, propose_bill_updates, record_bill_match
from ledger_reconcile.errors import RowError, StructuralError
from ledger_reconcile.models import RecurringBill, Transaction
from ledger_reconcile.records import normalize_batch, normalize_bills, transactions_from_frame
from ledger_reconcile.similarity import pending_descriptions_match
from ledger_reconcile.utils import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

MATCH_BY_ID = 'id'
MATCH_BY_PENDING = 'pending'
MATCH_BY_DATA = 'data'

NEW = 'new'
UPDATED = 'updated'
SKIPPED = 'skipped'
POSTED = 'posted'


@dataclass
class ReconciliationResult:
    ledger: List[Transaction]
    counts: Dict[str, int] = field(default_factory=lambda: {NEW: 0, UPDATED: 0, SKIPPED: 0, POSTED: 0})
    bill_matches: Dict[str, BillMatch] = field(default_factory=dict)
    proposals: List[BillUpdateProposal] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)


def _as_ledger(ledger):
    if isinstance(ledger, pd.DataFrame):
        return transactions_from_frame(ledger)
    if not isinstance(ledger, (list, tuple)):
        raise StructuralError(f"Ledger must be a list of transactions, got {type(ledger).__name__}")
    for entry in ledger:
        if not isinstance(entry, Transaction):
            raise StructuralError(f"Ledger entries must be Transaction, got {type(entry).__name__}")
    return list(ledger)

def _as_bills(bills):
    if isinstance(bills, (list, tuple)) and all(isinstance(bill, RecurringBill) for bill in bills):
        return list(bills)
    return normalize_bills(bills)

def find_match_target(tx, ledger, settings=DEFAULT_SETTINGS, added=()):
    """Find the ledger entry an incoming transaction corresponds to.

    Entries whose keys are in ``added`` were appended by the current batch;
    they can only be matched by id, never by the pending or data rules.

    Args:
        tx (Transaction): Incoming transaction
        ledger (list): Current ledger entries
        settings (Settings): Thresholds
        added (set): Keys of entries appended earlier in the same batch

    Returns:
        tuple: (entry, rule) where rule is 'id', 'pending' or 'data', or
        (None, None) if the transaction is new
    """
    same_account = [entry for entry in ledger if entry.account_id == tx.account_id]

    for entry in same_account:
        if entry.id == tx.id:
            return entry, MATCH_BY_ID

    snapshot = [entry for entry in same_account if entry.key not in added]

    for entry in snapshot:
        if (entry.is_pending
                and amounts_equal(entry.amount, tx.amount, settings.amount_tolerance)
                and pending_descriptions_match(entry.description, tx.description, settings)):
            return entry, MATCH_BY_PENDING

    for entry in snapshot:
        if (not entry.is_pending
                and entry.date == tx.date
                and entry.description == tx.description
                and amounts_equal(entry.amount, tx.amount, settings.amount_tolerance)):
            return entry, MATCH_BY_DATA

    return None, None

def find_projected_entry(tx, ledger, settings=DEFAULT_SETTINGS):
    """Find a projected entry for the same bill dated within the projected window."""
    if not tx.recurring_bill_id:
        return None
    for entry in ledger:
        if (entry.is_projected
                and entry.account_id == tx.account_id
                and entry.recurring_bill_id == tx.recurring_bill_id
                and abs((entry.date - tx.date).days) <= settings.projected_window_days):
            return entry
    return None

def _replace_entry(ledger, key, new_entry):
    """Return a copy of the ledger with the entry identified by ``key`` replaced."""
    for idx, entry in enumerate(ledger):
        if entry.key == key:
            return ledger[:idx] + [new_entry] + ledger[idx + 1:]
    raise KeyError(f"Ledger entry not found: {key}")

def merge_transaction(tx, ledger, settings=DEFAULT_SETTINGS, added=()):
    """Classify one incoming transaction and merge it into the ledger.

    Args:
        tx (Transaction): Incoming transaction, already linked to its bill
        ledger (list): Current ledger entries
        settings (Settings): Thresholds
        added (set): Keys of entries appended earlier in the same batch

    Returns:
        tuple: (outcome, new ledger) where outcome is one of
        'new', 'updated', 'skipped' or 'posted'
    """
    target, rule = find_match_target(tx, ledger, settings, added)

    if target is None:
        projected = find_projected_entry(tx, ledger, settings)
        if projected is not None:
            logger.info(f"Replaced projected transaction with real transaction: '{tx.description}'")
            return NEW, _replace_entry(ledger, projected.key, tx)
        return NEW, ledger + [tx]

    if rule == MATCH_BY_PENDING and not tx.is_pending:
        posted = replace(tx, is_reconciled=target.is_reconciled, is_pending=False)
        logger.info(
            f"Updated pending transaction to posted: {target.description} -> {tx.description}, "
            f"Category: {target.category} -> {tx.category}"
        )
        return POSTED, _replace_entry(ledger, target.key, posted)

    if rule == MATCH_BY_PENDING:
        merged = replace(
            tx,
            is_reconciled=target.is_reconciled,
            recurring_bill_id=tx.recurring_bill_id or target.recurring_bill_id,
            category=tx.category if tx.recurring_bill_id else target.category
        )
        logger.info(f"Updated pending transaction with newer data: {target.description}")
        return UPDATED, _replace_entry(ledger, target.key, merged)

    if target.is_manual:
        refreshed = replace(tx, is_reconciled=target.is_reconciled)
        logger.info(f"Replaced manual transaction with imported data: {target.description}")
        return UPDATED, _replace_entry(ledger, target.key, refreshed)

    logger.debug(f"Skipping duplicate transaction {tx.id} (matched by {rule})")
    return SKIPPED, ledger

def reconcile(incoming, ledger, bills, account_id, settings=None):
    """Reconcile an incoming batch against an account's ledger.

    Args:
        incoming (list or pd.DataFrame): Incoming records (mappings or Transactions)
        ledger (list or pd.DataFrame): Existing transactions, any account
        bills (list): Recurring bills (RecurringBill or mappings)
        account_id (str): Account the batch belongs to
        settings (Settings, optional): Thresholds. Defaults to DEFAULT_SETTINGS.

    Returns:
        ReconciliationResult: New ledger, counts, bill matches, bill update
        proposals and row errors

    Raises:
        StructuralError: If any input is not a list of records
    """
    settings = settings or DEFAULT_SETTINGS
    working = _as_ledger(ledger)
    bill_list = _as_bills(bills)
    transactions, errors = normalize_batch(incoming, account_id)

    logger.info(f"Reconciling {len(transactions)} transactions into account {account_id} "
                f"({len(working)} existing, {len(errors)} rejected)")

    result = ReconciliationResult(ledger=working, errors=errors)
    bill_matches = {}
    added = set()

    for tx in transactions:
        bill = match_bill(tx, bill_list, settings)
        if bill is not None:
            tx = replace(tx, recurring_bill_id=bill.id, category=bill.category)
            bill_matches = record_bill_match(bill_matches, bill.id, tx.amount, tx.date)
            logger.info(f"Matched transaction '{tx.description}' with recurring bill '{bill.description}'")

        outcome, working = merge_transaction(tx, working, settings, added)
        if outcome == NEW:
            added.add(tx.key)
        result.counts[outcome] += 1

    result.ledger = working
    result.bill_matches = bill_matches
    result.proposals = propose_bill_updates(bill_list, bill_matches)

    logger.info(
        f"Import complete: {result.counts[NEW]} new, {result.counts[UPDATED]} updated, "
        f"{result.counts[POSTED]} posted, {result.counts[SKIPPED]} skipped, {len(errors)} errors"
    )
    return result
