"""
Projected transactions from recurring bills.

``project`` synthesizes one transaction per scheduled occurrence of each
active bill, from its next due date up to the horizon. Projected ids are
derived from the bill id and the occurrence date (``proj-{billId}-{date}``),
so regenerating projections is idempotent and dismissals can be tracked by
id. Projections are never written to the ledger.

``filter_projections`` and ``build_register`` implement what a caller does
with them: drop dismissed projections and projections a real transaction
already covers, merge with the ledger, and compute running balances.
"""

import logging
from datetime import date, timedelta

from ledger_reconcile.balances import calculate_balances, sort_by_date
from ledger_reconcile.errors import ScheduleError
from ledger_reconcile.models import PROJECTED_SUFFIX, Transaction
from ledger_reconcile.schedule import bill_day_of_month, next_occurrence, validate_schedule
from ledger_reconcile.similarity import normalize_text
from ledger_reconcile.utils import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)

def projection_id(bill_id, occurrence):
    return f"proj-{bill_id}-{occurrence.isoformat()}"

def strip_projected_suffix(description):
    return description.replace(PROJECTED_SUFFIX, '')

def _bill_projections(bill, end_date):
    if bill.next_due_date is None:
        raise ScheduleError(f"Bill {bill.id} has no next due date")
    validate_schedule(bill.frequency, bill.day_of_month, bill.day_of_week, bill.week_of_month)

    day_of_month = bill_day_of_month(bill)
    projections = []
    current = bill.next_due_date
    while current <= end_date:
        projections.append(Transaction(
            id=projection_id(bill.id, current),
            date=current,
            description=f"{bill.description}{PROJECTED_SUFFIX}",
            amount=bill.amount,
            category=bill.category,
            account_id=bill.account_id,
            is_pending=True,
            recurring_bill_id=bill.id
        ))
        current = next_occurrence(current, bill.frequency, day_of_month, bill.day_of_week, bill.week_of_month)
    return projections

def project(bills, horizon_days, today=None):
    """Generate projected transactions for active bills.

    Args:
        bills (list): Recurring bills
        horizon_days (int): Days after ``today`` to project through
        today (date, optional): Start of the horizon. Defaults to date.today().

    Returns:
        list: Projected transactions, grouped by bill (not sorted by date)
    """
    today = today or date.today()
    end_date = today + timedelta(days=horizon_days)

    projections = []
    for bill in bills:
        if not bill.is_active:
            continue
        try:
            projections.extend(_bill_projections(bill, end_date))
        except ScheduleError as e:
            logger.warning(f"Skipping projections for bill '{bill.description}' ({bill.id}): {e}")
    logger.debug(f"Generated {len(projections)} projections through {end_date}")
    return projections

def _same_day_duplicate(projection, real_transactions):
    description = normalize_text(strip_projected_suffix(projection.description))
    return any(
        tx.account_id == projection.account_id
        and tx.date == projection.date
        and normalize_text(tx.description) == description
        for tx in real_transactions
    )

def _paid_projection_ids(projections, real_transactions, window_days):
    """Ids of projections a real bill payment stands in for.

    Each linked transaction covers only the closest projection of its bill
    within the window, so a weekly bill's next occurrence is kept.
    """
    paid = set()
    for tx in real_transactions:
        if not tx.recurring_bill_id:
            continue
        candidates = [
            projection for projection in projections
            if projection.recurring_bill_id == tx.recurring_bill_id
            and projection.account_id == tx.account_id
            and abs((projection.date - tx.date).days) <= window_days
        ]
        if candidates:
            closest = min(candidates, key=lambda projection: abs((projection.date - tx.date).days))
            paid.add(closest.id)
    return paid

def filter_projections(projections, ledger, dismissed=(), settings=None):
    """Drop dismissed projections and those already covered by the ledger.

    A projection is covered when a real transaction on the same account has
    the same date and the same description (suffix stripped, case-insensitive),
    or when it is the closest projection to a real transaction linked to the
    same bill and dated within the projected window.

    Args:
        projections (list): Output of ``project``
        ledger (list): Real transactions
        dismissed (iterable): Projection ids the user dismissed
        settings (Settings, optional): Thresholds

    Returns:
        list: Remaining projections, in input order
    """
    settings = settings or DEFAULT_SETTINGS
    dismissed = set(dismissed)
    real_transactions = [tx for tx in ledger if not tx.is_projected]
    paid = _paid_projection_ids(projections, real_transactions, settings.projected_window_days)

    kept = []
    for projection in projections:
        if projection.id in dismissed:
            continue
        if projection.id in paid or _same_day_duplicate(projection, real_transactions):
            logger.debug(f"Projection {projection.id} covered by a real transaction")
            continue
        kept.append(projection)
    return kept

def build_register(ledger, bills, starting_balance=0.0, horizon_days=None, dismissed=(),
                   account_id=None, include_projections=True, today=None, settings=None):
    """Build the date-ordered register with running balances.

    Projected entries stored in the ledger are replaced by freshly generated
    projections.

    Args:
        ledger (list): Real transactions
        bills (list): Recurring bills
        starting_balance (float): Balance before the first transaction
        horizon_days (int, optional): Projection horizon. Defaults to settings.projection_days.
        dismissed (iterable): Dismissed projection ids
        account_id (str, optional): Restrict ledger and bills to one account
        include_projections (bool): Add projected transactions
        today (date, optional): Start of the projection horizon
        settings (Settings, optional): Thresholds

    Returns:
        list: Transactions sorted by date (stable) with balances set
    """
    settings = settings or DEFAULT_SETTINGS
    horizon_days = settings.projection_days if horizon_days is None else horizon_days

    if account_id is not None:
        ledger = [tx for tx in ledger if tx.account_id == account_id]
        bills = [bill for bill in bills if bill.account_id == account_id]

    # Stored projections are superseded by the regenerated ones
    combined = [tx for tx in ledger if not tx.is_projected]
    if include_projections:
        projections = project(bills, horizon_days, today=today)
        combined.extend(filter_projections(projections, ledger, dismissed, settings))

    return calculate_balances(sort_by_date(combined), starting_balance)
