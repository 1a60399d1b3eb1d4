"""
Proposals for updating recurring bills after an import.

Every bill that received a matching transaction during reconciliation gets a
proposal: move its next due date to the following occurrence, and adopt the
imported amount. Nothing is applied until the user approves it through
``apply_bill_updates``.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, List, Optional

from ledger_reconcile.errors import ScheduleError
from ledger_reconcile.models import RecurringBill
from ledger_reconcile.schedule import bill_next_occurrence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillMatch:
    """Most recent transaction matched to a bill during one import."""
    amount: float
    date: date


@dataclass(frozen=True)
class BillUpdateProposal:
    bill_id: str
    bill: RecurringBill
    imported_amount: float
    imported_date: date
    proposed_next_due_date: Optional[date]

    @property
    def amount_difference(self) -> float:
        return round(self.imported_amount - self.bill.amount, 2)

    @property
    def amount_changed(self) -> bool:
        return abs(self.amount_difference) >= 0.01

    @property
    def percent_difference(self) -> float:
        if self.bill.amount == 0:
            return 0.0
        return abs(self.imported_amount - self.bill.amount) / abs(self.bill.amount) * 100


@dataclass(frozen=True)
class BillUpdateApproval:
    bill_id: str
    update_date: bool = True
    update_amount: bool = True


def record_bill_match(bill_matches: Dict[str, BillMatch], bill_id, amount, match_date):
    """Fold one matched transaction into the per-bill mapping.

    The latest date wins; on an equal date the earlier match is kept.

    Returns:
        dict: A new mapping
    """
    current = bill_matches.get(bill_id)
    if current is not None and match_date <= current.date:
        return bill_matches
    updated = dict(bill_matches)
    updated[bill_id] = BillMatch(amount=amount, date=match_date)
    return updated

def propose_bill_updates(bills, bill_matches) -> List[BillUpdateProposal]:
    """Build one proposal per bill that received a matching transaction.

    Args:
        bills (list): Recurring bills
        bill_matches (dict): bill id -> BillMatch from reconciliation

    Returns:
        list: Proposals in bill-list order
    """
    proposals = []
    for bill in bills:
        match = bill_matches.get(bill.id)
        if match is None:
            continue
        try:
            proposed_date = bill_next_occurrence(bill)
        except ScheduleError as e:
            logger.warning(f"Cannot propose next due date for bill '{bill.description}': {e}")
            proposed_date = None
        proposals.append(BillUpdateProposal(
            bill_id=bill.id,
            bill=bill,
            imported_amount=match.amount,
            imported_date=match.date,
            proposed_next_due_date=proposed_date
        ))
    return proposals

def apply_bill_updates(bills, proposals, approvals):
    """Apply the user-approved parts of the proposals.

    Args:
        bills (list): Current recurring bills
        proposals (list): Proposals from ``propose_bill_updates``
        approvals (list): BillUpdateApproval per bill the user confirmed

    Returns:
        list: New bill list; bills without an approval are returned unchanged
    """
    proposals_by_id = {proposal.bill_id: proposal for proposal in proposals}
    approvals_by_id = {approval.bill_id: approval for approval in approvals}

    updated_bills = []
    for bill in bills:
        approval = approvals_by_id.get(bill.id)
        proposal = proposals_by_id.get(bill.id)
        if approval is None or proposal is None:
            updated_bills.append(bill)
            continue

        changes = {}
        if approval.update_date and proposal.proposed_next_due_date is not None:
            changes['next_due_date'] = proposal.proposed_next_due_date
            logger.info(
                f"Updated recurring bill '{bill.description}' next due date: "
                f"{bill.next_due_date} -> {proposal.proposed_next_due_date}"
            )
        if approval.update_amount:
            changes['amount'] = proposal.imported_amount
            logger.info(
                f"Updated recurring bill '{bill.description}' amount: "
                f"${bill.amount:.2f} -> ${proposal.imported_amount:.2f}"
            )
        updated_bills.append(replace(bill, **changes) if changes else bill)

    return updated_bills
