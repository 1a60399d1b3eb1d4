"""
Transaction and recurring bill records.

Amounts are signed floats: positive values are credits (inflows), negative
values are debits (outflows). Dates are ``datetime.date``. Both records are
immutable; engine functions return modified copies via ``dataclasses.replace``.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

PROJECTED_SUFFIX = " (Projected)"
DEFAULT_CATEGORY = "Uncategorized"

FIXED = "fixed"
VARIABLE = "variable"
AMOUNT_TYPES = (FIXED, VARIABLE)

FREQUENCIES = ('daily', 'weekly', 'biweekly', 'monthly', 'quarterly', 'yearly')
FREQUENCY_ALIASES = {'annual': 'yearly', 'annually': 'yearly', 'bi-weekly': 'biweekly'}


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date
    description: str
    amount: float
    category: str = DEFAULT_CATEGORY
    account_id: str = ""
    is_pending: bool = False
    is_reconciled: bool = False
    is_manual: bool = False
    recurring_bill_id: Optional[str] = None
    balance: Optional[float] = None     # computed, never authoritative

    @property
    def is_projected(self) -> bool:
        return PROJECTED_SUFFIX in self.description

    @property
    def key(self) -> Tuple[str, str]:
        """Identity within the ledger: ids are unique per account."""
        return (self.account_id, self.id)


@dataclass(frozen=True)
class RecurringBill:
    id: str
    account_id: str
    description: str
    amount: float
    frequency: str = 'monthly'
    next_due_date: Optional[date] = None
    amount_type: str = FIXED
    amount_tolerance: float = 10.0      # percent, variable bills only
    day_of_month: Optional[int] = None  # 1-31, clamped to month length
    day_of_week: Optional[int] = None   # 0=Sun..6=Sat
    week_of_month: Optional[int] = None # 1-4, or 5 = last
    category: str = DEFAULT_CATEGORY
    is_active: bool = True
