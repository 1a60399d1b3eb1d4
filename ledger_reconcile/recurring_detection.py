"""
Detection of recurring charges in transaction history.

Posted, non-manual transactions are grouped by a normalized description
(lowercase, digits and punctuation removed) and by direction (income vs
expense). Groups with at least two occurrences and a recognizable interval
become suggestions:

- weekly: mean interval 5-9 days
- biweekly: 12-16 days
- monthly: 27-33 days
- yearly: 355-375 days

Confidence (0-100) adds up occurrence count (10 per occurrence, max 40),
amount consistency (max 30) and interval consistency (max 30). Expense
suggestions need 50, income suggestions 35.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

import pandas as pd

from ledger_reconcile.models import RecurringBill, Transaction
from ledger_reconcile.schedule import add_months

logger = logging.getLogger(__name__)

EXPENSE_THRESHOLD = 50
INCOME_THRESHOLD = 35

_FREQUENCY_RANGES = [
    ('weekly', 5, 9),
    ('biweekly', 12, 16),
    ('monthly', 27, 33),
    ('yearly', 355, 375),
]


@dataclass
class RecurringSuggestion:
    description: str
    category: str
    average_amount: float
    frequency: str
    confidence: int
    suggested_next_date: date
    occurrences: List[Transaction] = field(default_factory=list)

    def to_bill(self, account_id, bill_id) -> RecurringBill:
        """Turn an accepted suggestion into an active fixed-amount bill."""
        return RecurringBill(
            id=bill_id,
            account_id=account_id,
            description=self.description,
            amount=self.average_amount,
            frequency=self.frequency,
            next_due_date=self.suggested_next_date,
            day_of_month=self.suggested_next_date.day if self.frequency == 'monthly' else None,
            category=self.category
        )


def normalize_description(description):
    text = description.lower()
    text = re.sub(r'\d+', '', text)
    text = re.sub(r'[^\w\s]', '', text)
    return text.strip()

def detect_frequency(dates) -> Optional[str]:
    """Infer a frequency from the mean interval between sorted dates."""
    intervals = _intervals(dates)
    if intervals.empty:
        return None
    mean_interval = intervals.mean()
    for name, low, high in _FREQUENCY_RANGES:
        if low <= mean_interval <= high:
            return name
    return None

def _intervals(dates):
    series = pd.Series(sorted(pd.to_datetime(list(dates))))
    return series.diff().dropna().dt.days

def calculate_confidence(amounts, dates, average_amount):
    """Score how regular a group of transactions is (0-100)."""
    confidence = min(len(amounts) * 10, 40)

    magnitudes = pd.Series(amounts).abs()
    if average_amount != 0:
        spread = (magnitudes.max() - magnitudes.min()) / abs(average_amount)
        if spread < 0.1:
            confidence += 30
        elif spread < 0.2:
            confidence += 20
        elif spread < 0.3:
            confidence += 10

    intervals = _intervals(dates)
    if not intervals.empty:
        max_deviation = (intervals - intervals.mean()).abs().max()
        if max_deviation < 3:
            confidence += 30
        elif max_deviation < 7:
            confidence += 15

    return int(min(confidence, 100))

def next_expected_date(last_date, frequency):
    if frequency == 'weekly':
        return last_date + timedelta(days=7)
    if frequency == 'biweekly':
        return last_date + timedelta(days=14)
    if frequency == 'monthly':
        return add_months(last_date, 1)
    return add_months(last_date, 12)

def detect_recurring_bills(transactions) -> List[RecurringSuggestion]:
    """Suggest recurring bills from transaction history.

    Args:
        transactions (list): Ledger transactions

    Returns:
        list: Suggestions, highest confidence first
    """
    candidates = [tx for tx in transactions if not (tx.is_manual or tx.is_pending or tx.is_projected)]
    if not candidates:
        return []

    df = pd.DataFrame({
        'tx': candidates,
        'date': [tx.date for tx in candidates],
        'amount': [tx.amount for tx in candidates],
        'key': [normalize_description(tx.description) for tx in candidates],
        'direction': ['income' if tx.amount >= 0 else 'expense' for tx in candidates],
    })

    suggestions = []
    for (direction, key), group in df.groupby(['direction', 'key'], sort=False):
        if len(group) < 2:
            continue

        frequency = detect_frequency(group['date'])
        if frequency is None:
            continue

        average_amount = round(float(group['amount'].mean()), 2)
        confidence = calculate_confidence(group['amount'].tolist(), group['date'], average_amount)
        threshold = INCOME_THRESHOLD if direction == 'income' else EXPENSE_THRESHOLD
        if confidence < threshold:
            logger.debug(f"Rejected recurring candidate '{key}' ({frequency}, confidence {confidence})")
            continue

        first = group['tx'].iloc[0]
        suggestions.append(RecurringSuggestion(
            description=first.description,
            category=first.category,
            average_amount=average_amount,
            frequency=frequency,
            confidence=confidence,
            suggested_next_date=next_expected_date(max(group['date']), frequency),
            occurrences=group['tx'].tolist()
        ))

    suggestions.sort(key=lambda s: s.confidence, reverse=True)
    logger.info(f"Detected {len(suggestions)} recurring bill suggestions")
    return suggestions
