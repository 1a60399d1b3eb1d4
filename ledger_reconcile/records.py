"""
Normalization of incoming records into Transaction and RecurringBill values.

Parsing collaborators hand the engine structured records (mappings or a
DataFrame with one row per transaction). This module validates those records
against the boundary contract:

- id: non-empty string, unique per account
- date: valid calendar date
- description: non-empty string
- amount: finite number (negative for debits, positive for credits)
- category: optional, defaults to "Uncategorized"
- isPending / isReconciled / isManual: optional flags, default False
- accountId: set by the caller at import time, never read from the record

Both camelCase (``isPending``) and snake_case (``is_pending``) keys are
accepted so records exported by other tools can be passed straight through.
"""

import json
import logging
import math
import os
import re
from datetime import date, datetime
from typing import List, Tuple

import numpy as np
import pandas as pd

from ledger_reconcile.errors import RowError, StructuralError
from ledger_reconcile.models import (
    AMOUNT_TYPES,
    DEFAULT_CATEGORY,
    FIXED,
    RecurringBill,
    Transaction,
)

logger = logging.getLogger(__name__)

# Column order used when ledgers are written out
LEDGER_COLUMNS = [
    'id',
    'date',
    'description',
    'category',
    'amount',
    'balance',
    'account_id',
    'is_pending',
    'is_reconciled',
    'is_manual',
    'recurring_bill_id'
]

_FIELD_ALIASES = {
    'id': ('id',),
    'date': ('date',),
    'description': ('description',),
    'amount': ('amount',),
    'category': ('category',),
    'is_pending': ('is_pending', 'isPending'),
    'is_reconciled': ('is_reconciled', 'isReconciled'),
    'is_manual': ('is_manual', 'isManual'),
    'recurring_bill_id': ('recurring_bill_id', 'recurringBillId'),
    'account_id': ('account_id', 'accountId'),
    'amount_type': ('amount_type', 'amountType'),
    'amount_tolerance': ('amount_tolerance', 'amountTolerance'),
    'frequency': ('frequency',),
    'day_of_month': ('day_of_month', 'dayOfMonth'),
    'day_of_week': ('day_of_week', 'dayOfWeek'),
    'week_of_month': ('week_of_month', 'weekOfMonth'),
    'next_due_date': ('next_due_date', 'nextDueDate'),
    'is_active': ('is_active', 'isActive'),
}

_TRUE_STRINGS = {'true', '1', 'yes', 'y', 't'}
_FALSE_STRINGS = {'false', '0', 'no', 'n', 'f', ''}

def _is_missing(value):
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False

def _get(record, field, default=None):
    for key in _FIELD_ALIASES.get(field, (field,)):
        if key in record and not _is_missing(record[key]):
            return record[key]
    return default

def standardize_date(value):
    """
    Convert a date-like value to ``datetime.date``.

    Args:
        value (str, date, datetime or pd.Timestamp): Date to standardize

    Returns:
        date: The calendar date

    Raises:
        ValueError: If the date is null, of an unsupported type, or invalid
    """
    if _is_missing(value):
        raise ValueError("Date cannot be null")

    if isinstance(value, pd.Timestamp):
        return value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if not isinstance(value, str):
        raise ValueError(f"Date must be a string, got {type(value)}")

    date_str = value.strip().strip('"\'')

    # Check if the string looks like a date (digits with separators, or compact digits)
    if not re.search(r'\d+[/-]\d+[/-]\d+', date_str) and not re.fullmatch(r'\d{8}', date_str):
        raise ValueError(f"Invalid date format: {date_str}")

    formats = [
        '%Y-%m-%d',  # ISO
        '%Y-%m-%dT%H:%M:%S',  # ISO with time
        '%Y-%m-%d %H:%M:%S',
        '%m/%d/%Y',  # US
        '%m-%d-%Y',  # US with dashes
        '%m/%d/%y',  # Short year
        '%Y%m%d',    # Compact
        '%m%d%Y',    # Compact US
    ]

    for fmt in formats:
        try:
            dt = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        if dt.year < 1900 or dt.year > 2100:
            raise ValueError(f"Invalid date year: {dt.year}")
        return dt.date()

    raise ValueError(f"Invalid date format: {date_str}")

def clean_amount(amount):
    """Clean and standardize amount values.

    Args:
        amount (str, int or float): Amount to clean

    Returns:
        float: Cleaned amount (negative for debits, positive for credits)

    Raises:
        ValueError: If amount is missing, not finite or cannot be converted
    """
    if amount is None or (isinstance(amount, str) and amount.strip() == ""):
        raise ValueError("Invalid amount format: None or empty string")
    if isinstance(amount, bool):
        raise ValueError(f"Amount must be string or number, got {type(amount)}")
    if isinstance(amount, (int, float, np.integer, np.floating)):
        result = float(amount)
    elif isinstance(amount, str):
        # Remove currency symbols, commas, and whitespace
        cleaned = re.sub(r'[$,\s]', '', amount.strip())

        # Handle parentheses for negative numbers
        if cleaned.startswith('(') and cleaned.endswith(')'):
            cleaned = '-' + cleaned[1:-1]

        try:
            result = float(cleaned)
        except ValueError:
            raise ValueError(f"Invalid amount format: {amount}")
    else:
        raise ValueError(f"Amount must be string or number, got {type(amount)}")

    if not math.isfinite(result):
        raise ValueError(f"Invalid amount format: {amount}")
    return result

def standardize_category(category):
    """
    Standardize transaction category.

    Args:
        category (str): Raw transaction category

    Returns:
        str: Category, or "Uncategorized" when blank
    """
    if _is_missing(category):
        return DEFAULT_CATEGORY
    return str(category).strip()

def standardize_description(description):
    """Collapse newlines so descriptions compare consistently."""
    return str(description).replace('\r', ' ').replace('\n', ' ').strip()

def parse_flag(value, default=False):
    """Interpret a boolean-ish value ("true", "1", "yes", True, ...)."""
    if _is_missing(value):
        return default
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Invalid flag value: {value}")

def _optional_int(value):
    if _is_missing(value):
        return None
    return int(float(value))

def normalize_transaction(record, account_id, row=None):
    """Validate one incoming record and build a Transaction.

    Args:
        record (Mapping or Transaction): Structured record from a parser
        account_id (str): Account the batch is being imported into
        row (int, optional): Position in the batch, used in error messages

    Returns:
        Transaction: Normalized transaction owned by ``account_id``

    Raises:
        RowError: If a required field is missing or invalid
    """
    if isinstance(record, Transaction):
        record = {
            'id': record.id,
            'date': record.date,
            'description': record.description,
            'amount': record.amount,
            'category': record.category,
            'is_pending': record.is_pending,
            'is_reconciled': record.is_reconciled,
            'is_manual': record.is_manual,
            'recurring_bill_id': record.recurring_bill_id,
        }
    if not hasattr(record, 'get') or not hasattr(record, '__contains__'):
        raise RowError(row, f"Record must be a mapping, got {type(record).__name__}")

    record_id = _get(record, 'id')
    record_id = str(record_id).strip() if record_id is not None else None

    missing = [name for name in ('id', 'date', 'description', 'amount') if _get(record, name) is None]
    if missing:
        raise RowError(row, f"Missing required fields: {missing}", record_id)

    try:
        tx_date = standardize_date(_get(record, 'date'))
        amount = clean_amount(_get(record, 'amount'))
        flags = {
            name: parse_flag(_get(record, name))
            for name in ('is_pending', 'is_reconciled', 'is_manual')
        }
    except ValueError as e:
        raise RowError(row, str(e), record_id)

    description = standardize_description(_get(record, 'description'))
    if not description:
        raise RowError(row, "Missing required fields: ['description']", record_id)

    bill_id = _get(record, 'recurring_bill_id')

    return Transaction(
        id=record_id,
        date=tx_date,
        description=description,
        amount=amount,
        category=standardize_category(_get(record, 'category')),
        account_id=account_id,
        recurring_bill_id=str(bill_id) if bill_id is not None else None,
        **flags
    )

def _as_records(records, what):
    if isinstance(records, pd.DataFrame):
        return records.to_dict('records')
    if isinstance(records, (list, tuple)):
        return list(records)
    raise StructuralError(f"{what} must be a list of records or a DataFrame, got {type(records).__name__}")

def normalize_batch(records, account_id) -> Tuple[List[Transaction], List[RowError]]:
    """Normalize a batch, collecting row errors instead of aborting.

    Args:
        records (list or pd.DataFrame): Incoming records
        account_id (str): Account the batch is being imported into

    Returns:
        tuple: (transactions, errors)

    Raises:
        StructuralError: If ``records`` is not a list/tuple/DataFrame
    """
    transactions = []
    errors = []
    for idx, record in enumerate(_as_records(records, "Incoming batch")):
        try:
            transactions.append(normalize_transaction(record, account_id, row=idx))
        except RowError as e:
            logger.warning(f"Skipping malformed record: {e}")
            errors.append(e)
    logger.debug(f"Normalized {len(transactions)} of {len(transactions) + len(errors)} records")
    return transactions, errors

def normalize_bill(record):
    """Build a RecurringBill from a mapping.

    Raises:
        ValueError: If a required field is missing or invalid
    """
    if isinstance(record, RecurringBill):
        return record

    missing = [name for name in ('id', 'account_id', 'description', 'amount') if _get(record, name) is None]
    if missing:
        raise ValueError(f"Missing required bill fields: {missing}")

    amount_type = str(_get(record, 'amount_type', FIXED)).strip().lower()
    if amount_type not in AMOUNT_TYPES:
        raise ValueError(f"Invalid amount type: {amount_type}")

    next_due = _get(record, 'next_due_date')
    tolerance = _get(record, 'amount_tolerance')

    return RecurringBill(
        id=str(_get(record, 'id')),
        account_id=str(_get(record, 'account_id')),
        description=standardize_description(_get(record, 'description')),
        amount=clean_amount(_get(record, 'amount')),
        frequency=str(_get(record, 'frequency', 'monthly')).strip().lower(),
        next_due_date=standardize_date(next_due) if next_due is not None else None,
        amount_type=amount_type,
        amount_tolerance=float(tolerance) if tolerance is not None else 10.0,
        day_of_month=_optional_int(_get(record, 'day_of_month')),
        day_of_week=_optional_int(_get(record, 'day_of_week')),
        week_of_month=_optional_int(_get(record, 'week_of_month')),
        category=standardize_category(_get(record, 'category')),
        is_active=parse_flag(_get(record, 'is_active'), default=True),
    )

def normalize_bills(records):
    """Normalize a list of bill records.

    Raises:
        StructuralError: If ``records`` is not a list/tuple/DataFrame
        ValueError: If any bill is invalid
    """
    return [normalize_bill(record) for record in _as_records(records, "Bill list")]

def transactions_to_frame(transactions):
    """Convert transactions to a DataFrame with the standard ledger columns."""
    rows = [
        {column: getattr(tx, column) for column in LEDGER_COLUMNS}
        for tx in transactions
    ]
    if not rows:
        return pd.DataFrame(columns=LEDGER_COLUMNS)
    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)

def transactions_from_frame(df, account_id=None):
    """Build transactions from a ledger DataFrame.

    Rows keep their own ``account_id`` column unless ``account_id`` is given.
    Unlike incoming batches, a malformed ledger row is fatal.

    Raises:
        ValueError: If a row is malformed
    """
    transactions = []
    for idx, record in enumerate(df.to_dict('records')):
        owner = account_id if account_id is not None else str(_get(record, 'account_id', ''))
        try:
            tx = normalize_transaction(record, owner, row=idx)
        except RowError as e:
            raise ValueError(f"Invalid ledger entry: {e}")
        transactions.append(tx)
    return transactions

def read_transactions_csv(file_path):
    """Read a standardized transaction CSV into a DataFrame of strings.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty or unreadable
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")
    if os.path.getsize(file_path) == 0:
        raise ValueError(f"File is empty: {file_path}")

    logger.debug(f"Reading file: {file_path}")
    encodings = ['utf-8', 'utf-8-sig', 'cp1252']
    for encoding in encodings:
        try:
            df = pd.read_csv(
                file_path,
                header=0,
                dtype=str,  # Read all columns as strings initially
                skipinitialspace=True,
                keep_default_na=False,
                encoding=encoding
            )
        except UnicodeDecodeError:
            continue
        except pd.errors.EmptyDataError:
            raise ValueError(f"No data in {file_path}")
        df.columns = df.columns.str.strip()
        logger.debug(f"Read {len(df)} rows from {file_path} with encoding {encoding}")
        return df
    raise ValueError(f"Could not read {file_path} with any supported encoding")

def read_bills_json(file_path):
    """Read recurring bills from a JSON array of bill records."""
    if not os.path.exists(file_path):
        raise FileNotFoundError(f"File not found: {file_path}")
    with open(file_path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    return normalize_bills(data)
