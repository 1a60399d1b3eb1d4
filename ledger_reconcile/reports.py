"""
Import summaries and output files.
"""

import csv
import logging
import pathlib

from ledger_reconcile.reconciler import NEW, POSTED, SKIPPED, UPDATED
from ledger_reconcile.records import transactions_to_frame

logger = logging.getLogger(__name__)

def format_import_summary(result):
    """Format a summary of one reconciliation.

    Args:
        result (ReconciliationResult): Output of ``reconcile``

    Returns:
        str: Formatted summary text
    """
    counts = result.counts
    summary = [
        f"New Transactions: {counts[NEW]}",
        f"Updated Transactions: {counts[UPDATED]}",
        f"Posted Transactions: {counts[POSTED]}",
        f"Skipped Duplicates: {counts[SKIPPED]}",
        f"Errors: {len(result.errors)}"
    ]

    for error in result.errors:
        summary.append(f"  {error}")

    if result.proposals:
        summary.append(f"\nRecurring Bill Updates: {len(result.proposals)}")
        for proposal in result.proposals:
            line = f"  {proposal.bill.description}:"
            if proposal.proposed_next_due_date is not None:
                line += f" due {proposal.bill.next_due_date} -> {proposal.proposed_next_due_date}"
            if proposal.amount_changed:
                line += (f" amount ${proposal.bill.amount:.2f} -> ${proposal.imported_amount:.2f}"
                         f" ({proposal.amount_difference:+.2f}, {proposal.percent_difference:.1f}%)")
            summary.append(line)

    return "\n".join(summary)

def generate_import_report(result, output_path):
    """Write the import summary to a file.

    Args:
        result (ReconciliationResult): Output of ``reconcile``
        output_path (str or pathlib.Path): File path, or a directory to write
            ``import_report.txt`` into

    Returns:
        pathlib.Path: Path of the written report
    """
    output_path = pathlib.Path(output_path)
    if output_path.is_dir() or not output_path.suffix:
        output_path = output_path / "import_report.txt"

    output_path.parent.mkdir(parents=True, exist_ok=True)
    logger.debug(f"Writing import report to {output_path}")
    with open(output_path, 'w') as f:
        f.write(format_import_summary(result))
    return output_path

def save_ledger(transactions, output_path, filename="ledger.csv"):
    """Save transactions to a CSV file.

    Args:
        transactions (list): Transactions to write
        output_path (str or pathlib.Path): File path, or a directory
        filename (str): File name used when ``output_path`` is a directory

    Returns:
        pathlib.Path: Path of the written file
    """
    output_path = pathlib.Path(output_path)
    if output_path.is_dir() or not output_path.suffix:
        output_path = output_path / filename

    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = transactions_to_frame(transactions)
    df['date'] = df['date'].astype(str)
    # Write to CSV with proper quote encapsulation for all fields
    df.to_csv(output_path, index=False, quoting=csv.QUOTE_NONNUMERIC)
    logger.info(f"Saved {len(df)} transactions to {output_path}")
    return output_path
