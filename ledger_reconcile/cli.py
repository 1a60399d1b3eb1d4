"""
Command line entry point.

Reads a standardized incoming CSV, the current ledger CSV and a JSON list of
recurring bills, reconciles the batch into one account, and writes the
merged ledger, an import report and (optionally) the projected register.
"""

import argparse
import json
import logging
import os
import pathlib

from ledger_reconcile.projections import build_register
from ledger_reconcile.reconciler import reconcile
from ledger_reconcile.records import read_bills_json, read_transactions_csv, transactions_from_frame
from ledger_reconcile.reports import format_import_summary, generate_import_report, save_ledger
from ledger_reconcile.utils import ensure_directory, load_settings, setup_logging

logger = logging.getLogger(__name__)

def build_parser():
    parser = argparse.ArgumentParser(description='Reconcile an imported transaction batch into a ledger')
    parser.add_argument('--incoming', type=str, required=True,
                        help='Standardized CSV of incoming transactions')
    parser.add_argument('--account', type=str, required=True,
                        help='Account the batch belongs to')
    parser.add_argument('--ledger', type=str, default=None,
                        help='Existing ledger CSV (omit to start an empty ledger)')
    parser.add_argument('--bills', type=str, default=None,
                        help='JSON list of recurring bills')
    parser.add_argument('--output', type=str, default=None,
                        help='Output directory (default: $DATA_DIR/output)')
    parser.add_argument('--starting-balance', type=float, default=0.0,
                        help='Account balance before the first ledger transaction')
    parser.add_argument('--projection-days', type=int, default=None,
                        help='Write a projected register covering this many days')
    parser.add_argument('--dismissed', type=str, default=None,
                        help='JSON list of dismissed projection ids')
    parser.add_argument('--debug', action='store_true',
                        help='Enable debug logging')
    return parser

def main(argv=None):
    """Main execution function."""
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug)
    try:
        settings = load_settings()
        logger.info("Starting import reconciliation")

        incoming_df = read_transactions_csv(args.incoming)
        ledger = []
        if args.ledger and os.path.exists(args.ledger):
            ledger = transactions_from_frame(read_transactions_csv(args.ledger))
        bills = read_bills_json(args.bills) if args.bills else []

        result = reconcile(incoming_df, ledger, bills, args.account, settings)

        output_dir = pathlib.Path(args.output) if args.output else ensure_directory('output')
        output_dir.mkdir(parents=True, exist_ok=True)
        save_ledger(result.ledger, output_dir)
        generate_import_report(result, output_dir)
        print(format_import_summary(result))

        if args.projection_days is not None:
            dismissed = []
            if args.dismissed:
                with open(args.dismissed, 'r', encoding='utf-8') as f:
                    dismissed = json.load(f)
            register = build_register(
                result.ledger, bills,
                starting_balance=args.starting_balance,
                horizon_days=args.projection_days,
                dismissed=dismissed,
                account_id=args.account,
                settings=settings
            )
            save_ledger(register, output_dir, filename="register.csv")

        return result

    except Exception as e:
        logger.error(f"Error during reconciliation: {str(e)}")
        raise

if __name__ == '__main__':
    main()
