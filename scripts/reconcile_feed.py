"""
Reconcile the catalog from the command line.

Usage:
    # Preview an upload
    python scripts/reconcile_feed.py data/stock.xlsx --dry-run

    # Apply, zeroing stock for entries missing from the file
    python scripts/reconcile_feed.py data/stock.xlsx --sync-stock

    # Reconcile against the configured Google Sheet
    python scripts/reconcile_feed.py --sheet --sync-stock

    # Recent runs / restore one
    python scripts/reconcile_feed.py --history
    python scripts/reconcile_feed.py --restore 3f2c...
"""

import argparse
import os
import sys

# Allow imports from the project root when running as a script
_root_dir = os.path.join(os.path.dirname(__file__), "..")
sys.path.insert(0, _root_dir)

from dotenv import load_dotenv
load_dotenv(os.path.join(_root_dir, ".env"))

from exceptions import AppError
from integrations.google_sheet import fetch_sheet_rows
from parsers.feed_parser import parse_feed_file
from services.history_service import get_history_service
from services.reconciliation_service import get_reconciliation_service
from services.restore_service import get_restore_service

MAX_LISTED = 20


def print_report(report) -> None:
    stats = report.stats
    mode = "DRY RUN" if report.dry_run else "APPLIED"
    print(f"\n{mode}: {report.file_name}")
    print(f"  {report.message}")
    print(f"  rows={stats.total_rows} valid={stats.valid_rows} "
          f"updated={stats.updated} inserted={stats.inserted} unchanged={stats.unchanged}")
    print(f"  not_found={stats.not_found} zeroed={stats.stock_zeroed} "
          f"errors={stats.errors_count} duplicates={stats.duplicates_in_file}")

    if report.not_found:
        print("\n  Not matched:")
        for item in report.not_found[:MAX_LISTED]:
            print(f"    row {item.row_number}: {item.reason}")
            for suggestion in item.suggestions:
                print(f"      {suggestion}")

    if report.errors:
        print("\n  Errors:")
        for error in report.errors[:MAX_LISTED]:
            print(f"    row {error.row_number}: {error.message}")

    if report.history_id:
        print(f"\n  History: {report.history_id}")
    if report.history_error:
        print(f"\n  WARNING: history not recorded: {report.history_error}")


def run_feed(args) -> None:
    if args.sheet:
        feed = fetch_sheet_rows()
    else:
        with open(args.file, "rb") as f:
            feed = parse_feed_file(f.read(), os.path.basename(args.file))

    report = get_reconciliation_service().run(
        feed.rows,
        file_name=feed.file_name,
        sync_stock=args.sync_stock,
        dry_run=args.dry_run,
    )
    print_report(report)


def list_history() -> None:
    entries = get_history_service().list_recent()
    if not entries:
        print("No history entries.")
        return
    for entry in entries:
        restored = f"  restored {entry.restored_at:%Y-%m-%d %H:%M}" if entry.restored_at else ""
        print(f"{entry.id}  {entry.uploaded_at:%Y-%m-%d %H:%M}  {entry.file_name}  "
              f"updated={entry.stats.updated} inserted={entry.stats.inserted} "
              f"zeroed={entry.stats.stock_zeroed}{restored}")


def restore(history_id: str) -> None:
    result = get_restore_service().restore(history_id)
    print(f"Restored {result.restored} entries, re-created {result.recreated}")
    for error in result.errors:
        print(f"  ERROR: {error}")


def main():
    parser = argparse.ArgumentParser(
        description="Reconcile the catalog against a feed file or the Google Sheet."
    )
    parser.add_argument("file", nargs="?", help="Feed file (.xlsx, .xls, .csv)")
    parser.add_argument("--sheet", action="store_true", help="Use the configured Google Sheet")
    parser.add_argument("--dry-run", action="store_true", help="Build the report without writing")
    parser.add_argument("--sync-stock", action="store_true", help="Zero stock for entries missing from the feed")
    parser.add_argument("--history", action="store_true", help="List recent runs")
    parser.add_argument("--restore", metavar="HISTORY_ID", help="Restore the catalog from a run's snapshot")

    args = parser.parse_args()

    try:
        if args.history:
            list_history()
        elif args.restore:
            restore(args.restore)
        elif args.file or args.sheet:
            run_feed(args)
        else:
            parser.print_help()
            sys.exit(1)
    except AppError as e:
        print(f"ERROR [{e.code}]: {e.message}")
        sys.exit(1)


if __name__ == "__main__":
    main()
