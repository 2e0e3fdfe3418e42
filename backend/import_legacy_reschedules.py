#!/usr/bin/env python3
"""Copy reschedule requests stored in client_notes into the structured columns.

Run once after migration 002. Safe to re-run: rows that already carry a
structured request are skipped.
"""
import argparse
import logging

from trainer_deliveries.database import SessionLocal
from trainer_deliveries.use_cases.reschedule_import import import_legacy_reschedule_requests_use_case


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="report what would be imported without writing")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")

    db = SessionLocal()
    try:
        report = import_legacy_reschedule_requests_use_case(db=db, dry_run=args.dry_run)
    finally:
        db.close()

    print(f"Imported: {len(report.imported)}")
    print(f"Skipped (delivery no longer reschedulable): {len(report.skipped_not_reschedulable)}")
    for delivery_id in report.skipped_not_reschedulable:
        print(f"  - {delivery_id}")
    print(f"Unreadable: {len(report.unreadable)}")
    for delivery_id in report.unreadable:
        print(f"  - {delivery_id}")
    if args.dry_run:
        print("Dry run: nothing was written")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
