#!/usr/bin/env python3
"""
Give legacy reservations (no event log) a synthesized history.

Idempotent: records that already carry events are skipped.

Usage:
    python scripts/backfill_reservation_events.py [--dry-run]
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app.core.backfill import backfill_record
from app.storage.reservation_store import iter_raw, replace_raw


def run(dry_run: bool = False) -> tuple[int, int]:
    """Return (scanned, updated)."""
    scanned = 0
    updated = 0
    for record in list(iter_raw()):
        scanned += 1
        repaired = backfill_record(record)
        if repaired is None:
            continue
        record_id = record.get("id")
        if not isinstance(record_id, str):
            continue
        updated += 1
        if not dry_run:
            replace_raw(record_id, repaired)
    return scanned, updated


def main():
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args()

    scanned, updated = run(dry_run=args.dry_run)
    print(
        f"Reservation events backfill finished{' (dry-run)' if args.dry_run else ''}: "
        f"scanned={scanned}, updated={updated}"
    )


if __name__ == "__main__":
    main()
