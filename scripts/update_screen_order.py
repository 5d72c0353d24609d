"""
Set screens.order from the analysis file names of an export.

ui-analysis files are named <order>_<screenId>.json, classic-analysis files
<x>_<order>_<screenId>.json. Only screens already in the database are touched.

Examples:
  python3 scripts/update_screen_order.py --export-root ~/ui/ios --export-root ~/ui/web
  python3 scripts/update_screen_order.py --export-root ~/ui/ios --batch-size 500 --dry-run
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from design_search.database import init_db, update_screen_orders
from design_search.export_reader import chunk, collect_screen_orders

DEFAULT_BATCH_SIZE = 1000


def apply_orders(orders: list[tuple[str, int]], batch_size: int, dry_run: bool) -> int:
    if not orders:
        print("No screen orders found.")
        return 0
    print(f"Updating order for {len(orders)} screen(s)...")
    if dry_run:
        for screen_id, order in orders[:20]:
            print(f"[DRY] {screen_id} -> {order}")
        return 0
    matched = 0
    batches = chunk(orders, batch_size)
    for i, batch in enumerate(batches, 1):
        n = update_screen_orders(batch)
        matched += n
        print(f"Batch {i}/{len(batches)} done: matched {n}")
    return matched


def _parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Update screen order from analysis file names")
    parser.add_argument("--export-root", action="append", required=True, help="Export directory (repeatable)")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    parser.add_argument("--dry-run", action="store_true", help="Do not write to DB")
    args = parser.parse_args(list(argv))
    if args.batch_size <= 0:
        parser.error("--batch-size must be greater than 0")
    return args


def main(argv: Iterable[str]) -> int:
    args = _parse_args(argv)
    init_db()
    orders = collect_screen_orders([Path(r).expanduser() for r in args.export_root])
    matched = apply_orders(orders, args.batch_size, args.dry_run)
    print(f"Done. found={len(orders)} matched={matched} dry_run={args.dry_run}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
