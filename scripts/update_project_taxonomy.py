"""
Copy application_type / industry_sector from export imgs.json files onto existing projects.

Examples:
  python3 scripts/update_project_taxonomy.py --export-root ~/ui/ios --export-root ~/ui/web
  python3 scripts/update_project_taxonomy.py --export-root ~/ui/ios --dry-run
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from design_search.database import init_db, update_project_taxonomy
from design_search.export_reader import collect_project_taxonomies


def apply_taxonomies(seeds: list[dict], dry_run: bool) -> int:
    if not seeds:
        print("No project category data found, nothing to update.")
        return 0
    print(f"Updating categories for {len(seeds)} project(s)...")
    matched = 0
    for seed in seeds:
        if dry_run:
            print(f"[DRY] {seed['project_id']} {seed['application_type']} {seed['industry_sector']}")
            continue
        if update_project_taxonomy(seed["project_id"], seed["application_type"], seed["industry_sector"]):
            matched += 1
        else:
            print(f"[SKIP] project {seed['project_id']} not in database")
    return matched


def _parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Update project categories from an export")
    parser.add_argument("--export-root", action="append", required=True, help="Export directory (repeatable)")
    parser.add_argument("--dry-run", action="store_true", help="Do not write to DB")
    return parser.parse_args(list(argv))


def main(argv: Iterable[str]) -> int:
    args = _parse_args(argv)
    init_db()
    seeds = collect_project_taxonomies([Path(r).expanduser() for r in args.export_root])
    matched = apply_taxonomies(seeds, args.dry_run)
    print(f"Done. found={len(seeds)} updated={matched} dry_run={args.dry_run}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
