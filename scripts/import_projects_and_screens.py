"""
Import projects and screens into design_search.db.

Examples:
  python3 scripts/import_projects_and_screens.py --export-root ~/ui/ios --export-root ~/ui/web
  python3 scripts/import_projects_and_screens.py --export-root ~/ui/ios --meta-file mp.json
  python3 scripts/import_projects_and_screens.py --projects-file projects.json --screens-file screens.json
  python3 scripts/import_projects_and_screens.py --export-root ~/ui/ios --dry-run
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Iterable

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pydantic import ValidationError

from design_search.database import (
    init_db,
    update_project_screen_counts,
    upsert_project,
    upsert_screens,
)
from design_search.export_reader import chunk, collect_export
from design_search.models import Project, Screen

DEFAULT_BATCH_SIZE = 1000


def _load_json_array(file_path: Path) -> list:
    if not file_path.is_file():
        raise FileNotFoundError(f"Data file not found: {file_path}")
    raw = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"Data file is not a JSON array: {file_path}")
    return raw


def _validate_records(records: list, model, label: str) -> list:
    valid = []
    for idx, record in enumerate(records, 1):
        try:
            valid.append(model.model_validate(record))
        except ValidationError as exc:
            print(f"[SKIP] {label} #{idx} invalid payload: {exc}")
    return valid


def import_projects(projects: list[Project], dry_run: bool) -> int:
    if not projects:
        print("No project records found, skipping project import.")
        return 0
    print(f"Importing {len(projects)} project record(s)...")
    if dry_run:
        for p in projects:
            print(f"[DRY] project {p.project_id} {p.app_name or '(no name)'}")
        return len(projects)
    for p in projects:
        upsert_project(p)
    print(f"Project import done: {len(projects)} upserted.")
    return len(projects)


def import_screens(screens: list[Screen], batch_size: int, dry_run: bool) -> int:
    if not screens:
        print("No screen records found, skipping screen import.")
        return 0
    print(f"Importing {len(screens)} screen record(s)...")
    if dry_run:
        print("[DRY] no database writes.")
        return len(screens)
    batches = chunk(screens, batch_size)
    for i, batch in enumerate(batches, 1):
        upsert_screens(batch)
        print(f"Screen batch {i}/{len(batches)} done: {len(batch)} upserted")
    return len(screens)


def refresh_screen_counts(screens: list[Screen], dry_run: bool) -> int:
    project_ids = sorted({s.project_id for s in screens})
    if not project_ids or dry_run:
        return 0
    updated = update_project_screen_counts(project_ids)
    print(f"screen_count refreshed for {updated} project(s).")
    return updated


def _parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import projects and screens into design_search.db")
    parser.add_argument(
        "--export-root",
        action="append",
        default=[],
        help="Export directory holding <project>/imgs.json (repeatable)",
    )
    parser.add_argument(
        "--meta-file",
        help="JSON object keyed by project id with appLogoUrl/previewScreens/appTagline/keywords",
    )
    parser.add_argument("--projects-file", help="Flat JSON array of project records")
    parser.add_argument("--screens-file", help="Flat JSON array of screen records")
    parser.add_argument(
        "--batch-size",
        type=int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Screens per write batch (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and validate only, do not write to DB",
    )
    args = parser.parse_args(list(argv))
    if args.batch_size <= 0:
        parser.error("--batch-size must be greater than 0")
    if not (args.export_root or args.projects_file or args.screens_file):
        parser.error("give --export-root or --projects-file/--screens-file")
    return args


def main(argv: Iterable[str]) -> int:
    args = _parse_args(argv)
    init_db()

    projects: list[Project] = []
    screens: list[Screen] = []

    if args.export_root:
        meta_map = {}
        if args.meta_file:
            meta_map = json.loads(Path(args.meta_file).read_text(encoding="utf-8"))
        exported_projects, exported_screens = collect_export(
            [Path(r).expanduser() for r in args.export_root], meta_map
        )
        projects += exported_projects
        screens += exported_screens
    if args.projects_file:
        projects += _validate_records(_load_json_array(Path(args.projects_file)), Project, "project")
    if args.screens_file:
        screens += _validate_records(_load_json_array(Path(args.screens_file)), Screen, "screen")

    imported_projects = import_projects(projects, args.dry_run)
    imported_screens = import_screens(screens, args.batch_size, args.dry_run)
    refresh_screen_counts(screens, args.dry_run)

    print(
        f"Done. projects={imported_projects} screens={imported_screens} dry_run={args.dry_run}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
