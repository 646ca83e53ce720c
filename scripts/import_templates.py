"""
Load base template spreadsheets into storage and register them as ClauseTemplates.

Files are named "<clause>_<name>.xlsx", e.g. "A5.1_Information_security_policy.xlsx".
An optional videos.csv next to them (columns: clause,video_url) sets training video links.

Usage:
  python scripts/import_templates.py --standard 27001 path/to/templates/
"""

from __future__ import annotations

import argparse
import csv
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.isoaudit.config import load_config
from app.isoaudit.constants import STANDARDS
from app.isoaudit.modules.checklist.service import normalize_clause_key
from app.isoaudit.modules.training.service import register_template
from app.isoaudit.storage import storage_from_config
from scripts._db_utils import script_session


def parse_template_filename(filename: str) -> tuple[str, str] | None:
    """'A.5.1_Access_control.xlsx' -> ('A5.1', 'Access control'); None if not a template name."""
    path = Path(filename)
    if path.suffix.lower() != ".xlsx" or "_" not in path.stem:
        return None
    clause, _, rest = path.stem.partition("_")
    name = " ".join(rest.replace("_", " ").split())
    if not clause or not name:
        return None
    return normalize_clause_key(clause), name


def _load_videos(directory: Path) -> dict[str, str]:
    manifest = directory / "videos.csv"
    if not manifest.exists():
        return {}
    with manifest.open(newline="", encoding="utf-8") as f:
        return {
            normalize_clause_key((row.get("clause") or "").strip()): (row.get("video_url") or "").strip()
            for row in csv.DictReader(f)
            if row.get("clause")
        }


def main() -> None:
    load_dotenv()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--standard", required=True, choices=sorted(STANDARDS))
    parser.add_argument("directory", type=Path)
    parser.add_argument("--dry-run", action="store_true", help="List what would be imported")
    args = parser.parse_args()

    if not args.directory.is_dir():
        parser.error(f"Not a directory: {args.directory}")

    config = load_config()
    storage = storage_from_config(config)
    db_url = (os.environ.get("DATABASE_URL") or config["DATABASE_URL"]).strip()
    videos = _load_videos(args.directory)

    files = sorted(p for p in args.directory.iterdir() if p.is_file())
    created = updated = skipped = 0
    with script_session(db_url) as s:
        for path in files:
            parsed = parse_template_filename(path.name)
            if parsed is None:
                if path.name != "videos.csv":
                    print(f"skip  {path.name} (not <clause>_<name>.xlsx)")
                    skipped += 1
                continue
            clause, name = parsed
            if args.dry_run:
                print(f"would import {clause}: {name}")
                continue
            _, was_created = register_template(
                s,
                storage,
                standard=args.standard,
                clause=clause,
                name=name,
                data=path.read_bytes(),
                video_url=videos.get(clause) or None,
            )
            print(f"{'new ' if was_created else 'upd '} {clause}: {name}")
            if was_created:
                created += 1
            else:
                updated += 1

    print(f"Done. created={created} updated={updated} skipped={skipped}")


if __name__ == "__main__":
    main()
