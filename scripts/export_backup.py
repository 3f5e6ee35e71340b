#!/usr/bin/env python3
"""
CLI utility to copy a backup held in the content store to a destination.

The destination is checked before anything is copied. A local directory copy
that fails leaves the backup in the content store.

Usage:
    uv run scripts/export_backup.py --context-id course:2 --area course \
        --file-name backup-course-2.mbz --destination s3://backups/nightly
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.archival.factory import get_exporter
from vault_core.config import settings
from vault_core.domain.exceptions import ArchivalError
from vault_core.domain.models import FileAddress, encode_metadata
from vault_core.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export a stored backup")
    parser.add_argument("--context-id", required=True, help="e.g. course:2 or user:5")
    parser.add_argument("--component", default="backup")
    parser.add_argument("--area", required=True, help="course, section, activity, automated, backup, tohub")
    parser.add_argument("--item-id", type=int, default=0)
    parser.add_argument("--file-name", required=True)
    parser.add_argument("--destination", required=True, help="Directory path or s3://bucket/prefix")
    parser.add_argument("--course-id", default="", help="Recorded in upload metadata")
    parser.add_argument("--job-id", default="", help="Recorded in upload metadata")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.LOG_LEVEL)

    exporter = get_exporter()
    address = FileAddress(
        context_id=args.context_id,
        component=args.component,
        area=args.area,
        item_id=args.item_id,
        file_name=args.file_name,
    )

    try:
        destination = exporter.validate_destination(args.destination)
    except ArchivalError as e:
        print(e.one_line(), file=sys.stderr)
        return 1

    handle = exporter.store.get(address)
    if handle is None:
        print(f"No stored backup at {address.pathname()}", file=sys.stderr)
        return 1

    metadata = encode_metadata({"backup-course-id": args.course_id, "backup-id": args.job_id})
    try:
        outcome = exporter.export(handle, destination, metadata)
    except ArchivalError as e:
        print(e.one_line(), file=sys.stderr)
        return 1

    if outcome.location is None:
        print("Destination not writable. Leaving the backup in the content store.")
    else:
        print(f"Backup written to {outcome.location}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
