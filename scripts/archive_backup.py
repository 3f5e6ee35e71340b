#!/usr/bin/env python3
"""
CLI utility to archive one produced backup file.

Usage:
    uv run scripts/archive_backup.py --source /tmp/backup/abc/backup.mbz \
        --file-name backup-course-2.mbz --job-id abc --course-id 2 --mode automated
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.archival.factory import get_orchestrator
from vault_core.config import settings
from vault_core.domain.models import ArchiveJob, BackupMode, BackupType
from vault_core.logging import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Archive a produced backup file")
    parser.add_argument("--source", required=True, help="Produced backup file on local disk")
    parser.add_argument("--file-name", required=True, help="Target file name")
    parser.add_argument("--job-id", required=True, help="Backup id")
    parser.add_argument("--course-id", type=int, required=True)
    parser.add_argument("--container-id", type=int, default=None, help="Activity/section id (defaults to course id)")
    parser.add_argument("--owner-id", type=int, default=0, help="User executing the backup")
    parser.add_argument("--course-title", default="")
    parser.add_argument("--mode", choices=[m.value for m in BackupMode], default=BackupMode.GENERAL.value)
    parser.add_argument("--type", choices=[t.value for t in BackupType], default=BackupType.COURSE.value)
    parser.add_argument("--with-users", action="store_true", help="Backup includes user data")
    parser.add_argument("--anonymised", action="store_true", help="User data is anonymised")
    parser.add_argument(
        "--destination",
        default=None,
        help="Override BACKUP_AUTO_DESTINATION (directory path or s3://bucket/prefix)",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(settings.LOG_LEVEL)

    job = ArchiveJob(
        job_id=args.job_id,
        source_path=Path(args.source),
        file_name=args.file_name,
        mode=BackupMode(args.mode),
        type=BackupType(args.type),
        has_user_data=args.with_users,
        is_anonymised=args.anonymised,
        owner_id=args.owner_id,
        container_id=args.container_id if args.container_id is not None else args.course_id,
        course_id=args.course_id,
        course_title=args.course_title,
    )

    run_settings = settings
    if args.destination is not None:
        run_settings = settings.model_copy(update={"BACKUP_AUTO_DESTINATION": args.destination})

    result = get_orchestrator(run_settings).run(job)
    for warning in result.warnings:
        print(f"warning: {warning}", file=sys.stderr)

    if not result.succeeded:
        print(result.error, file=sys.stderr)
        return 1

    if result.handle is not None:
        print(f"Backup stored as {result.handle.address.pathname()}")
    else:
        print("Backup completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
