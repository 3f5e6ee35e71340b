#!/usr/bin/env python3
"""
CLI utility to remove abandoned backup scratch directories.

Usage:
    uv run scripts/sweep_scratch.py --ttl-hours 4
    uv run scripts/sweep_scratch.py --before 2026-01-01T00:00:00
"""

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.archival.factory import get_janitor
from vault_core.config import settings
from vault_core.domain.exceptions import CleanupFailed
from vault_core.logging import setup_logging


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Sweep backup scratch directories")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--ttl-hours",
        type=int,
        default=None,
        help="Override TTL in hours (defaults to settings.SCRATCH_TTL_HOURS)",
    )
    group.add_argument("--before", type=datetime.fromisoformat, default=None, help="ISO cutoff timestamp")
    args = parser.parse_args(argv)
    setup_logging(settings.LOG_LEVEL)

    janitor = get_janitor()
    try:
        if args.before is not None:
            janitor.sweep_older_than(args.before)
        else:
            janitor.sweep_expired(args.ttl_hours)
    except CleanupFailed as e:
        print(json.dumps({"ok": False, "error": e.one_line()}, indent=2))
        return 1

    print(json.dumps({"ok": True, "scratch_root": str(janitor.scratch_root)}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
