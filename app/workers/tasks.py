"""
Celery task definitions for backup archival.

- archive_backup: runs the archival orchestrator for one produced backup
- sweep_scratch_dirs: periodic removal of abandoned scratch directories
"""

from __future__ import annotations

from datetime import datetime

from loguru import logger

from app.archival.factory import get_janitor, get_orchestrator
from app.workers.celery_app import celery_app
from vault_core.domain.exceptions import CleanupFailed
from vault_core.domain.models import ArchiveJob


@celery_app.task(bind=True, name="app.workers.tasks.archive_backup")
def archive_backup(self, job: dict) -> dict:
    """
    Archive one produced backup file.

    Not retried automatically: the source file is gone after a failed run,
    so a retry means producing the backup again.

    Args:
        self: Celery task instance.
        job: ArchiveJob fields as a JSON-compatible dict.

    Returns:
        dict: ArchivalResult as JSON-compatible dict.
    """
    archive_job = ArchiveJob.model_validate(job)
    logger.info(
        f"[{archive_job.job_id}] Starting archive task {self.request.id} for {archive_job.file_name}"
    )

    result = get_orchestrator().run(archive_job)
    return result.model_dump(mode="json")


@celery_app.task(name="app.workers.tasks.sweep_scratch_dirs")
def sweep_scratch_dirs(ttl_hours: int | None = None) -> dict:
    """
    Remove scratch entries older than the TTL.

    Returns:
        dict: {"ok": bool, "error": str | None, "swept_at": iso timestamp}
    """
    janitor = get_janitor()
    swept_at = datetime.now().isoformat()
    try:
        janitor.sweep_expired(ttl_hours)
    except CleanupFailed as e:
        logger.error(e.one_line())
        return {"ok": False, "error": e.one_line(), "swept_at": swept_at}

    return {"ok": True, "error": None, "swept_at": swept_at}
