"""
Local directory sink for archived backups.

Copies a backup into a writable directory outside the content store, e.g. a
mounted backup volume.
"""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from loguru import logger

from app.archival.services.destination import check_writable_directory
from vault_core.domain.exceptions import TransferFailed
from vault_core.domain.models import ArchiveJob, LocalDestination


class LocalDirectorySink:
    """
    Copies files into a local directory and normalizes their permissions.

    Usage:
        sink = LocalDirectorySink(file_permissions=0o640)
        if not sink.copy(path, Path("/mnt/backups"), "backup.mbz"):
            ...
    """

    def __init__(self, file_permissions: int = 0o666):
        self.file_permissions = file_permissions

    def copy(self, source_path: Path, dest_dir: Path, file_name: str) -> bool:
        """
        Copy source_path to dest_dir/file_name.

        Returns:
            bool: False if the copy itself failed. The caller decides what to
            do with the source in that case.

        Raises:
            InvalidDestination: If dest_dir is missing, not a directory or not writable.
        """
        dest_dir = Path(dest_dir)
        check_writable_directory(dest_dir)

        target = dest_dir / file_name
        logger.info(f"Writing {target}")
        try:
            shutil.copyfile(source_path, target)
        except OSError as e:
            logger.error(f"Copy of {source_path} to {target} failed: {e}")
            return False

        # Destinations outside the managed data root may refuse chmod
        try:
            os.chmod(target, self.file_permissions)
        except OSError as e:
            logger.warning(f"Could not set permissions {oct(self.file_permissions)} on {target}: {e}")

        return True

    def deliver(
        self,
        job: ArchiveJob,
        destination: LocalDestination,
        metadata: dict[str, str],
    ) -> None:
        """
        DestinationSink entry point for local directory destinations.

        Raises:
            TransferFailed: If the copy failed.
        """
        if not self.copy(job.source_path, destination.directory_path, job.file_name):
            raise TransferFailed(
                f"copy of backup to '{destination.directory_path}' failed",
            )
