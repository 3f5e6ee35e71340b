"""
Scratch directory janitor.

Each backup job works in its own directory under the scratch root, named by
its job id. The janitor empties and removes those directories, and sweeps
the ones left behind by jobs that never finished.

It must not be pointed at a job directory that a running job still uses;
the scheduler guarantees that, nothing here checks it.
"""

from __future__ import annotations

import os
from datetime import datetime, timedelta
from pathlib import Path

from loguru import logger

from vault_core.domain.exceptions import CleanupFailed


class TempDirectoryJanitor:
    """
    Removes per-job scratch directories.

    Usage:
        janitor = TempDirectoryJanitor(scratch_root=Path("data/temp/backup"))
        janitor.delete_job_dir("a1b2c3")
        janitor.sweep_older_than(datetime.now() - timedelta(hours=4))
    """

    def __init__(
        self,
        scratch_root: Path,
        directory_permissions: int = 0o777,
        ttl_hours: int = 4,
    ):
        self.scratch_root = Path(scratch_root)
        self.directory_permissions = directory_permissions
        self.ttl_hours = ttl_hours

    def job_dir(self, job_id: str) -> Path:
        """Path of a job's scratch directory. Creating it is the caller's job."""
        if not job_id or "/" in job_id or os.sep in job_id or job_id in (".", ".."):
            raise CleanupFailed(f"invalid job id '{job_id}'")
        return self.scratch_root / job_id

    def _relax(self, path: str) -> None:
        try:
            os.chmod(path, self.directory_permissions)
        except OSError as e:
            logger.debug(f"chmod {path} failed: {e}")

    def clear_contents(self, dir_path: Path) -> bool:
        """
        Recursively delete everything beneath dir_path, keeping dir_path.

        A directory that does not exist yet counts as cleared.

        Raises:
            CleanupFailed: On the first entry that cannot be removed. Entries
                not reached yet are left untouched.
        """
        dir_path = str(dir_path)
        if not os.path.isdir(dir_path):
            return True

        self._relax(dir_path)

        files: list[str] = []
        links: set[str] = set()
        subdirs: list[str] = []
        try:
            with os.scandir(dir_path) as entries:
                for entry in entries:
                    if entry.is_dir(follow_symlinks=False):
                        subdirs.append(entry.path)
                    else:
                        files.append(entry.path)
                        if entry.is_symlink():
                            links.add(entry.path)
        except OSError as e:
            raise CleanupFailed(f"could not list '{dir_path}'", path=dir_path, cause=e) from e

        for file_path in files:
            # chmod follows symlinks; a link is unlinked without touching its target
            if file_path not in links:
                self._relax(file_path)
            try:
                os.unlink(file_path)
            except OSError as e:
                raise CleanupFailed(f"could not delete '{file_path}'", path=file_path, cause=e) from e

        for subdir in subdirs:
            self._relax(subdir)
            self.clear_contents(Path(subdir))
            try:
                os.rmdir(subdir)
            except OSError as e:
                raise CleanupFailed(f"could not remove directory '{subdir}'", path=subdir, cause=e) from e

        return True

    def clear_job_dir(self, job_id: str) -> bool:
        """Empty a job's scratch directory, keeping the directory."""
        return self.clear_contents(self.job_dir(job_id))

    def delete_job_dir(self, job_id: str) -> bool:
        """
        Empty and remove a job's scratch directory.

        Raises:
            CleanupFailed: If any entry or the directory itself cannot be removed.
        """
        path = self.job_dir(job_id)
        if path.is_symlink():
            try:
                path.unlink()
            except OSError as e:
                raise CleanupFailed(f"could not remove link '{path}'", path=str(path), cause=e) from e
            return True

        self.clear_contents(path)

        if path.is_dir():
            try:
                path.rmdir()
            except OSError as e:
                raise CleanupFailed(f"could not remove directory '{path}'", path=str(path), cause=e) from e

        logger.info(f"[{job_id}] Removed scratch directory {path}")
        return True

    def sweep_older_than(self, cutoff: datetime | float) -> bool:
        """
        Remove top-level scratch entries last modified before cutoff.

        Directories are deleted recursively, plain files unlinked. The sweep
        stops at the first failure; entries already removed stay removed.

        Args:
            cutoff: datetime or unix timestamp.

        Raises:
            CleanupFailed: Naming the entry that could not be removed.
        """
        cutoff_ts = cutoff.timestamp() if isinstance(cutoff, datetime) else float(cutoff)

        if not self.scratch_root.is_dir():
            logger.info(f"Scratch root {self.scratch_root} does not exist, nothing to sweep")
            return True

        try:
            entries = sorted(os.listdir(self.scratch_root))
        except OSError as e:
            raise CleanupFailed(
                f"could not list scratch root '{self.scratch_root}'",
                path=str(self.scratch_root),
                cause=e,
            ) from e

        removed = 0
        for entry in entries:
            entry_path = self.scratch_root / entry
            try:
                modified = entry_path.lstat().st_mtime
            except FileNotFoundError:
                continue
            if modified >= cutoff_ts:
                continue

            try:
                if entry_path.is_dir() and not entry_path.is_symlink():
                    self.delete_job_dir(entry)
                else:
                    entry_path.unlink()
            except CleanupFailed as e:
                raise CleanupFailed(
                    f"sweep stopped at '{entry}': {e.message_safe}",
                    path=str(entry_path),
                    cause=e.cause,
                ) from e
            except OSError as e:
                raise CleanupFailed(
                    f"sweep stopped at '{entry}'",
                    path=str(entry_path),
                    cause=e,
                ) from e
            removed += 1

        logger.info(f"Sweep complete: removed={removed}, cutoff={datetime.fromtimestamp(cutoff_ts).isoformat()}")
        return True

    def sweep_expired(self, ttl_hours: int | None = None) -> bool:
        """Sweep entries older than the TTL (defaults to the configured one)."""
        ttl = ttl_hours if ttl_hours is not None else self.ttl_hours
        return self.sweep_older_than(datetime.now() - timedelta(hours=ttl))
