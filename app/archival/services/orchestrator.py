"""
Archival orchestrator.

Takes one produced backup (ArchiveJob) and moves it to its final home:
1. Rejects import jobs untouched and checks preconditions.
2. Computes the content store address from mode and type.
3. Resolves the external destination (automated jobs only).
4. Dispatches to exactly one destination kind, plus the content store when
   the policy keeps a copy there.
5. Removes the source file on every path, success or failure.
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from app.archival.services.content_store import ContentStorePublisher
from app.archival.services.destination import DestinationResolver
from app.archival.services.local_sink import LocalDirectorySink
from app.archival.services.object_storage import ObjectStorageGateway
from vault_core.config import ArchivalConfig
from vault_core.domain.exceptions import ArchivalError, CleanupFailed, InvalidDestination, PreconditionFailed
from vault_core.domain.interfaces import DestinationSink
from vault_core.domain.models import (
    ArchivalResult,
    ArchivalState,
    ArchiveJob,
    BackupMode,
    BackupType,
    ContentStoreDestination,
    ContextLevel,
    DestinationDescriptor,
    FileAddress,
    StoragePolicy,
    StoredArtifactHandle,
    build_transfer_metadata,
    context_id_for,
)
from vault_core.runtime.errors import ErrorCode


class SourceFileLease:
    """
    Owns a job's source file until orchestration is done.

    Leaving the ``with`` block removes the file if it still exists. A removal
    failure never replaces the error that is already propagating; it is
    attached to it as ``cleanup_error`` and kept on the lease.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self.cleanup_error: CleanupFailed | None = None

    def __enter__(self) -> "SourceFileLease":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            self.cleanup_error = CleanupFailed(
                f"could not remove source file '{self.path}'",
                path=str(self.path),
                cause=e,
            )
            logger.warning(f"Cleanup of {self.path} failed: {e}")
            if isinstance(exc, ArchivalError):
                exc.cleanup_error = self.cleanup_error
        return False


class ArchivalOrchestrator:
    """
    Routes produced backups to the content store or an external destination.

    Usage:
        orchestrator = ArchivalOrchestrator(config, publisher=ContentStorePublisher(store))
        handle = orchestrator.archive(job)
    """

    def __init__(
        self,
        config: ArchivalConfig,
        publisher: ContentStorePublisher,
        resolver: DestinationResolver | None = None,
        gateway: ObjectStorageGateway | None = None,
        sink: LocalDirectorySink | None = None,
    ):
        self.config = config
        self.publisher = publisher
        self.resolver = resolver or DestinationResolver()
        self.sinks: dict[str, DestinationSink] = {
            "object_store": gateway or ObjectStorageGateway(),
            "local": sink or LocalDirectorySink(file_permissions=config.file_permissions),
        }

    @staticmethod
    def address_for(job: ArchiveJob) -> FileAddress:
        """Compute where the backup lives in the content store."""
        component = "backup"
        item_id = 0

        if job.type is BackupType.ACTIVITY:
            context_id = context_id_for(ContextLevel.MODULE, job.container_id)
            area = "activity"
        elif job.type is BackupType.SECTION:
            context_id = context_id_for(ContextLevel.COURSE, job.course_id)
            area = "section"
            item_id = job.container_id
        else:
            context_id = context_id_for(ContextLevel.COURSE, job.course_id)
            area = "course"

        if job.mode is BackupMode.HUB:
            # Hub backups never carry user data; the uploader empties this area
            context_id = context_id_for(ContextLevel.USER, job.owner_id)
            component = "user"
            area = "tohub"
            item_id = 0
        elif job.mode is BackupMode.GENERAL and (not job.has_user_data or job.is_anonymised):
            context_id = context_id_for(ContextLevel.USER, job.owner_id)
            component = "user"
            area = "backup"
            item_id = 0
        elif job.mode is BackupMode.AUTOMATED:
            area = "automated"

        return FileAddress(
            context_id=context_id,
            component=component,
            area=area,
            item_id=item_id,
            file_name=job.file_name,
        )

    def archive(self, job: ArchiveJob) -> StoredArtifactHandle | None:
        """
        Archive one job.

        Returns:
            The content store handle, or None for import jobs and jobs kept
            only at an external destination.

        Raises:
            ArchivalError: Typed failure. The source file has been removed
                (best effort) before this propagates.
        """
        return self._archive(job, history=[], warnings=[])

    def run(self, job: ArchiveJob) -> ArchivalResult:
        """
        Archive one job and report the outcome instead of raising.

        Used by the CLI and the worker task, which only need a success flag
        and one readable line.
        """
        history: list[ArchivalState] = []
        warnings: list[str] = []
        try:
            handle = self._archive(job, history=history, warnings=warnings)
        except ArchivalError as e:
            if e.cleanup_error is not None:
                warnings.append(e.cleanup_error.one_line())
            logger.error(f"[{job.job_id}] {e.one_line()}")
            return ArchivalResult(
                job_id=job.job_id,
                handle=e.partial_handle,
                error=e.one_line(),
                error_code=e.code,
                warnings=warnings,
                history=history,
            )

        return ArchivalResult(
            job_id=job.job_id,
            handle=handle,
            warnings=warnings,
            history=history,
        )

    def _archive(
        self,
        job: ArchiveJob,
        history: list[ArchivalState],
        warnings: list[str],
    ) -> StoredArtifactHandle | None:
        history.append(ArchivalState.START)

        if job.mode is BackupMode.IMPORT:
            # Import jobs are never stored and the caller still needs the file
            logger.info(f"[{job.job_id}] Import backup, nothing to archive")
            history.append(ArchivalState.DONE)
            return None

        handle = None
        try:
            with SourceFileLease(job.source_path) as lease:
                try:
                    self._check_preconditions(job)

                    history.append(ArchivalState.RESOLVING)
                    address = self.address_for(job)
                    destination = self._resolve_destination(job)

                    history.append(ArchivalState.DISPATCHING)
                    handle = self._dispatch(job, address, destination)
                    history.append(ArchivalState.SUCCEEDED)
                except ArchivalError as e:
                    history.append(ArchivalState.FAILED)
                    e.partial_handle = handle
                    raise
                except Exception as e:
                    history.append(ArchivalState.FAILED)
                    error = ArchivalError(
                        ErrorCode.INTERNAL_ERROR,
                        "unexpected error while archiving",
                        cause=e,
                    )
                    error.partial_handle = handle
                    raise error from e
                finally:
                    history.append(ArchivalState.CLEANUP)

            if lease.cleanup_error is not None:
                warnings.append(lease.cleanup_error.one_line())
        finally:
            history.append(ArchivalState.DONE)

        logger.info(f"[{job.job_id}] Archived {job.file_name}")
        return handle

    def _check_preconditions(self, job: ArchiveJob) -> None:
        if not job.file_name:
            raise PreconditionFailed("backup has no file name")

        source = Path(job.source_path)
        if not source.is_file() or not os.access(source, os.R_OK):
            raise PreconditionFailed(f"backup file '{source}' is not readable")

    def _resolve_destination(self, job: ArchiveJob) -> DestinationDescriptor:
        if job.mode is not BackupMode.AUTOMATED or self.config.storage_policy is StoragePolicy.OFF:
            return ContentStoreDestination()

        if not self.config.external_destination:
            raise InvalidDestination("external storage is enabled but no destination is configured")

        return self.resolver.resolve(self.config.external_destination, job.mode)

    def _dispatch(
        self,
        job: ArchiveJob,
        address: FileAddress,
        destination: DestinationDescriptor,
    ) -> StoredArtifactHandle | None:
        if isinstance(destination, ContentStoreDestination):
            return self.publisher.publish(address, job.source_path, job.owner_id)

        metadata = build_transfer_metadata(job, self.config.site_identifier)
        self.sinks[destination.kind].deliver(job, destination, metadata)
        logger.info(f"[{job.job_id}] Copied backup to external destination ({destination.kind})")

        if self.config.storage_policy is StoragePolicy.EXTERNAL_ONLY:
            return None

        return self.publisher.publish(address, job.source_path, job.owner_id)
