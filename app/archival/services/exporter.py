"""
Export of backups already held in the content store.

Used by the command-line backup tool: the backup is produced into the
content store first and then copied to the requested destination.

The two external destinations fail differently:
- object storage: a failed upload raises TransferFailed; the stored copy stays.
- local directory: a failed copy keeps the backup in the content store and is
  reported through ExportOutcome.kept_in_store, not raised.
"""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from app.archival.services.destination import DestinationResolver
from app.archival.services.local_sink import LocalDirectorySink
from app.archival.services.object_storage import ObjectStorageGateway
from vault_core.domain.exceptions import InvalidDestination, TransferFailed
from vault_core.domain.interfaces import ContentStore
from vault_core.domain.models import (
    ContentStoreDestination,
    DestinationDescriptor,
    LocalDestination,
    ObjectStoreDestination,
    StoredArtifactHandle,
)


class ExportOutcome(BaseModel):
    destination_kind: str
    location: str | None = None
    kept_in_store: bool = True


class StoredBackupExporter:
    """Copies a stored backup out of the content store."""

    def __init__(
        self,
        store: ContentStore,
        resolver: DestinationResolver | None = None,
        gateway: ObjectStorageGateway | None = None,
        sink: LocalDirectorySink | None = None,
    ):
        self.store = store
        self.resolver = resolver or DestinationResolver()
        self.gateway = gateway or ObjectStorageGateway()
        self.sink = sink or LocalDirectorySink()

    def validate_destination(self, destination: str | None) -> DestinationDescriptor:
        """
        Resolve the destination before any backup work starts.

        Raises:
            InvalidDestination: Bad URL or path, or the bucket does not exist.
        """
        descriptor = self.resolver.resolve(destination)
        if isinstance(descriptor, ObjectStoreDestination) and not self.gateway.bucket_exists(descriptor.bucket):
            raise InvalidDestination(f"bucket '{descriptor.bucket}' does not exist")
        return descriptor

    def export(
        self,
        handle: StoredArtifactHandle,
        destination: DestinationDescriptor,
        metadata: dict[str, str] | None = None,
    ) -> ExportOutcome:
        """
        Copy a stored backup to the destination.

        Raises:
            TransferFailed: Object storage upload failed.
        """
        if isinstance(destination, ContentStoreDestination):
            return ExportOutcome(
                destination_kind=destination.kind,
                location=handle.address.pathname(),
                kept_in_store=True,
            )

        if isinstance(destination, ObjectStoreDestination):
            return self._export_to_bucket(handle, destination, metadata or {})

        return self._export_to_directory(handle, destination)

    def _export_to_bucket(
        self,
        handle: StoredArtifactHandle,
        destination: ObjectStoreDestination,
        metadata: dict[str, str],
    ) -> ExportOutcome:
        key = destination.key_for(handle.address.file_name)
        with self.store.open(handle) as stream:
            result = self.gateway.upload_stream(
                destination.bucket,
                key,
                stream,
                handle.byte_size,
                metadata,
            )

        if not result.ok:
            raise TransferFailed(
                f"upload to '{destination.bucket}/{key}' returned status {result.status_code}",
                status_code=result.status_code,
            )

        logger.info(f"Uploaded stored backup to {destination.bucket}/{key}")
        return ExportOutcome(
            destination_kind=destination.kind,
            location=f"s3://{destination.bucket}/{key}",
            kept_in_store=True,
        )

    def _export_to_directory(
        self,
        handle: StoredArtifactHandle,
        destination: LocalDestination,
    ) -> ExportOutcome:
        file_name = handle.address.file_name
        if not self.sink.copy(Path(handle.storage_pointer), destination.directory_path, file_name):
            logger.warning(
                f"Could not write to '{destination.directory_path}'. "
                f"Leaving the backup in the content store."
            )
            return ExportOutcome(destination_kind=destination.kind, kept_in_store=True)

        self.store.delete(handle)
        return ExportOutcome(
            destination_kind=destination.kind,
            location=str(destination.directory_path / file_name),
            kept_in_store=False,
        )
