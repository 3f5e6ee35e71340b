"""
Service interfaces (Protocols) for backup-vault.

These protocols describe the collaborators the archival pipeline talks to:
- ContentStore: the content-addressed file store
- DestinationSink: one implementation per destination kind
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Protocol, runtime_checkable

from vault_core.domain.models import ArchiveJob, FileAddress, StoredArtifactHandle


@runtime_checkable
class ContentStore(Protocol):
    """Interface for the content-addressed file store."""

    def exists(self, address: FileAddress) -> bool:
        """Return True if a file is stored at this address."""
        ...

    def get(self, address: FileAddress) -> StoredArtifactHandle | None:
        """Return the handle stored at this address, or None."""
        ...

    def delete_by_address(self, address: FileAddress) -> None:
        """Delete the file stored at this address, if any."""
        ...

    def create_from_path(
        self,
        address: FileAddress,
        source_path: Path,
        owner_id: int,
        created_at: datetime,
        modified_at: datetime,
    ) -> StoredArtifactHandle:
        """
        Copy a local file into the store.

        Args:
            address: Logical address to store the file under.
            source_path: Local file to ingest. Not removed by the store.
            owner_id: User recorded as owner.
            created_at: Creation timestamp to stamp.
            modified_at: Modification timestamp to stamp.

        Returns:
            StoredArtifactHandle: Reference to the persisted file.
        """
        ...

    def open(self, handle: StoredArtifactHandle) -> BinaryIO:
        """Open the stored bytes for reading. Caller closes the handle."""
        ...

    def delete(self, handle: StoredArtifactHandle) -> None:
        """Delete a stored file."""
        ...


@runtime_checkable
class DestinationSink(Protocol):
    """Delivers a job's source file to one kind of external destination."""

    def deliver(self, job: ArchiveJob, destination, metadata: dict[str, str]) -> None:
        """
        Copy the job's file to the destination.

        Raises:
            InvalidDestination: Destination unusable.
            TransferFailed: Copy did not complete.
        """
        ...
