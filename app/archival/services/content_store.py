"""
Content store for archived backups.

This module provides:
- FileContentStore: filesystem-backed content-addressed store
- ContentStorePublisher: publishes a backup into the store, superseding any
  previous file at the same logical address
"""

from __future__ import annotations

import hashlib
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import BinaryIO

from loguru import logger

from vault_core.domain.exceptions import PublishFailed
from vault_core.domain.interfaces import ContentStore
from vault_core.domain.models import FileAddress, StoredArtifactHandle

CHUNK_SIZE = 1024 * 1024


def _sha256_of(path: Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


class FileContentStore:
    """
    File-system based content store.

    Bytes live under ``blobs/<aa>/<hash>`` and a JSON record per artifact
    under ``records/<aa>/<hash>.json``, where ``<hash>`` is the pathname hash
    of the logical address. Implements the ContentStore protocol.

    Usage:
        store = FileContentStore(base_path="/var/lib/backup-vault/filestore")
        handle = store.create_from_path(address, path, owner_id=2, ...)
    """

    def __init__(self, base_path: str | Path = "data/filestore"):
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"FileContentStore initialized at {self.base_path}")

    def _blob_path(self, pathname_hash: str) -> Path:
        return self.base_path / "blobs" / pathname_hash[:2] / pathname_hash

    def _record_path(self, pathname_hash: str) -> Path:
        return self.base_path / "records" / pathname_hash[:2] / f"{pathname_hash}.json"

    def exists(self, address: FileAddress) -> bool:
        return self._record_path(address.pathname_hash()).exists()

    def get(self, address: FileAddress) -> StoredArtifactHandle | None:
        record = self._record_path(address.pathname_hash())
        if not record.exists():
            return None
        return StoredArtifactHandle.model_validate_json(record.read_text(encoding="utf-8"))

    def delete_by_address(self, address: FileAddress) -> None:
        pathname_hash = address.pathname_hash()
        self._record_path(pathname_hash).unlink(missing_ok=True)
        self._blob_path(pathname_hash).unlink(missing_ok=True)
        logger.info(f"Deleted stored file {address.pathname()}")

    def create_from_path(
        self,
        address: FileAddress,
        source_path: Path,
        owner_id: int,
        created_at: datetime,
        modified_at: datetime,
    ) -> StoredArtifactHandle:
        pathname_hash = address.pathname_hash()
        blob = self._blob_path(pathname_hash)
        blob.parent.mkdir(parents=True, exist_ok=True)

        # Copy under a temporary name so a half-written blob is never visible
        partial = blob.with_name(f"{blob.name}.part")
        shutil.copyfile(source_path, partial)
        os.replace(partial, blob)

        handle = StoredArtifactHandle(
            artifact_id=pathname_hash,
            address=address,
            owner_id=owner_id,
            byte_size=blob.stat().st_size,
            sha256=_sha256_of(blob),
            storage_pointer=str(blob),
            created_at=created_at,
            modified_at=modified_at,
        )

        record = self._record_path(pathname_hash)
        record.parent.mkdir(parents=True, exist_ok=True)
        record.write_text(handle.model_dump_json(), encoding="utf-8")

        logger.info(f"Stored {address.pathname()} ({handle.byte_size} bytes)")
        return handle

    def open(self, handle: StoredArtifactHandle) -> BinaryIO:
        return open(handle.storage_pointer, "rb")

    def delete(self, handle: StoredArtifactHandle) -> None:
        self.delete_by_address(handle.address)


class ContentStorePublisher:
    """
    Publishes backup files into the content store.

    The store keeps at most one file per logical address: publishing to an
    occupied address deletes the old file first (last writer wins). On
    success the source file belongs to the store and is removed.
    """

    def __init__(self, store: ContentStore):
        self.store = store

    def publish(
        self,
        address: FileAddress,
        source_path: Path,
        owner_id: int,
    ) -> StoredArtifactHandle:
        """
        Publish source_path at address.

        Args:
            address: Logical address in the content store.
            source_path: Local file to ingest. Removed on success.
            owner_id: User recorded as owner.

        Returns:
            StoredArtifactHandle: Reference to the new stored file.

        Raises:
            PublishFailed: Empty file name, unreadable source, or store error.
                The source file is left in place.
        """
        source_path = Path(source_path)
        if not address.file_name:
            raise PublishFailed("content store address has an empty file name")
        if not source_path.is_file() or not os.access(source_path, os.R_OK):
            raise PublishFailed(f"source file '{source_path}' is not readable")

        try:
            if self.store.exists(address):
                logger.info(f"Superseding existing file at {address.pathname()}")
                self.store.delete_by_address(address)

            now = datetime.now()
            handle = self.store.create_from_path(
                address,
                source_path,
                owner_id=owner_id,
                created_at=now,
                modified_at=now,
            )
        except OSError as e:
            raise PublishFailed(f"could not store '{address.file_name}'", cause=e) from e

        try:
            source_path.unlink()
        except OSError as e:
            logger.warning(f"Published {address.pathname()} but could not remove {source_path}: {e}")

        return handle
