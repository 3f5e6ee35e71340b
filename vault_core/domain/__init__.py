"""
Domain layer: models, protocols and exceptions of the archival pipeline.
"""

from vault_core.domain.exceptions import (
    ArchivalError,
    CleanupFailed,
    InvalidDestination,
    PreconditionFailed,
    PublishFailed,
    TransferFailed,
)
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
    LocalDestination,
    ObjectStoreDestination,
    StoragePolicy,
    StoredArtifactHandle,
    UploadResult,
    build_transfer_metadata,
    encode_metadata,
    context_id_for,
)

__all__ = [
    "ArchivalError",
    "ArchivalResult",
    "ArchivalState",
    "ArchiveJob",
    "BackupMode",
    "BackupType",
    "CleanupFailed",
    "ContentStoreDestination",
    "ContextLevel",
    "DestinationDescriptor",
    "FileAddress",
    "InvalidDestination",
    "LocalDestination",
    "ObjectStoreDestination",
    "PreconditionFailed",
    "PublishFailed",
    "StoragePolicy",
    "StoredArtifactHandle",
    "TransferFailed",
    "UploadResult",
    "build_transfer_metadata",
    "encode_metadata",
    "context_id_for",
]
