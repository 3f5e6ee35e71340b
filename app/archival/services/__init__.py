# Archival services

from .content_store import ContentStorePublisher, FileContentStore
from .destination import DestinationResolver, parse_object_store_url
from .exporter import ExportOutcome, StoredBackupExporter
from .janitor import TempDirectoryJanitor
from .local_sink import LocalDirectorySink
from .object_storage import ObjectStorageGateway
from .orchestrator import ArchivalOrchestrator, SourceFileLease

__all__ = [
    # Pipeline components
    "DestinationResolver",
    "parse_object_store_url",
    "ObjectStorageGateway",
    "LocalDirectorySink",
    "ContentStorePublisher",
    "ArchivalOrchestrator",
    "SourceFileLease",
    "TempDirectoryJanitor",
    # Content store backend
    "FileContentStore",
    # Exports of stored backups
    "StoredBackupExporter",
    "ExportOutcome",
]
