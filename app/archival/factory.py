"""
Archival module factory.

Builds the archival services from Settings, so callers (CLI scripts, Celery
tasks) never wire dependencies by hand.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from app.archival.services.content_store import ContentStorePublisher, FileContentStore
from app.archival.services.destination import DestinationResolver
from app.archival.services.exporter import StoredBackupExporter
from app.archival.services.janitor import TempDirectoryJanitor
from app.archival.services.local_sink import LocalDirectorySink
from app.archival.services.object_storage import ObjectStorageGateway
from app.archival.services.orchestrator import ArchivalOrchestrator
from vault_core.config import ArchivalConfig, Settings, settings as default_settings


@lru_cache()
def get_content_store() -> FileContentStore:
    """Get the content store instance."""
    return FileContentStore(base_path=default_settings.CONTENT_STORE_ROOT)


def get_archival_config(settings: Settings | None = None) -> ArchivalConfig:
    return ArchivalConfig.from_settings(settings or default_settings)


def get_orchestrator(settings: Settings | None = None) -> ArchivalOrchestrator:
    """
    Get an orchestrator wired from settings.

    Wires up dependencies: content store publisher, resolver, object storage
    gateway, local directory sink.
    """
    config = get_archival_config(settings)
    return ArchivalOrchestrator(
        config=config,
        publisher=ContentStorePublisher(get_content_store()),
        resolver=DestinationResolver(),
        gateway=ObjectStorageGateway(),
        sink=LocalDirectorySink(file_permissions=config.file_permissions),
    )


def get_exporter(settings: Settings | None = None) -> StoredBackupExporter:
    """Get the exporter for backups already held in the content store."""
    config = get_archival_config(settings)
    return StoredBackupExporter(
        store=get_content_store(),
        resolver=DestinationResolver(),
        gateway=ObjectStorageGateway(),
        sink=LocalDirectorySink(file_permissions=config.file_permissions),
    )


def get_janitor(settings: Settings | None = None) -> TempDirectoryJanitor:
    """Get the scratch directory janitor."""
    settings = settings or default_settings
    return TempDirectoryJanitor(
        scratch_root=Path(settings.SCRATCH_ROOT),
        directory_permissions=settings.DIRECTORY_PERMISSIONS,
        ttl_hours=settings.SCRATCH_TTL_HOURS,
    )
