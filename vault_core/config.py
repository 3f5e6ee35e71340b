"""
Unified configuration for backup-vault services.

Settings is the configuration source: values come from the .env file and can
be overridden by environment variables. The orchestrator never reads it
directly; it receives an explicit ArchivalConfig built from it.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from vault_core.domain.models import StoragePolicy

# Determine project root for .env file loading (allows running from any CWD)
PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """
    Unified settings for all backup-vault services.

    Environment variables are loaded from .env file and can be overridden
    by actual environment variables.
    """

    # Service identification
    SERVICE_NAME: str = "backup-vault"
    SITE_IDENTIFIER: str = "backup-vault-site"

    # Object storage (any S3-compatible endpoint)
    MINIO_ENDPOINT: str = "s3.amazonaws.com"
    MINIO_ACCESS_KEY: str = ""
    MINIO_SECRET_KEY: str = ""
    MINIO_REGION: str | None = None
    MINIO_SECURE: bool = True

    # Automated backup storage: 0 = content store only, 1 = external only,
    # anything else = external and content store
    BACKUP_AUTO_STORAGE: int = 0
    BACKUP_AUTO_DESTINATION: str = ""

    # Permissions applied to copied files and to directories before deletion
    FILE_PERMISSIONS: int = 0o666
    DIRECTORY_PERMISSIONS: int = 0o777

    # Local paths
    CONTENT_STORE_ROOT: str = "data/filestore"
    SCRATCH_ROOT: str = "data/temp/backup"
    SCRATCH_TTL_HOURS: int = 4

    # Redis / Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=PROJECT_ROOT / ".env",
        extra="ignore"
    )


class ArchivalConfig(BaseModel):
    """
    Explicit configuration handed to the archival orchestrator.

    Attributes:
        storage_policy: Where automated backups are kept.
        external_destination: Local directory path or ``s3://bucket/prefix`` URL.
        file_permissions: Mode applied to files copied to a local directory.
        directory_permissions: Mode applied to scratch entries before deletion.
        site_identifier: Raw site identifier, hashed into upload metadata.
    """

    storage_policy: StoragePolicy = StoragePolicy.OFF
    external_destination: str = ""
    file_permissions: int = 0o666
    directory_permissions: int = 0o777
    site_identifier: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ArchivalConfig":
        return cls(
            storage_policy=StoragePolicy.from_flag(settings.BACKUP_AUTO_STORAGE),
            external_destination=settings.BACKUP_AUTO_DESTINATION,
            file_permissions=settings.FILE_PERMISSIONS,
            directory_permissions=settings.DIRECTORY_PERMISSIONS,
            site_identifier=settings.SITE_IDENTIFIER,
        )


# Global settings instance
settings = Settings()  # type: ignore
