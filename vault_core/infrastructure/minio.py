"""
MinIO client connector for backup-vault.

The MinIO SDK speaks to any S3-compatible endpoint, so this one client backs
every ``s3://`` backup destination. The instance is shared process-wide.
"""

from loguru import logger
from minio import Minio

from vault_core.config import settings


class MinioClientConnector:
    """
    Singleton connector for S3-compatible object storage.

    Usage:
        client = MinioClientConnector.get_instance()
        client.bucket_exists("backups")
    """

    _instance: Minio | None = None

    @classmethod
    def get_instance(cls) -> Minio:
        """
        Get or create the MinIO client instance.

        Returns:
            Minio: The MinIO client instance.
        """
        if cls._instance is None:
            try:
                cls._instance = Minio(
                    endpoint=settings.MINIO_ENDPOINT,
                    access_key=settings.MINIO_ACCESS_KEY or None,
                    secret_key=settings.MINIO_SECRET_KEY or None,
                    region=settings.MINIO_REGION,
                    secure=settings.MINIO_SECURE,
                )
                logger.info(f"Object storage client ready for '{settings.MINIO_ENDPOINT}'")
            except Exception as e:
                logger.error(f"Failed to configure object storage client for '{settings.MINIO_ENDPOINT}': {e}")
                raise

        return cls._instance

    @classmethod
    def reset(cls) -> None:
        cls._instance = None


def get_minio_client() -> Minio:
    """
    Convenience function to get the MinIO client.

    Returns:
        Minio: The MinIO client instance.
    """
    return MinioClientConnector.get_instance()
