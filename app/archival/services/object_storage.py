"""
Object storage gateway for archived backups.

Uploads a backup file to an S3-compatible bucket with descriptive metadata.
Two call shapes share the same semantics:
- upload_file: from a local path (archive jobs)
- upload_stream: from an already open file handle (exports of stored backups)

Nothing here retries or deletes the source file; that is the caller's call.
"""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO

from loguru import logger
from minio import Minio
from minio.error import S3Error

from vault_core.domain.exceptions import InvalidDestination, TransferFailed
from vault_core.domain.models import ArchiveJob, ObjectStoreDestination, UploadResult
from vault_core.infrastructure.minio import get_minio_client

SUCCESS_STATUS = 200
CONTENT_TYPE = "application/octet-stream"


def _status_from_error(exc: S3Error) -> int:
    response = getattr(exc, "response", None)
    status = getattr(response, "status", None)
    return int(status) if status else 500


class ObjectStorageGateway:
    """
    Gateway to S3-compatible object storage.

    Usage:
        gateway = ObjectStorageGateway()
        gateway.transfer(ObjectStoreDestination(bucket="b"), path, "backup.mbz", metadata)
    """

    def __init__(self, client: Minio | None = None):
        self._client = client

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = get_minio_client()
        return self._client

    def bucket_exists(self, bucket: str) -> bool:
        """
        Check whether the bucket exists.

        Raises:
            TransferFailed: If the provider could not be reached.
        """
        try:
            return bool(self.client.bucket_exists(bucket_name=bucket))
        except S3Error as e:
            raise TransferFailed(
                f"could not check bucket '{bucket}'",
                status_code=_status_from_error(e),
                cause=e,
            ) from e
        except Exception as e:
            raise TransferFailed(f"could not check bucket '{bucket}'", cause=e) from e

    def upload_file(
        self,
        bucket: str,
        key: str,
        source_path: Path,
        metadata: dict[str, str],
    ) -> UploadResult:
        """
        Upload a local file to bucket/key.

        Returns:
            UploadResult: status 200 on success, the provider's status otherwise.

        Raises:
            TransferFailed: On transport, credential or local read errors.
        """
        logger.info(f"Uploading {source_path} to {bucket}/{key}")
        try:
            result = self.client.fput_object(
                bucket_name=bucket,
                object_name=key,
                file_path=str(source_path),
                content_type=CONTENT_TYPE,
                metadata=metadata,
            )
        except S3Error as e:
            logger.warning(f"Upload to {bucket}/{key} rejected: {getattr(e, 'code', e)}")
            return UploadResult(status_code=_status_from_error(e))
        except Exception as e:
            raise TransferFailed(f"upload to '{bucket}/{key}' failed", cause=e) from e

        return UploadResult(
            status_code=SUCCESS_STATUS,
            etag=getattr(result, "etag", None),
            version_id=getattr(result, "version_id", None),
        )

    def upload_stream(
        self,
        bucket: str,
        key: str,
        stream: BinaryIO,
        length: int,
        metadata: dict[str, str],
    ) -> UploadResult:
        """
        Upload from an open binary handle. The caller owns and closes the handle.

        Returns:
            UploadResult: status 200 on success, the provider's status otherwise.

        Raises:
            TransferFailed: On transport or credential errors.
        """
        logger.info(f"Streaming {length} bytes to {bucket}/{key}")
        try:
            result = self.client.put_object(
                bucket_name=bucket,
                object_name=key,
                data=stream,
                length=length,
                content_type=CONTENT_TYPE,
                metadata=metadata,
            )
        except S3Error as e:
            logger.warning(f"Upload to {bucket}/{key} rejected: {getattr(e, 'code', e)}")
            return UploadResult(status_code=_status_from_error(e))
        except Exception as e:
            raise TransferFailed(f"upload to '{bucket}/{key}' failed", cause=e) from e

        return UploadResult(
            status_code=SUCCESS_STATUS,
            etag=getattr(result, "etag", None),
            version_id=getattr(result, "version_id", None),
        )

    def ensure_bucket(self, bucket: str) -> None:
        """Raise InvalidDestination if the bucket does not exist."""
        if not self.bucket_exists(bucket):
            raise InvalidDestination(f"bucket '{bucket}' does not exist", stage="transfer")

    def transfer(
        self,
        destination: ObjectStoreDestination,
        source_path: Path,
        file_name: str,
        metadata: dict[str, str],
    ) -> UploadResult:
        """
        Check the bucket, then upload the file to ``key_prefix + file_name``.

        Raises:
            InvalidDestination: Bucket does not exist.
            TransferFailed: Upload failed or returned a non-200 status.
        """
        self.ensure_bucket(destination.bucket)

        key = destination.key_for(file_name)
        result = self.upload_file(destination.bucket, key, source_path, metadata)
        if not result.ok:
            raise TransferFailed(
                f"upload to '{destination.bucket}/{key}' returned status {result.status_code}",
                status_code=result.status_code,
            )

        logger.info(f"Uploaded backup to {destination.bucket}/{key}")
        return result

    def deliver(
        self,
        job: ArchiveJob,
        destination: ObjectStoreDestination,
        metadata: dict[str, str],
    ) -> None:
        """DestinationSink entry point for object store destinations."""
        self.transfer(destination, job.source_path, job.file_name, metadata)
