"""
Destination resolution for archived backups.

Turns the configured destination string into a DestinationDescriptor:
- empty/unset -> ContentStoreDestination
- ``s3://bucket[/prefix]`` -> ObjectStoreDestination
- anything else -> LocalDestination (must be an existing writable directory)
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from vault_core.domain.exceptions import InvalidDestination
from vault_core.domain.models import (
    BackupMode,
    ContentStoreDestination,
    DestinationDescriptor,
    LocalDestination,
    ObjectStoreDestination,
)

OBJECT_STORE_SCHEME = "s3://"


def is_object_store_url(destination: str) -> bool:
    return destination.lower().startswith(OBJECT_STORE_SCHEME)


def parse_object_store_url(url: str) -> ObjectStoreDestination:
    """
    Split ``s3://bucket/some/prefix`` into bucket and key prefix.

    The prefix keeps exactly one trailing slash when non-empty, so keys can be
    built by plain concatenation with the file name.

    Raises:
        InvalidDestination: If the bucket segment is empty.
    """
    bucket_path = url.split("//", 1)[-1]
    bucket, _, remainder = bucket_path.partition("/")
    if not bucket:
        raise InvalidDestination(
            "object storage destination has no bucket name",
            message_debug=f"url={url!r}",
        )

    prefix = remainder.rstrip("/")
    if prefix:
        prefix += "/"

    return ObjectStoreDestination(bucket=bucket, key_prefix=prefix)


def check_writable_directory(directory: Path) -> None:
    """Raise InvalidDestination unless the path is an existing writable directory."""
    if not directory.exists():
        raise InvalidDestination(f"destination directory '{directory}' does not exist")
    if not directory.is_dir():
        raise InvalidDestination(f"destination '{directory}' is not a directory")
    if not os.access(directory, os.W_OK):
        raise InvalidDestination(f"destination directory '{directory}' is not writable")


class DestinationResolver:
    """Classifies a destination string into one of the three destination kinds."""

    def resolve(
        self,
        destination: str | None,
        mode: BackupMode | None = None,
    ) -> DestinationDescriptor:
        destination = (destination or "").strip()

        if not destination:
            logger.debug(f"No external destination configured (mode={mode}), using content store")
            return ContentStoreDestination()

        if is_object_store_url(destination):
            descriptor = parse_object_store_url(destination)
            logger.debug(
                f"Resolved destination to bucket '{descriptor.bucket}' prefix '{descriptor.key_prefix}'"
            )
            return descriptor

        directory = Path(destination)
        check_writable_directory(directory)
        logger.debug(f"Resolved destination to local directory '{directory}'")
        return LocalDestination(directory_path=directory)
