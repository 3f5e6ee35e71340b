"""
Domain models for the backup archival pipeline.

These models describe a produced backup (ArchiveJob), where it should go
(DestinationDescriptor), where it lands inside the content store
(FileAddress / StoredArtifactHandle) and how a run ended (ArchivalResult).
"""

from __future__ import annotations

import hashlib
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Optional, Union
from urllib.parse import quote

from pydantic import BaseModel, Field


class BackupMode(str, Enum):
    """How the backup was requested."""

    GENERAL = "general"
    IMPORT = "import"
    HUB = "hub"
    AUTOMATED = "automated"


class BackupType(str, Enum):
    """What the backup contains."""

    ACTIVITY = "activity"
    SECTION = "section"
    COURSE = "course"


class ContextLevel(str, Enum):
    """Owner scope of a content store address."""

    COURSE = "course"
    MODULE = "module"
    USER = "user"


class StoragePolicy(str, Enum):
    """
    Where automated backups are kept.

    OFF keeps them in the content store only. EXTERNAL_ONLY sends them to the
    external destination and nowhere else. EXTERNAL_AND_STORE sends them to
    the external destination and keeps a copy in the content store.
    """

    OFF = "off"
    EXTERNAL_ONLY = "external-only"
    EXTERNAL_AND_STORE = "external-and-store"

    @classmethod
    def from_flag(cls, flag: int) -> "StoragePolicy":
        """Map the numeric storage flag (0, 1, anything else) to a policy."""
        if flag == 0:
            return cls.OFF
        if flag == 1:
            return cls.EXTERNAL_ONLY
        return cls.EXTERNAL_AND_STORE


class ArchivalState(str, Enum):
    START = "start"
    RESOLVING = "resolving"
    DISPATCHING = "dispatching"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLEANUP = "cleanup"
    DONE = "done"


class ArchiveJob(BaseModel):
    """
    One produced backup file waiting to be archived.

    Created by the producer once the archive bytes are on local disk and
    consumed exactly once by the orchestrator.
    """

    job_id: str = Field(..., description="Opaque backup identifier")
    source_path: Path = Field(..., description="Produced archive on local disk")
    file_name: str = Field(..., description="Target logical file name")
    mode: BackupMode
    type: BackupType
    has_user_data: bool = False
    is_anonymised: bool = False
    owner_id: int = Field(..., description="User executing the backup")
    container_id: int = Field(..., description="Id of the activity/section/course")
    course_id: int
    course_title: str = ""

    model_config = {"frozen": True, "use_enum_values": False}


class LocalDestination(BaseModel):
    kind: Literal["local"] = "local"
    directory_path: Path

    model_config = {"frozen": True}


class ObjectStoreDestination(BaseModel):
    kind: Literal["object_store"] = "object_store"
    bucket: str
    key_prefix: str = ""

    model_config = {"frozen": True}

    def key_for(self, file_name: str) -> str:
        return f"{self.key_prefix}{file_name}"


class ContentStoreDestination(BaseModel):
    kind: Literal["content_store"] = "content_store"

    model_config = {"frozen": True}


DestinationDescriptor = Annotated[
    Union[LocalDestination, ObjectStoreDestination, ContentStoreDestination],
    Field(discriminator="kind"),
]


def context_id_for(level: ContextLevel, instance_id: int) -> str:
    """Build the context id used in content store addresses, e.g. ``course:12``."""
    return f"{level.value}:{instance_id}"


class FileAddress(BaseModel):
    """Logical address of a file inside the content store."""

    context_id: str
    component: str
    area: str
    item_id: int = 0
    path: str = "/"
    file_name: str

    model_config = {"frozen": True}

    def pathname(self) -> str:
        return f"/{self.context_id}/{self.component}/{self.area}/{self.item_id}{self.path}{self.file_name}"

    def pathname_hash(self) -> str:
        """Deterministic hash identifying this address in the store."""
        return hashlib.sha1(self.pathname().encode("utf-8")).hexdigest()


class StoredArtifactHandle(BaseModel):
    """Reference to a file persisted in the content store."""

    artifact_id: str = Field(..., description="Pathname hash of the address")
    address: FileAddress
    owner_id: int
    byte_size: int
    sha256: str
    storage_pointer: str = Field(..., description="Backend-specific location of the bytes")
    created_at: datetime
    modified_at: datetime


class UploadResult(BaseModel):
    """Outcome reported by the object storage provider."""

    status_code: int
    etag: Optional[str] = None
    version_id: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class ArchivalResult(BaseModel):
    """Summary of one orchestration run, safe to hand to a CLI or task result."""

    job_id: str
    handle: Optional[StoredArtifactHandle] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    warnings: list[str] = Field(default_factory=list)
    history: list[ArchivalState] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.error is None


METADATA_SAFE_CHARS = " -_.:/()"


def encode_metadata(metadata: dict[str, str]) -> dict[str, str]:
    """Percent-encode metadata values (UTF-8) so they fit in US-ASCII HTTP headers."""
    return {key: quote(str(value), safe=METADATA_SAFE_CHARS) for key, value in metadata.items()}


def build_transfer_metadata(
    job: ArchiveJob,
    site_identifier: str,
    now: datetime | None = None,
) -> dict[str, str]:
    """Metadata attached to an object storage upload. Never read back."""
    now = now or datetime.now()
    metadata = {
        "backup-course-id": str(job.course_id),
        "backup-course-title": job.course_title,
        "backup-site": hashlib.md5(site_identifier.encode("utf-8")).hexdigest(),
        "backup-id": job.job_id,
        "backup-type": job.type.value,
        "backup-mode": job.mode.value,
        "backup-date": str(int(now.timestamp())),
    }
    return encode_metadata(metadata)
