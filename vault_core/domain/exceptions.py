"""
Exceptions raised by the backup archival pipeline.

Each pipeline stage raises one of the five kinds below. All of them carry the
stage that failed so that callers can print a single line such as
``transfer failed: upload to bucket 'b' returned status 503``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from vault_core.runtime.errors import ErrorCode, RetryableError, ServiceError, TerminalError

if TYPE_CHECKING:
    from vault_core.domain.models import StoredArtifactHandle


class ArchivalError(ServiceError):
    """Base exception for archival pipeline errors.

    Attributes:
        stage: Pipeline stage that failed (resolve, transfer, publish, ...).
        partial_handle: Content store handle created before the failure, if any.
        cleanup_error: Secondary error raised while removing the source file.
    """

    stage = "archive"

    def __init__(self, *args, stage: str | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        if stage:
            self.stage = stage
        self.partial_handle: StoredArtifactHandle | None = None
        self.cleanup_error: Exception | None = None

    def one_line(self) -> str:
        """Render the error as one human-readable line, without traceback."""
        line = f"{self.stage} failed: {self.message_safe}"
        if self.cause is not None:
            line += f" ({self.cause})"
        return line


class InvalidDestination(ArchivalError, TerminalError):
    """Destination URL, path or bucket is unusable. Fix configuration."""

    stage = "resolve"

    def __init__(self, message_safe: str, **kwargs):
        super().__init__(ErrorCode.INVALID_DESTINATION, message_safe, **kwargs)


class TransferFailed(ArchivalError, RetryableError):
    """Copy to an external destination failed. The whole job may be re-run."""

    stage = "transfer"

    def __init__(self, message_safe: str, status_code: int | None = None, **kwargs):
        super().__init__(ErrorCode.TRANSFER_FAILED, message_safe, **kwargs)
        self.status_code = status_code


class PublishFailed(ArchivalError, TerminalError):
    """Content store ingestion failed."""

    stage = "publish"

    def __init__(self, message_safe: str, **kwargs):
        super().__init__(ErrorCode.PUBLISH_FAILED, message_safe, **kwargs)


class PreconditionFailed(ArchivalError, TerminalError):
    """Job is missing its file, its file name, or was submitted in the wrong mode."""

    stage = "precondition"

    def __init__(self, message_safe: str, **kwargs):
        super().__init__(ErrorCode.PRECONDITION_FAILED, message_safe, **kwargs)


class CleanupFailed(ArchivalError, TerminalError):
    """A scratch file or directory could not be removed."""

    stage = "cleanup"

    def __init__(self, message_safe: str, path: str | None = None, **kwargs):
        super().__init__(ErrorCode.CLEANUP_FAILED, message_safe, **kwargs)
        self.path = path
