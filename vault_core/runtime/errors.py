"""
Standardized error model with retry semantics.

Every failure raised by the archival pipeline is a ServiceError carrying a
machine-readable code, a message that is safe to show to whoever invoked the
job, and a flag telling the caller whether re-running the job makes sense.
"""

from __future__ import annotations

import uuid
from typing import Any


class ServiceError(Exception):
    """Base error with retry classification.

    Attributes:
        code: Error code for programmatic handling.
        message_safe: Human-readable message, safe for logs and CLI output.
        message_debug: Optional detail for debugging (paths, provider codes).
        retryable: Whether re-running the whole job may succeed.
        cause: Optional underlying exception.
        debug_id: Short identifier for correlating log lines.
    """

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        retryable: bool = False,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(message_safe)
        self.code = code
        self.message_safe = message_safe
        self.message_debug = message_debug
        self.retryable = retryable
        self.cause = cause
        self.debug_id = debug_id or str(uuid.uuid4())[:8]

    def __str__(self) -> str:
        return f"[{self.code}] {self.message_safe}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"message_safe={self.message_safe!r}, "
            f"retryable={self.retryable}, "
            f"debug_id={self.debug_id!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for task results (debug detail excluded)."""
        return {
            "code": self.code,
            "message": self.message_safe,
            "retryable": self.retryable,
            "debug_id": self.debug_id,
        }


class RetryableError(ServiceError):
    """Failure where re-running the job may succeed (provider or network trouble)."""

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=True,
            cause=cause,
            debug_id=debug_id,
        )


class TerminalError(ServiceError):
    """Failure that needs a configuration or input fix before re-running."""

    def __init__(
        self,
        code: str,
        message_safe: str,
        message_debug: str | None = None,
        cause: Exception | None = None,
        debug_id: str | None = None,
    ):
        super().__init__(
            code=code,
            message_safe=message_safe,
            message_debug=message_debug,
            retryable=False,
            cause=cause,
            debug_id=debug_id,
        )


class ErrorCode:
    """Error codes used by the archival pipeline."""

    INVALID_DESTINATION = "INVALID_DESTINATION"
    TRANSFER_FAILED = "TRANSFER_FAILED"
    PUBLISH_FAILED = "PUBLISH_FAILED"
    PRECONDITION_FAILED = "PRECONDITION_FAILED"
    CLEANUP_FAILED = "CLEANUP_FAILED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
