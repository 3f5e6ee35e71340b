"""
Service runtime layer for backup-vault.

- ServiceError: Standardized errors with retry semantics
- RetryableError / TerminalError: the two retry classes
"""

from .errors import ErrorCode, RetryableError, ServiceError, TerminalError

__all__ = [
    "ErrorCode",
    "ServiceError",
    "RetryableError",
    "TerminalError",
]
