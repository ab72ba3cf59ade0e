"""Exceptions raised by the client layer."""

from typing import Optional


class FormApiClientError(Exception):
    """Base class for errors raised by this package."""


class StorageError(FormApiClientError):
    """Persisted storage could not be read or written."""

    def __init__(self, operation: str, key: Optional[str] = None, reason: str = ""):
        self.operation = operation
        self.key = key
        message = f"Storage {operation} failed"
        if key:
            message = f"Storage {operation} of '{key}' failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ConfigError(FormApiClientError):
    """Configuration is missing or invalid."""
