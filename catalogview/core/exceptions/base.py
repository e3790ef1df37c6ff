"""Core exception classes for catalogview."""

from typing import Any

from catalogview.core.exceptions.codes import ErrorCode


class CatalogViewError(Exception):
    """Base exception for catalogview."""

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.GENERAL.value,
        details: dict[str, Any] | None = None,
    ):
        """Initialise the exception.

        Args:
            message: Human readable error message.
            error_code: Machine readable error code.
            details: Extra diagnostic context.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ConfigError(CatalogViewError):
    """Raised when configuration values are invalid."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, ErrorCode.CONFIG_INVALID.value, details)


class DataValidationError(CatalogViewError):
    """Raised when a whole batch cannot be validated."""

    def __init__(
        self,
        message: str,
        validation_errors: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if validation_errors:
            super_details["validation_errors"] = validation_errors
        super().__init__(message, ErrorCode.VALIDATION_FAILED.value, super_details)
        self.validation_errors = validation_errors or {}


class MissingSnapshotError(CatalogViewError):
    """Raised when a required snapshot bundle is absent or unreadable."""

    def __init__(
        self,
        message: str,
        kind: str,
        snapshot_id: str,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        super_details.setdefault("kind", kind)
        super_details.setdefault("snapshot_id", snapshot_id)
        super().__init__(message, ErrorCode.SNAPSHOT_MISSING.value, super_details)
        self.kind = kind
        self.snapshot_id = snapshot_id


class StorageError(CatalogViewError):
    """Raised when the persistent store rejects a read or write."""

    def __init__(
        self,
        message: str,
        table: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super_details = details or {}
        if table:
            super_details["table"] = table
        super().__init__(message, ErrorCode.STORAGE_FAILED.value, super_details)
        self.table = table
