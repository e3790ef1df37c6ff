"""Exception handling module."""

from catalogview.core.exceptions.base import (
    CatalogViewError,
    ConfigError,
    DataValidationError,
    MissingSnapshotError,
    StorageError,
)
from catalogview.core.exceptions.codes import ErrorCode

__all__ = [
    "CatalogViewError",
    "ConfigError",
    "DataValidationError",
    "ErrorCode",
    "MissingSnapshotError",
    "StorageError",
]
