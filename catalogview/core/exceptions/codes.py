"""Standardised error codes."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes shared by exceptions, issues and CLI payloads."""

    GENERAL = "GENERAL_ERROR"
    CONFIG_INVALID = "CONFIG_INVALID"
    VALIDATION_FAILED = "VALIDATION_ERROR"
    SNAPSHOT_MISSING = "SNAPSHOT_MISSING"
    STORAGE_FAILED = "STORAGE_ERROR"


__all__ = ["ErrorCode"]
