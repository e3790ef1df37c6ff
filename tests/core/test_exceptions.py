from __future__ import annotations

from catalogview.core.exceptions import (
    CatalogViewError,
    ConfigError,
    DataValidationError,
    ErrorCode,
    MissingSnapshotError,
    StorageError,
)


def test_missing_snapshot_error_carries_kind_and_snapshot() -> None:
    error = MissingSnapshotError("no endpoints", kind="endpoints", snapshot_id="s1")

    assert isinstance(error, CatalogViewError)
    assert error.error_code == ErrorCode.SNAPSHOT_MISSING.value
    assert error.details == {"kind": "endpoints", "snapshot_id": "s1"}
    assert str(error) == "no endpoints"


def test_error_codes() -> None:
    assert ConfigError("bad").error_code == "CONFIG_INVALID"
    assert StorageError("boom", table="change_records").details == {"table": "change_records"}
    validation = DataValidationError("not an array", validation_errors={"type": "dict"})
    assert validation.error_code == "VALIDATION_ERROR"
    assert validation.details["validation_errors"] == {"type": "dict"}
    assert CatalogViewError("x").error_code == "GENERAL_ERROR"
