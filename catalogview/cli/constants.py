"""Process exit codes used by CLI commands."""

VALIDATION_EXIT_CODE = 10
SNAPSHOT_EXIT_CODE = 20
DATA_QUALITY_EXIT_CODE = 30
SYSTEM_EXIT_CODE = 40

__all__ = ["DATA_QUALITY_EXIT_CODE", "SNAPSHOT_EXIT_CODE", "SYSTEM_EXIT_CODE", "VALIDATION_EXIT_CODE"]
