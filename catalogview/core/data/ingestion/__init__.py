"""Raw snapshot ingestion and validation."""

from catalogview.core.data.ingestion.models import RawKind, RawRecord
from catalogview.core.data.ingestion.validator import ValidatedRecord, ValidationIssue, validate_batch

__all__ = ["RawKind", "RawRecord", "ValidatedRecord", "ValidationIssue", "validate_batch"]
