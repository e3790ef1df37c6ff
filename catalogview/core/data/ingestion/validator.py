"""Validate-then-transform boundary for raw snapshot bundles."""

from __future__ import annotations

from collections.abc import Mapping, Sequence  # noqa: TC003
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from catalogview.core.data.ingestion.models import RawKind, RawRecord
from catalogview.core.data.ingestion.schemas import RawEndpoint, RawModel, RawProvider, RawUptime, _RawSchema
from catalogview.core.logging import bind

_SCHEMAS: dict[RawKind, type[_RawSchema]] = {
    RawKind.MODELS: RawModel,
    RawKind.ENDPOINTS: RawEndpoint,
    RawKind.PROVIDERS: RawProvider,
    RawKind.UPTIMES: RawUptime,
}

_IDENTIFIER_KEYS = ("slug", "id", "uuid", "endpoint_id")


@dataclass(slots=True, frozen=True)
class ValidationIssue:
    """Represents a single validation issue detected during ingestion."""

    kind: str
    snapshot_id: str
    index: int
    identifier: str
    field: str
    code: str
    message: str
    rejected: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "snapshot_id": self.snapshot_id,
            "index": self.index,
            "identifier": self.identifier,
            "field": self.field,
            "code": self.code,
            "message": self.message,
            "rejected": self.rejected,
        }


@dataclass(slots=True)
class ValidatedRecord:
    """Container mapping an input index to its canonical entity."""

    index: int
    identity: str
    entity: BaseModel


def _identifier(payload: Any, index: int) -> str:
    if isinstance(payload, Mapping):
        for key in _IDENTIFIER_KEYS:
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return f"#{index}"


def _issue_code(error_type: str) -> str:
    if error_type == "missing":
        return "MISSING_FIELD"
    if error_type.endswith("_type") or error_type.endswith("_parsing"):
        return "INVALID_TYPE"
    return "INVALID_VALUE"


def validate_batch(
    kind: RawKind | str,
    records: Sequence[RawRecord],
    snapshot_id: str,
) -> tuple[list[ValidatedRecord], list[ValidationIssue]]:
    """Validate a bundle and return canonical entities alongside issues.

    A record that fails its schema is excluded and reported; the batch always
    completes. A repeated identity keeps the first occurrence and reports the
    later one as a ``DUPLICATE_IDENTITY`` issue that rejects nothing.
    """

    kind = RawKind(kind)
    schema = _SCHEMAS[kind]
    issues: list[ValidationIssue] = []
    validated: list[ValidatedRecord] = []
    seen: set[str] = set()

    for record in records:
        identifier = _identifier(record.payload, record.index)
        try:
            parsed = schema.model_validate(record.payload)
            entity = parsed.to_entity()
        except ValidationError as exc:
            for error in exc.errors():
                issues.append(
                    ValidationIssue(
                        kind=kind.value,
                        snapshot_id=snapshot_id,
                        index=record.index,
                        identifier=identifier,
                        field=".".join(str(part) for part in error["loc"]) or "$",
                        code=_issue_code(error["type"]),
                        message=error["msg"],
                    )
                )
            continue

        identity = parsed.identity()
        if identity in seen:
            issues.append(
                ValidationIssue(
                    kind=kind.value,
                    snapshot_id=snapshot_id,
                    index=record.index,
                    identifier=identity,
                    field="$",
                    code="DUPLICATE_IDENTITY",
                    message="duplicate identity in bundle; first occurrence kept",
                    rejected=False,
                )
            )
            bind(kind=kind.value, identifier=identity, snapshot_id=snapshot_id).warning(
                "Duplicate identity dropped"
            )
            continue

        seen.add(identity)
        validated.append(ValidatedRecord(index=record.index, identity=identity, entity=entity))

    return validated, issues


__all__ = ["ValidatedRecord", "ValidationIssue", "validate_batch"]
