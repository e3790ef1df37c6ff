"""Per-kind descriptors consumed by the generic diff and reconciliation code."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from catalogview.core.data.ingestion.models import RawKind
from catalogview.core.models.entities import EntityType
from catalogview.core.services.diff import ChangeDraft, DiffPolicy, diff, documents_equal

IDENTITY_ARRAYS = ("input_modalities", "output_modalities", "supported_parameters", "datacenters", "variants")

# Bookkeeping fields never count as a state change.
BOOKKEEPING_FIELDS = ("updated_at", "unavailable_at")

# Volatile or derived fields excluded from the change log.
VOLATILE_FIELDS = (*BOOKKEEPING_FIELDS, "stats", "uptime_average")


@dataclass(frozen=True)
class EntityKind:
    """Identity, diff policy and equality for one entity kind."""

    entity_type: EntityType
    raw_kind: RawKind
    key_field: str
    identity_fields: Callable[[Mapping[str, Any]], dict[str, str | None]]
    diff_policy: DiffPolicy
    equality_policy: DiffPolicy

    def identity(self, document: Mapping[str, Any]) -> str:
        return str(document[self.key_field])

    def equals(self, before: Mapping[str, Any], after: Mapping[str, Any]) -> bool:
        return documents_equal(before, after, self.equality_policy)

    def diff(self, before: Mapping[str, Any] | None, after: Mapping[str, Any] | None) -> list[ChangeDraft]:
        return diff(before, after, self.diff_policy)


def _model_fields(document: Mapping[str, Any]) -> dict[str, str | None]:
    return {"model_slug": document.get("slug")}


def _endpoint_fields(document: Mapping[str, Any]) -> dict[str, str | None]:
    return {
        "model_slug": document.get("model_slug"),
        "provider_slug": document.get("provider_slug"),
        "provider_tag_slug": document.get("provider_tag_slug"),
        "endpoint_uuid": document.get("uuid"),
    }


def _provider_fields(document: Mapping[str, Any]) -> dict[str, str | None]:
    return {"provider_slug": document.get("slug")}


_EQUALITY = DiffPolicy(ignored_paths=BOOKKEEPING_FIELDS, identity_arrays=IDENTITY_ARRAYS)
_CHANGES = DiffPolicy(ignored_paths=VOLATILE_FIELDS, identity_arrays=IDENTITY_ARRAYS, replace_on_type_change=False)

MODEL = EntityKind(
    entity_type=EntityType.MODEL,
    raw_kind=RawKind.MODELS,
    key_field="slug",
    identity_fields=_model_fields,
    diff_policy=_CHANGES,
    equality_policy=_EQUALITY,
)

ENDPOINT = EntityKind(
    entity_type=EntityType.ENDPOINT,
    raw_kind=RawKind.ENDPOINTS,
    key_field="uuid",
    identity_fields=_endpoint_fields,
    diff_policy=_CHANGES,
    equality_policy=_EQUALITY,
)

PROVIDER = EntityKind(
    entity_type=EntityType.PROVIDER,
    raw_kind=RawKind.PROVIDERS,
    key_field="slug",
    identity_fields=_provider_fields,
    diff_policy=_CHANGES,
    equality_policy=_EQUALITY,
)

ENTITY_KINDS: dict[EntityType, EntityKind] = {kind.entity_type: kind for kind in (MODEL, ENDPOINT, PROVIDER)}


__all__ = [
    "BOOKKEEPING_FIELDS",
    "ENDPOINT",
    "ENTITY_KINDS",
    "IDENTITY_ARRAYS",
    "MODEL",
    "PROVIDER",
    "VOLATILE_FIELDS",
    "EntityKind",
]
