"""Change record types shared by the diff engine, display filter and stores."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from catalogview.core.models.entities import EntityType


class _Missing:
    """Marker for a key that is absent, as opposed to present with ``None``."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class ChangeKind(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ChangeOperation(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    REPLACE = "replace"


IdentityKey = tuple[str, str, str, str, str, str, str]


@dataclass(frozen=True, slots=True)
class ChangeRecord:
    """One atomic, path-scoped change between two snapshots of an entity."""

    crawl_id: str
    previous_crawl_id: str
    entity_type: EntityType
    change_kind: ChangeKind
    model_slug: str | None = None
    provider_slug: str | None = None
    provider_tag_slug: str | None = None
    endpoint_uuid: str | None = None
    path: str | None = None
    path_level_1: str | None = None
    path_level_2: str | None = None
    operation: ChangeOperation | None = None
    before: Any = field(default=MISSING, compare=False)
    after: Any = field(default=MISSING, compare=False)
    is_display: bool = True

    @property
    def identity_key(self) -> IdentityKey:
        """Key under which the record is insert-or-replaced for a crawl pair."""
        return (
            self.entity_type.value,
            self.change_kind.value,
            self.model_slug or "",
            self.provider_slug or "",
            self.provider_tag_slug or "",
            self.endpoint_uuid or "",
            self.path or "",
        )

    def with_display(self, is_display: bool) -> ChangeRecord:
        return replace(self, is_display=is_display)

    def to_dict(self) -> dict[str, Any]:
        """Serialise to a JSON-friendly mapping; absent values are omitted."""
        payload: dict[str, Any] = {
            "crawl_id": self.crawl_id,
            "previous_crawl_id": self.previous_crawl_id,
            "entity_type": self.entity_type.value,
            "change_kind": self.change_kind.value,
            "model_slug": self.model_slug,
            "provider_slug": self.provider_slug,
            "provider_tag_slug": self.provider_tag_slug,
            "endpoint_uuid": self.endpoint_uuid,
            "path": self.path,
            "path_level_1": self.path_level_1,
            "path_level_2": self.path_level_2,
            "operation": self.operation.value if self.operation else None,
            "is_display": self.is_display,
        }
        if self.before is not MISSING:
            payload["before"] = self.before
        if self.after is not MISSING:
            payload["after"] = self.after
        return payload


__all__ = ["MISSING", "ChangeKind", "ChangeOperation", "ChangeRecord", "IdentityKey"]
