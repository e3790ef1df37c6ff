"""Reconciliation of a pass's canonical entities against materialized state."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence  # noqa: TC003
from dataclasses import dataclass, replace
from datetime import datetime  # noqa: TC003
from enum import Enum
from typing import Any

from catalogview.core.logging import bind
from catalogview.core.models.entities import EntityType

IdentityFn = Callable[[Mapping[str, Any]], str]
EqualsFn = Callable[[Mapping[str, Any], Mapping[str, Any]], bool]


class LifecycleStatus(str, Enum):
    """Lifecycle of a materialized entity; retired rows are kept, never deleted."""

    ACTIVE = "active"
    RETIRED = "retired"


@dataclass(frozen=True)
class MaterializedStateEntry:
    """Current canonical document for one entity plus its lifecycle tag."""

    kind: EntityType
    identity: str
    document: dict[str, Any]
    status: LifecycleStatus = LifecycleStatus.ACTIVE
    unavailable_at: datetime | None = None
    snapshot_id: str | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is LifecycleStatus.ACTIVE


@dataclass(frozen=True)
class ReconcileCounters:
    """Per-kind outcome counts."""

    insert: int = 0
    update: int = 0
    stable: int = 0
    retire: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"insert": self.insert, "update": self.update, "stable": self.stable, "retire": self.retire}


@dataclass(frozen=True)
class ReconcileOutcome:
    """Writes a reconciliation decided on; stable entities need none."""

    kind: EntityType
    to_insert: tuple[MaterializedStateEntry, ...] = ()
    to_update: tuple[MaterializedStateEntry, ...] = ()
    to_retire: tuple[MaterializedStateEntry, ...] = ()
    stable_count: int = 0

    @property
    def counters(self) -> ReconcileCounters:
        return ReconcileCounters(
            insert=len(self.to_insert),
            update=len(self.to_update),
            stable=self.stable_count,
            retire=len(self.to_retire),
        )


def reconcile(
    next_documents: Sequence[Mapping[str, Any]],
    previous: Sequence[MaterializedStateEntry],
    *,
    kind: EntityType,
    identity: IdentityFn,
    equals: EqualsFn,
    observed_at: datetime,
    snapshot_id: str | None = None,
) -> ReconcileOutcome:
    """Decide insert, update, stable or retire for every entity of one kind.

    Retired entries never take part in matching: a reappearing entity is a
    fresh insert and an already-retired entity is not retired again.
    """

    lookup = {entry.identity: entry for entry in previous if entry.is_active}
    seen: set[str] = set()
    to_insert: list[MaterializedStateEntry] = []
    to_update: list[MaterializedStateEntry] = []
    stable = 0

    for document in next_documents:
        key = identity(document)
        if key in seen:
            bind(kind=kind.value, identifier=key, snapshot_id=snapshot_id).warning(
                "Duplicate identity in reconciliation input; first occurrence kept"
            )
            continue
        seen.add(key)

        prior = lookup.get(key)
        entry = MaterializedStateEntry(
            kind=kind,
            identity=key,
            document=dict(document),
            snapshot_id=snapshot_id,
            updated_at=observed_at,
        )
        if prior is None:
            to_insert.append(entry)
        elif equals(prior.document, document):
            stable += 1
        else:
            to_update.append(entry)

    to_retire = tuple(
        replace(entry, status=LifecycleStatus.RETIRED, unavailable_at=observed_at, updated_at=observed_at)
        for key, entry in lookup.items()
        if key not in seen
    )

    return ReconcileOutcome(
        kind=kind,
        to_insert=tuple(to_insert),
        to_update=tuple(to_update),
        to_retire=to_retire,
        stable_count=stable,
    )


__all__ = [
    "EqualsFn",
    "IdentityFn",
    "LifecycleStatus",
    "MaterializedStateEntry",
    "ReconcileCounters",
    "ReconcileOutcome",
    "reconcile",
]
