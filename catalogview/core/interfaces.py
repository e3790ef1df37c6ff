"""
Core interfaces and abstract base classes for catalogview.

These are the collaborators a materialization pass consumes. DuckDB and
in-memory implementations live in ``catalogview.core.data.storage``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from catalogview.core.data.ingestion.models import RawKind, RawRecord
    from catalogview.core.models.changes import ChangeRecord
    from catalogview.core.models.entities import EntityType
    from catalogview.core.services.reconciliation import MaterializedStateEntry, ReconcileOutcome
    from catalogview.core.services.rolling_window import RollingWindow


class RawSnapshotSource(ABC):
    """Reproducible per-kind raw records for a logical snapshot id."""

    @abstractmethod
    def get(self, kind: RawKind, snapshot_id: str) -> list[RawRecord]:
        """
        Return the raw bundle for ``kind`` in ``snapshot_id``.

        Raises:
            MissingSnapshotError: If the bundle is absent or unreadable
        """
        pass

    @abstractmethod
    def previous_snapshot_id(self, snapshot_id: str) -> str | None:
        """Snapshot id immediately preceding ``snapshot_id``, if any."""
        pass

    @abstractmethod
    def captured_at(self, snapshot_id: str) -> datetime | None:
        """When ``snapshot_id`` was first loaded; ``None`` if nothing is stored."""
        pass


class MaterializedStateReader(ABC):
    @abstractmethod
    def list(self, kind: EntityType) -> list[MaterializedStateEntry]:
        """All entries of ``kind``, active and retired."""
        pass


class MaterializedStateWriter(ABC):
    @abstractmethod
    def apply(self, kind: EntityType, outcome: ReconcileOutcome) -> None:
        """Persist inserts, updates and retirements decided by reconciliation."""
        pass


class ChangeRecordStore(ABC):
    @abstractmethod
    def upsert(self, records: Sequence[ChangeRecord]) -> int:
        """Insert or replace records on their identity key; returns rows written."""
        pass

    @abstractmethod
    def list(
        self,
        *,
        crawl_id: str | None = None,
        previous_crawl_id: str | None = None,
        displayable_only: bool = False,
    ) -> list[ChangeRecord]:
        pass

    @abstractmethod
    def update_display(self, records: Iterable[ChangeRecord]) -> int:
        """Persist only the ``is_display`` flag of ``records``."""
        pass


class RollingWindowStore(ABC):
    @abstractmethod
    def get(self, endpoint_uuid: str, series: str) -> RollingWindow | None:
        pass

    @abstractmethod
    def put(self, endpoint_uuid: str, series: str, window: RollingWindow) -> None:
        pass


class MaterializedStateStore(MaterializedStateReader, MaterializedStateWriter):
    """Reader and writer over the same materialized state."""
