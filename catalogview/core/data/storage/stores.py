"""DuckDB and in-memory implementations of the materialization collaborators."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence  # noqa: TC003
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import duckdb

from catalogview.core.data.ingestion.models import RawKind, RawRecord
from catalogview.core.data.schema import (
    CHANGE_RECORDS_TABLE,
    MATERIALIZATION_RUNS_TABLE,
    MATERIALIZED_ENTITIES_TABLE,
    RAW_SNAPSHOTS_TABLE,
    ROLLING_WINDOWS_TABLE,
    ensure_catalog_tables,
)
from catalogview.core.exceptions import MissingSnapshotError, StorageError
from catalogview.core.interfaces import (
    ChangeRecordStore,
    MaterializedStateStore,
    RawSnapshotSource,
    RollingWindowStore,
)
from catalogview.core.logging import bind
from catalogview.core.models.changes import MISSING, ChangeKind, ChangeOperation, ChangeRecord
from catalogview.core.models.entities import EntityType
from catalogview.core.services.reconciliation import LifecycleStatus, MaterializedStateEntry, ReconcileOutcome
from catalogview.core.services.rolling_window import RollingWindow

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection

DEFAULT_CHUNK_SIZE = 2000


def _chunks(rows: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(rows), size):
        yield rows[start : start + size]


def _to_db_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value


def _from_db_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return value.replace(tzinfo=UTC)


def _dump(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def _load(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


def dedupe_change_records(records: Iterable[ChangeRecord]) -> list[ChangeRecord]:
    """Keep the first record per (crawl pair, identity key)."""

    kept: dict[tuple[str, str, tuple[str, ...]], ChangeRecord] = {}
    for record in records:
        key = (record.crawl_id, record.previous_crawl_id, record.identity_key)
        if key in kept:
            bind(
                kind=record.entity_type.value,
                identifier="|".join(record.identity_key),
                snapshot_id=record.crawl_id,
            ).warning("Change record identity collision; first occurrence kept")
            continue
        kept[key] = record
    return list(kept.values())


class _DuckDBStore:
    """Shared connection, lock and chunking for the DuckDB stores."""

    def __init__(
        self,
        connection: DuckDBPyConnection,
        *,
        lock: threading.RLock | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._connection = connection
        self._lock = lock or threading.RLock()
        self._chunk_size = chunk_size

    @contextmanager
    def _guard(self, table: str) -> Iterator[DuckDBPyConnection]:
        with self._lock:
            try:
                yield self._connection
            except duckdb.Error as exc:
                raise StorageError(f"DuckDB operation on {table} failed: {exc}", table=table) from exc

    def _write_rows(self, table: str, sql: str, rows: Sequence[Sequence[Any]]) -> int:
        with self._guard(table) as conn:
            for chunk in _chunks(rows, self._chunk_size):
                conn.executemany(sql, [list(row) for row in chunk])
        return len(rows)


class DuckDBRawSnapshotSource(_DuckDBStore, RawSnapshotSource):
    """Raw snapshot bundles stored as JSON payload rows."""

    def load(self, kind: RawKind | str, snapshot_id: str, payloads: Sequence[Any], *, loaded_at: datetime | None = None) -> int:
        """Replace the ``kind`` bundle of ``snapshot_id`` with ``payloads``."""

        kind = RawKind(kind)
        loaded_at = _to_db_time(loaded_at or datetime.now(UTC))
        rows = [(snapshot_id, kind.value, index, _dump(payload), loaded_at) for index, payload in enumerate(payloads)]
        with self._guard(RAW_SNAPSHOTS_TABLE.name) as conn:
            conn.execute(
                f"DELETE FROM {RAW_SNAPSHOTS_TABLE.name} WHERE snapshot_id = ? AND kind = ?",
                [snapshot_id, kind.value],
            )
            return self._write_rows(RAW_SNAPSHOTS_TABLE.name, RAW_SNAPSHOTS_TABLE.insert_sql(), rows)

    def get(self, kind: RawKind, snapshot_id: str) -> list[RawRecord]:
        kind = RawKind(kind)
        with self._guard(RAW_SNAPSHOTS_TABLE.name) as conn:
            rows = conn.execute(
                f"""
                SELECT record_index, payload FROM {RAW_SNAPSHOTS_TABLE.name}
                WHERE snapshot_id = ? AND kind = ?
                ORDER BY record_index
                """,
                [snapshot_id, kind.value],
            ).fetchall()
        if not rows:
            raise MissingSnapshotError(
                f"No {kind.value} bundle for snapshot {snapshot_id}",
                kind=kind.value,
                snapshot_id=snapshot_id,
            )
        return [RawRecord(kind=kind, snapshot_id=snapshot_id, index=index, payload=_load(payload)) for index, payload in rows]

    def previous_snapshot_id(self, snapshot_id: str) -> str | None:
        with self._guard(RAW_SNAPSHOTS_TABLE.name) as conn:
            row = conn.execute(
                f"SELECT max(snapshot_id) FROM {RAW_SNAPSHOTS_TABLE.name} WHERE snapshot_id < ?",
                [snapshot_id],
            ).fetchone()
        return row[0] if row else None

    def captured_at(self, snapshot_id: str) -> datetime | None:
        with self._guard(RAW_SNAPSHOTS_TABLE.name) as conn:
            row = conn.execute(
                f"SELECT min(loaded_at) FROM {RAW_SNAPSHOTS_TABLE.name} WHERE snapshot_id = ?",
                [snapshot_id],
            ).fetchone()
        return _from_db_time(row[0]) if row else None

    def snapshot_ids(self) -> list[str]:
        with self._guard(RAW_SNAPSHOTS_TABLE.name) as conn:
            rows = conn.execute(
                f"SELECT DISTINCT snapshot_id FROM {RAW_SNAPSHOTS_TABLE.name} ORDER BY snapshot_id"
            ).fetchall()
        return [row[0] for row in rows]


class DuckDBMaterializedStateStore(_DuckDBStore, MaterializedStateStore):
    """Materialized entities keyed by (kind, identity); retired rows are kept."""

    def list(self, kind: EntityType) -> list[MaterializedStateEntry]:
        with self._guard(MATERIALIZED_ENTITIES_TABLE.name) as conn:
            rows = conn.execute(
                f"""
                SELECT identity, document, status, unavailable_at, snapshot_id, updated_at
                FROM {MATERIALIZED_ENTITIES_TABLE.name}
                WHERE kind = ?
                ORDER BY identity
                """,
                [kind.value],
            ).fetchall()
        return [
            MaterializedStateEntry(
                kind=kind,
                identity=identity,
                document=_load(document),
                status=LifecycleStatus(status),
                unavailable_at=_from_db_time(unavailable_at),
                snapshot_id=snapshot_id,
                updated_at=_from_db_time(updated_at),
            )
            for identity, document, status, unavailable_at, snapshot_id, updated_at in rows
        ]

    def apply(self, kind: EntityType, outcome: ReconcileOutcome) -> None:
        entries = (*outcome.to_insert, *outcome.to_update, *outcome.to_retire)
        rows = [
            (
                kind.value,
                entry.identity,
                _dump(entry.document),
                entry.status.value,
                _to_db_time(entry.unavailable_at),
                entry.snapshot_id,
                _to_db_time(entry.updated_at),
            )
            for entry in entries
        ]
        self._write_rows(
            MATERIALIZED_ENTITIES_TABLE.name,
            MATERIALIZED_ENTITIES_TABLE.insert_sql(replace=True),
            rows,
        )


def _change_row(record: ChangeRecord) -> tuple[Any, ...]:
    return (
        record.crawl_id,
        record.previous_crawl_id,
        record.entity_type.value,
        record.change_kind.value,
        record.model_slug or "",
        record.provider_slug or "",
        record.provider_tag_slug or "",
        record.endpoint_uuid or "",
        record.path or "",
        record.path_level_1,
        record.path_level_2,
        record.operation.value if record.operation else None,
        None if record.before is MISSING else _dump(record.before),
        None if record.after is MISSING else _dump(record.after),
        record.is_display,
    )


def _change_from_row(row: Sequence[Any]) -> ChangeRecord:
    (
        crawl_id,
        previous_crawl_id,
        entity_type,
        change_kind,
        model_slug,
        provider_slug,
        provider_tag_slug,
        endpoint_uuid,
        path,
        path_level_1,
        path_level_2,
        operation,
        before,
        after,
        is_display,
    ) = row
    return ChangeRecord(
        crawl_id=crawl_id,
        previous_crawl_id=previous_crawl_id,
        entity_type=EntityType(entity_type),
        change_kind=ChangeKind(change_kind),
        model_slug=model_slug or None,
        provider_slug=provider_slug or None,
        provider_tag_slug=provider_tag_slug or None,
        endpoint_uuid=endpoint_uuid or None,
        path=path or None,
        path_level_1=path_level_1,
        path_level_2=path_level_2,
        operation=ChangeOperation(operation) if operation else None,
        before=MISSING if before is None else _load(before),
        after=MISSING if after is None else _load(after),
        is_display=bool(is_display),
    )


class DuckDBChangeRecordStore(_DuckDBStore, ChangeRecordStore):
    """Change history; insert-or-replace on the identity key makes re-diffing idempotent."""

    def upsert(self, records: Sequence[ChangeRecord]) -> int:
        rows = [_change_row(record) for record in dedupe_change_records(records)]
        return self._write_rows(CHANGE_RECORDS_TABLE.name, CHANGE_RECORDS_TABLE.insert_sql(replace=True), rows)

    def list(
        self,
        *,
        crawl_id: str | None = None,
        previous_crawl_id: str | None = None,
        displayable_only: bool = False,
    ) -> list[ChangeRecord]:
        clauses: list[str] = []
        params: list[Any] = []
        if crawl_id is not None:
            clauses.append("crawl_id = ?")
            params.append(crawl_id)
        if previous_crawl_id is not None:
            clauses.append("previous_crawl_id = ?")
            params.append(previous_crawl_id)
        if displayable_only:
            clauses.append("is_display")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        columns = ", ".join(CHANGE_RECORDS_TABLE.column_names)
        order = ", ".join(CHANGE_RECORDS_TABLE.primary_key)
        with self._guard(CHANGE_RECORDS_TABLE.name) as conn:
            rows = conn.execute(
                f"SELECT {columns} FROM {CHANGE_RECORDS_TABLE.name} {where} ORDER BY {order}",
                params,
            ).fetchall()
        return [_change_from_row(row) for row in rows]

    def update_display(self, records: Iterable[ChangeRecord]) -> int:
        key_clause = " AND ".join(f"{column} = ?" for column in CHANGE_RECORDS_TABLE.primary_key)
        sql = f"UPDATE {CHANGE_RECORDS_TABLE.name} SET is_display = ? WHERE {key_clause}"
        rows = [(record.is_display, *_change_row(record)[: len(CHANGE_RECORDS_TABLE.primary_key)]) for record in records]
        return self._write_rows(CHANGE_RECORDS_TABLE.name, sql, rows)


class DuckDBRollingWindowStore(_DuckDBStore, RollingWindowStore):
    def get(self, endpoint_uuid: str, series: str) -> RollingWindow | None:
        with self._guard(ROLLING_WINDOWS_TABLE.name) as conn:
            row = conn.execute(
                f"SELECT hourly, daily FROM {ROLLING_WINDOWS_TABLE.name} WHERE endpoint_uuid = ? AND series = ?",
                [endpoint_uuid, series],
            ).fetchone()
        if row is None:
            return None
        return RollingWindow(hourly=_load(row[0]), daily=_load(row[1]))

    def put(self, endpoint_uuid: str, series: str, window: RollingWindow) -> None:
        row = (endpoint_uuid, series, _dump(window.hourly), _dump(window.daily), _to_db_time(datetime.now(UTC)))
        self._write_rows(ROLLING_WINDOWS_TABLE.name, ROLLING_WINDOWS_TABLE.insert_sql(replace=True), [row])


class DuckDBRunWriter(_DuckDBStore):
    """Persists one summary row per materialization pass."""

    def __call__(
        self,
        *,
        run_id: str,
        snapshot_id: str,
        created_at: datetime,
        counters: Mapping[str, Mapping[str, int]],
        issue_count: int,
        rejected_count: int,
    ) -> None:
        row = (run_id, snapshot_id, _to_db_time(created_at), _dump(counters), issue_count, rejected_count)
        self._write_rows(MATERIALIZATION_RUNS_TABLE.name, MATERIALIZATION_RUNS_TABLE.insert_sql(), [row])


@dataclass(frozen=True)
class CatalogStores:
    """DuckDB-backed collaborators sharing one connection and lock."""

    source: DuckDBRawSnapshotSource
    state: DuckDBMaterializedStateStore
    changes: DuckDBChangeRecordStore
    windows: DuckDBRollingWindowStore
    runs: DuckDBRunWriter


def open_stores(connection: DuckDBPyConnection, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> CatalogStores:
    """Create every catalog table and return stores bound to ``connection``."""

    ensure_catalog_tables(connection)
    lock = threading.RLock()
    kwargs: dict[str, Any] = {"lock": lock, "chunk_size": chunk_size}
    return CatalogStores(
        source=DuckDBRawSnapshotSource(connection, **kwargs),
        state=DuckDBMaterializedStateStore(connection, **kwargs),
        changes=DuckDBChangeRecordStore(connection, **kwargs),
        windows=DuckDBRollingWindowStore(connection, **kwargs),
        runs=DuckDBRunWriter(connection, **kwargs),
    )


class InMemoryRawSnapshotSource(RawSnapshotSource):
    """Dictionary-backed source used by tests and ad-hoc runs."""

    def __init__(self) -> None:
        self._bundles: dict[tuple[str, RawKind], list[Any]] = {}
        self._loaded_at: dict[str, datetime] = {}

    def add(
        self, kind: RawKind | str, snapshot_id: str, payloads: Sequence[Any], *, loaded_at: datetime | None = None
    ) -> None:
        self._bundles[(snapshot_id, RawKind(kind))] = list(payloads)
        loaded_at = loaded_at or datetime.now(UTC)
        first = self._loaded_at.get(snapshot_id)
        self._loaded_at[snapshot_id] = loaded_at if first is None else min(first, loaded_at)

    def get(self, kind: RawKind, snapshot_id: str) -> list[RawRecord]:
        kind = RawKind(kind)
        try:
            payloads = self._bundles[(snapshot_id, kind)]
        except KeyError:
            raise MissingSnapshotError(
                f"No {kind.value} bundle for snapshot {snapshot_id}",
                kind=kind.value,
                snapshot_id=snapshot_id,
            ) from None
        return [
            RawRecord(kind=kind, snapshot_id=snapshot_id, index=index, payload=payload)
            for index, payload in enumerate(payloads)
        ]

    def previous_snapshot_id(self, snapshot_id: str) -> str | None:
        earlier = [sid for sid, _ in self._bundles if sid < snapshot_id]
        return max(earlier) if earlier else None

    def captured_at(self, snapshot_id: str) -> datetime | None:
        return self._loaded_at.get(snapshot_id)


class InMemoryMaterializedStateStore(MaterializedStateStore):
    def __init__(self) -> None:
        self._entries: dict[tuple[EntityType, str], MaterializedStateEntry] = {}
        self._lock = threading.Lock()

    def list(self, kind: EntityType) -> list[MaterializedStateEntry]:
        with self._lock:
            return sorted(
                (entry for (entry_kind, _), entry in self._entries.items() if entry_kind is kind),
                key=lambda entry: entry.identity,
            )

    def apply(self, kind: EntityType, outcome: ReconcileOutcome) -> None:
        with self._lock:
            for entry in (*outcome.to_insert, *outcome.to_update, *outcome.to_retire):
                self._entries[(kind, entry.identity)] = entry


class InMemoryChangeRecordStore(ChangeRecordStore):
    def __init__(self) -> None:
        self._records: dict[tuple[str, str, tuple[str, ...]], ChangeRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, records: Sequence[ChangeRecord]) -> int:
        unique = dedupe_change_records(records)
        with self._lock:
            for record in unique:
                self._records[(record.crawl_id, record.previous_crawl_id, record.identity_key)] = record
        return len(unique)

    def list(
        self,
        *,
        crawl_id: str | None = None,
        previous_crawl_id: str | None = None,
        displayable_only: bool = False,
    ) -> list[ChangeRecord]:
        with self._lock:
            items = sorted(self._records.items(), key=lambda item: item[0])
        return [
            record
            for _, record in items
            if (crawl_id is None or record.crawl_id == crawl_id)
            and (previous_crawl_id is None or record.previous_crawl_id == previous_crawl_id)
            and (not displayable_only or record.is_display)
        ]

    def update_display(self, records: Iterable[ChangeRecord]) -> int:
        updated = 0
        with self._lock:
            for record in records:
                key = (record.crawl_id, record.previous_crawl_id, record.identity_key)
                if key in self._records:
                    self._records[key] = self._records[key].with_display(record.is_display)
                    updated += 1
        return updated


class InMemoryRollingWindowStore(RollingWindowStore):
    def __init__(self) -> None:
        self._windows: dict[tuple[str, str], RollingWindow] = {}

    def get(self, endpoint_uuid: str, series: str) -> RollingWindow | None:
        return self._windows.get((endpoint_uuid, series))

    def put(self, endpoint_uuid: str, series: str, window: RollingWindow) -> None:
        self._windows[(endpoint_uuid, series)] = window


__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "CatalogStores",
    "DuckDBChangeRecordStore",
    "DuckDBMaterializedStateStore",
    "DuckDBRawSnapshotSource",
    "DuckDBRollingWindowStore",
    "DuckDBRunWriter",
    "InMemoryChangeRecordStore",
    "InMemoryMaterializedStateStore",
    "InMemoryRawSnapshotSource",
    "InMemoryRollingWindowStore",
    "dedupe_change_records",
    "open_stores",
]
