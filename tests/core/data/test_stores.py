from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from catalogview.core.data.ingestion.models import RawKind
from catalogview.core.data.storage import open_stores
from catalogview.core.exceptions import MissingSnapshotError, StorageError
from catalogview.core.models.changes import MISSING, ChangeKind, ChangeOperation, ChangeRecord
from catalogview.core.models.entities import EntityType
from catalogview.core.services.reconciliation import (
    LifecycleStatus,
    MaterializedStateEntry,
    ReconcileOutcome,
)
from catalogview.core.services.rolling_window import RollingWindow

OBSERVED = datetime(2024, 6, 1, 12, tzinfo=UTC)


def _record(path: str, after: object = MISSING, *, is_display: bool = True, before: object = MISSING) -> ChangeRecord:
    return ChangeRecord(
        crawl_id="s2",
        previous_crawl_id="s1",
        entity_type=EntityType.ENDPOINT,
        change_kind=ChangeKind.UPDATE,
        model_slug="acme/foo",
        provider_slug="acme",
        provider_tag_slug="acme/fp8",
        endpoint_uuid="ep-1",
        path=path,
        path_level_1=path.split(".")[0],
        operation=ChangeOperation.ADD if before is MISSING else ChangeOperation.REPLACE,
        before=before,
        after=after,
        is_display=is_display,
    )


@pytest.fixture()
def stores(duckdb_conn):
    return open_stores(duckdb_conn, chunk_size=2)


def test_raw_source_round_trip_and_replace(stores) -> None:
    stores.source.load(RawKind.MODELS, "s1", [{"slug": "a"}, {"slug": "b"}, {"slug": "c"}])
    stores.source.load("models", "s1", [{"slug": "z"}])

    records = stores.source.get(RawKind.MODELS, "s1")

    assert [record.payload for record in records] == [{"slug": "z"}]
    assert records[0].index == 0
    assert records[0].kind is RawKind.MODELS


def test_raw_source_missing_bundle_raises(stores) -> None:
    stores.source.load(RawKind.MODELS, "s1", [{"slug": "a"}])

    with pytest.raises(MissingSnapshotError) as excinfo:
        stores.source.get(RawKind.ENDPOINTS, "s1")

    assert excinfo.value.kind == "endpoints"


def test_previous_snapshot_lookup(stores) -> None:
    for snapshot_id in ("2024-06-01T10", "2024-06-01T11", "2024-06-01T12"):
        stores.source.load(RawKind.MODELS, snapshot_id, [{"slug": "a"}])

    assert stores.source.previous_snapshot_id("2024-06-01T12") == "2024-06-01T11"
    assert stores.source.previous_snapshot_id("2024-06-01T10") is None
    assert stores.source.snapshot_ids() == ["2024-06-01T10", "2024-06-01T11", "2024-06-01T12"]


def test_captured_at_is_earliest_load(stores) -> None:
    stores.source.load(RawKind.MODELS, "s1", [{"slug": "a"}], loaded_at=OBSERVED)
    stores.source.load(RawKind.ENDPOINTS, "s1", [{"id": "ep-1"}], loaded_at=OBSERVED + timedelta(hours=2))

    assert stores.source.captured_at("s1") == OBSERVED
    assert stores.source.captured_at("s9") is None


def test_state_store_keeps_retired_rows(stores) -> None:
    active = MaterializedStateEntry(
        kind=EntityType.MODEL, identity="acme/foo", document={"slug": "acme/foo"}, updated_at=OBSERVED
    )
    stores.state.apply(EntityType.MODEL, ReconcileOutcome(kind=EntityType.MODEL, to_insert=(active,)))
    retired = MaterializedStateEntry(
        kind=EntityType.MODEL,
        identity="acme/foo",
        document={"slug": "acme/foo"},
        status=LifecycleStatus.RETIRED,
        unavailable_at=OBSERVED,
        updated_at=OBSERVED,
    )
    stores.state.apply(EntityType.MODEL, ReconcileOutcome(kind=EntityType.MODEL, to_retire=(retired,)))

    entries = stores.state.list(EntityType.MODEL)

    assert len(entries) == 1
    assert entries[0].status is LifecycleStatus.RETIRED
    assert entries[0].unavailable_at == OBSERVED
    assert entries[0].document == {"slug": "acme/foo"}
    assert stores.state.list(EntityType.ENDPOINT) == []


def test_change_upsert_is_idempotent(stores) -> None:
    records = [_record("quantization", "fp8"), _record("pricing.request", 0.5), _record("context_length", 2, before=1)]

    stores.changes.upsert(records)
    stores.changes.upsert(records)

    stored = stores.changes.list(crawl_id="s2")
    assert len(stored) == 3
    by_path = {record.path: record for record in stored}
    assert by_path["context_length"].before == 1
    assert by_path["quantization"].before is MISSING
    assert by_path["quantization"].after == "fp8"
    assert by_path["quantization"].provider_tag_slug == "acme/fp8"


def test_change_upsert_keeps_first_of_colliding_records(stores) -> None:
    written = stores.changes.upsert([_record("name", "first"), _record("name", "second")])

    assert written == 1
    assert stores.changes.list()[0].after == "first"


def test_null_values_survive_storage(stores) -> None:
    stores.changes.upsert([_record("quantization", None)])

    stored = stores.changes.list()[0]

    assert stored.after is None
    assert stored.before is MISSING


def test_update_display_only_touches_flag(stores) -> None:
    stores.changes.upsert([_record("name", "x"), _record("pricing.request", 0.5)])
    hidden = _record("pricing.request", "ignored", is_display=False)

    stores.changes.update_display([hidden])

    visible = stores.changes.list(displayable_only=True)
    assert [record.path for record in visible] == ["name"]
    everything = {record.path: record for record in stores.changes.list()}
    assert everything["pricing.request"].is_display is False
    assert everything["pricing.request"].after == 0.5


def test_rolling_window_store(stores) -> None:
    assert stores.windows.get("ep-1", "uptime") is None

    stores.windows.put("ep-1", "uptime", RollingWindow(hourly=[{"timestamp": 1, "uptime": 99.0}], daily=[]))
    stores.windows.put("ep-1", "uptime", RollingWindow(hourly=[{"timestamp": 2, "uptime": 98.0}], daily=[{"timestamp": 0}]))

    window = stores.windows.get("ep-1", "uptime")
    assert window is not None
    assert window.hourly == [{"timestamp": 2, "uptime": 98.0}]
    assert window.daily == [{"timestamp": 0}]


def test_run_writer_persists_summary(stores, duckdb_conn) -> None:
    stores.runs(
        run_id="run-1",
        snapshot_id="s1",
        created_at=OBSERVED,
        counters={"model": {"insert": 1, "update": 0, "stable": 0, "retire": 0}},
        issue_count=2,
        rejected_count=1,
    )

    row = duckdb_conn.execute("SELECT snapshot_id, issue_count, rejected_count FROM materialization_runs").fetchone()
    assert row == ("s1", 2, 1)


def test_duckdb_failures_surface_as_storage_error(stores) -> None:
    stores.runs(run_id="run-1", snapshot_id="s1", created_at=OBSERVED, counters={}, issue_count=0, rejected_count=0)

    with pytest.raises(StorageError) as excinfo:
        stores.runs(run_id="run-1", snapshot_id="s1", created_at=OBSERVED, counters={}, issue_count=0, rejected_count=0)

    assert excinfo.value.table == "materialization_runs"
