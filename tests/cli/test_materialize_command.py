from __future__ import annotations

from contextlib import contextmanager
from types import SimpleNamespace

import pytest

from catalogview.cli import runtime as runtime_module
from catalogview.core.exceptions import MissingSnapshotError, StorageError


@pytest.fixture()
def catalog(load_snapshot, raw_model, raw_endpoint, raw_provider, raw_uptime) -> None:
    load_snapshot(
        "s1",
        models=[raw_model()],
        endpoints=[raw_endpoint()],
        providers=[raw_provider()],
        uptimes=[raw_uptime()],
    )
    load_snapshot(
        "s2",
        models=[raw_model()],
        endpoints=[raw_endpoint(context_length=64000), raw_endpoint(id="ep-2", can_abort="sometimes")],
        providers=[raw_provider()],
    )


def _stub_runtime(monkeypatch: pytest.MonkeyPatch, service: object) -> None:
    @contextmanager
    def fake_open_runtime(config):
        yield SimpleNamespace(config=config, service=service, stores=None)

    monkeypatch.setattr(runtime_module, "open_runtime", fake_open_runtime)


def test_materialize_reports_counters_and_changes(invoke, catalog, parse_jsonl) -> None:
    result = invoke("materialize", "s1")

    assert result.exit_code == 0, result.output
    rows = parse_jsonl(result.stdout)
    counters = {row["kind"]: row for row in rows if "kind" in row}
    assert counters["endpoint"]["insert"] == 1
    assert counters["model"]["insert"] == 1
    summary = {row["metric"]: row["value"] for row in rows if "metric" in row}
    assert summary["snapshot_id"] == "s1"
    assert summary["previous_snapshot_id"] == ""
    assert summary["changes"] == 3
    assert summary["rejected_records"] == 0


def test_second_pass_diffs_against_preceding_snapshot(invoke, catalog, parse_jsonl) -> None:
    invoke("materialize", "s1")

    result = invoke("materialize", "s2", "--issues")

    assert result.exit_code == 0, result.output
    rows = parse_jsonl(result.stdout)
    counters = {row["kind"]: row for row in rows if "insert" in row}
    assert counters["endpoint"]["update"] == 1
    assert counters["model"]["stable"] == 1
    summary = {row["metric"]: row["value"] for row in rows if "metric" in row}
    assert summary["previous_snapshot_id"] == "s1"
    assert summary["changes"] == 1
    issues = [row for row in rows if "code" in row]
    assert [(issue["identifier"], issue["code"], issue["rejected"]) for issue in issues] == [
        ("ep-2", "INVALID_TYPE", True)
    ]


def test_strict_mode_fails_on_rejected_records(invoke, catalog, error_payload) -> None:
    result = invoke("materialize", "s2", "--no-diff", "--strict")

    assert result.exit_code == 30
    payload = error_payload(result.stderr)
    assert payload["code"] == "DATA_QUALITY_FAILED"
    assert payload["details"]["rejected_count"] == 1


def test_table_output(invoke, catalog) -> None:
    result = invoke("materialize", "s1", "--no-diff", fmt="table")

    assert result.exit_code == 0, result.output
    assert "insert" in result.stdout
    assert "run_id" in result.stdout


def test_missing_snapshot_exit_code(invoke, error_payload) -> None:
    result = invoke("materialize", "nope")

    assert result.exit_code == 20
    payload = error_payload(result.stderr)
    assert payload["code"] == "SNAPSHOT_MISSING"
    assert payload["details"]["snapshot_id"] == "nope"


def test_storage_failure_exit_code(invoke, monkeypatch: pytest.MonkeyPatch) -> None:
    class FailingService:
        def materialize(self, snapshot_id: str):
            raise StorageError("disk full", table="materialized_entities")

    _stub_runtime(monkeypatch, FailingService())

    result = invoke("materialize", "s1", "--no-diff")

    assert result.exit_code == 40
    assert "STORAGE_ERROR" in result.stderr


def test_missing_snapshot_from_stubbed_service(invoke, monkeypatch: pytest.MonkeyPatch) -> None:
    class MissingService:
        async def run_pass(self, snapshot_id: str, previous_snapshot_id: str | None = None):
            raise MissingSnapshotError("absent", kind="providers", snapshot_id=snapshot_id)

    _stub_runtime(monkeypatch, MissingService())

    result = invoke("materialize", "s9", "--previous", "s8")

    assert result.exit_code == 20
    assert "providers" in result.stderr


def test_invalid_format_is_rejected(runner) -> None:
    from catalogview.cli.main import create_app

    result = runner.invoke(create_app(), ["--format", "xml", "materialize", "s1"])

    assert result.exit_code == 2
    assert "Unsupported format" in result.output
