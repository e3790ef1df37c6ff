from __future__ import annotations

import json
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner, Result

from catalogview.cli.main import create_app

Invoke = Callable[..., Result]


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def invoke(runner: CliRunner, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Invoke:
    """Run the CLI against a file-backed database private to the test."""

    for name in ("CATALOGVIEW_DATABASE", "CATALOGVIEW_LOG_LEVEL", "CATALOGVIEW_LOG_FILE"):
        monkeypatch.delenv(name, raising=False)
    database = tmp_path / "catalog.duckdb"
    config = tmp_path / "config.toml"

    def run(*args: str, fmt: str = "jsonl") -> Result:
        app = create_app()
        return runner.invoke(
            app,
            ["--config", str(config), "--database", str(database), "--format", fmt, *args],
        )

    return run


@pytest.fixture()
def write_json(tmp_path: Path) -> Callable[[str, Any], Path]:
    def write(name: str, payload: Any) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return write


def _parse_jsonl(output: str) -> list[dict[str, Any]]:
    return [json.loads(line) for line in output.splitlines() if line.strip().startswith("{")]


def _error_payload(stderr: str) -> dict[str, Any]:
    """Return the structured CLI error among stderr lines, skipping log records."""

    for line in reversed(stderr.splitlines()):
        if not line.strip().startswith("{"):
            continue
        payload = json.loads(line)
        if "code" in payload:
            return payload
    raise AssertionError(f"no error payload in stderr: {stderr!r}")


@pytest.fixture()
def parse_jsonl() -> Callable[[str], list[dict[str, Any]]]:
    return _parse_jsonl


@pytest.fixture()
def error_payload() -> Callable[[str], dict[str, Any]]:
    return _error_payload


@pytest.fixture()
def load_snapshot(invoke: Invoke, write_json: Callable[[str, Any], Path]) -> Callable[..., None]:
    def load(snapshot_id: str, **bundles: Sequence[Any]) -> None:
        for kind, payloads in bundles.items():
            path = write_json(f"{snapshot_id}-{kind}.json", list(payloads))
            result = invoke("snapshot", "load", kind, snapshot_id, str(path))
            assert result.exit_code == 0, result.output

    return load
