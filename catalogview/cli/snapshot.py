"""Raw snapshot loading commands."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from catalogview.core.data.ingestion.models import RawKind
from catalogview.core.exceptions import CatalogViewError, DataValidationError

from . import runtime
from .constants import SYSTEM_EXIT_CODE, VALIDATION_EXIT_CODE
from .utils import emit_error, get_config, prepare_output

snapshot_app = typer.Typer(help="Raw snapshot operations.")


def register(app: typer.Typer) -> None:
    """Register snapshot commands on the provided application."""

    app.add_typer(snapshot_app, name="snapshot", help="Load and inspect raw snapshots")


@snapshot_app.command("load")
def load_command(
    ctx: typer.Context,
    kind: str = typer.Argument(..., metavar="KIND", help="Raw kind: models, endpoints, providers or uptimes."),
    snapshot_id: str = typer.Argument(..., metavar="SNAPSHOT", help="Snapshot id to store the records under."),
    file: Path = typer.Argument(..., metavar="FILE", help="JSON file holding an array of raw records."),
) -> None:
    """Load a JSON array of raw records as the KIND bundle of SNAPSHOT."""

    try:
        raw_kind = RawKind(kind.lower())
    except ValueError as exc:
        allowed = ", ".join(value.value for value in RawKind)
        raise typer.BadParameter(f"Unsupported kind '{kind}'. Allowed values: {allowed}", param_hint="KIND") from exc

    try:
        payloads = _read_payloads(file)
    except DataValidationError as error:
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=VALIDATION_EXIT_CODE) from error

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        with runtime.open_runtime(get_config(ctx)) as active:
            loaded = active.stores.source.load(raw_kind, snapshot_id, payloads)
    except CatalogViewError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SYSTEM_EXIT_CODE) from error

    try:
        formatter.render(
            [{"snapshot_id": snapshot_id, "kind": raw_kind.value, "records": loaded}],
            stream=stream,
            columns=["snapshot_id", "kind", "records"],
        )
    finally:
        stack.close()


@snapshot_app.command("list")
def list_command(ctx: typer.Context) -> None:
    """List loaded snapshot ids in ascending order."""

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        with runtime.open_runtime(get_config(ctx)) as active:
            snapshot_ids = active.stores.source.snapshot_ids()
    except CatalogViewError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SYSTEM_EXIT_CODE) from error

    try:
        if snapshot_ids:
            formatter.render([{"snapshot_id": value} for value in snapshot_ids], stream=stream, columns=["snapshot_id"])
        else:
            typer.echo("No snapshots loaded.", file=stream)
    finally:
        stack.close()


def _read_payloads(file: Path) -> list[object]:
    try:
        with open(file, encoding="utf-8") as handle:
            payloads = json.load(handle)
    except OSError as exc:
        raise DataValidationError(f"Unable to read '{file}': {exc}", details={"file": str(file)}) from exc
    except json.JSONDecodeError as exc:
        raise DataValidationError(
            f"Invalid JSON in '{file}'",
            validation_errors={"line": exc.lineno, "column": exc.colno, "error": exc.msg},
            details={"file": str(file)},
        ) from exc
    if not isinstance(payloads, list):
        raise DataValidationError(
            "Raw snapshot file must contain a JSON array of records",
            details={"file": str(file), "type": type(payloads).__name__},
        )
    return payloads
