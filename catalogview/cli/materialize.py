"""``catalogview materialize`` command."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence

import typer

from catalogview.core.data.ingestion.validator import ValidationIssue
from catalogview.core.exceptions import CatalogViewError, MissingSnapshotError
from catalogview.core.services.materialize import MaterializeResult, PassResult

from . import runtime
from .constants import DATA_QUALITY_EXIT_CODE, SNAPSHOT_EXIT_CODE, SYSTEM_EXIT_CODE
from .utils import emit_error, get_config, prepare_output

COUNTER_COLUMNS = ["kind", "insert", "update", "stable", "retire"]
SUMMARY_COLUMNS = ["metric", "value"]
ISSUE_COLUMNS = ["kind", "index", "identifier", "field", "code", "rejected", "message"]


def register(app: typer.Typer) -> None:
    """Register the materialize command on the provided application."""

    app.command("materialize")(materialize_command)


def materialize_command(
    ctx: typer.Context,
    snapshot_id: str = typer.Argument(..., metavar="SNAPSHOT", help="Snapshot id to materialize."),
    previous: str | None = typer.Option(
        None,
        "--previous",
        help="Snapshot to diff against. Defaults to the preceding loaded snapshot.",
    ),
    no_diff: bool = typer.Option(False, "--no-diff", help="Only reconcile live state; skip change detection."),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Exit with a data quality code when records were rejected by validation.",
    ),
    show_issues: bool = typer.Option(False, "--issues", help="List validation issues after the summary."),
) -> None:
    """Reconcile SNAPSHOT into the materialized state and record its changes."""

    formatter, stream, stack, _ = prepare_output(ctx)
    config = get_config(ctx)

    try:
        with runtime.open_runtime(config) as active:
            if no_diff:
                outcome: MaterializeResult | PassResult = active.service.materialize(snapshot_id)
            else:
                outcome = asyncio.run(active.service.run_pass(snapshot_id, previous))
    except MissingSnapshotError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SNAPSHOT_EXIT_CODE) from error
    except CatalogViewError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SYSTEM_EXIT_CODE) from error

    if isinstance(outcome, PassResult):
        result = outcome.materialized
        summary_rows = _build_summary_rows(result, outcome)
    else:
        result = outcome
        summary_rows = _build_summary_rows(result, None)

    try:
        formatter.render(_build_counter_rows(result), stream=stream, columns=COUNTER_COLUMNS)
        formatter.render(summary_rows, stream=stream, columns=SUMMARY_COLUMNS)
        if show_issues:
            if result.issues:
                formatter.render(_build_issue_rows(result.issues), stream=stream, columns=ISSUE_COLUMNS)
            else:
                typer.echo("No validation issues.", file=stream)
    finally:
        stack.close()

    if strict and result.rejected_count:
        emit_error(
            f"{result.rejected_count} records failed validation.",
            "DATA_QUALITY_FAILED",
            details={"snapshot_id": result.snapshot_id, "rejected_count": result.rejected_count},
        )
        raise typer.Exit(code=DATA_QUALITY_EXIT_CODE)


def _build_counter_rows(result: MaterializeResult) -> list[Mapping[str, object]]:
    return [{"kind": kind.value, **counters.to_dict()} for kind, counters in result.counters.items()]


def _build_summary_rows(result: MaterializeResult, outcome: PassResult | None) -> list[Mapping[str, object]]:
    rows: list[Mapping[str, object]] = [
        {"metric": "run_id", "value": result.run_id},
        {"metric": "snapshot_id", "value": result.snapshot_id},
        {"metric": "issues", "value": len(result.issues)},
        {"metric": "rejected_records", "value": result.rejected_count},
    ]
    if outcome is not None:
        rows.extend(
            [
                {"metric": "previous_snapshot_id", "value": outcome.previous_snapshot_id or ""},
                {"metric": "changes", "value": len(outcome.changes)},
                {"metric": "displayed_changes", "value": sum(1 for record in outcome.changes if record.is_display)},
            ]
        )
    return rows


def _build_issue_rows(issues: Sequence[ValidationIssue]) -> list[Mapping[str, object]]:
    return [{column: issue.to_dict().get(column) for column in ISSUE_COLUMNS} for issue in issues]
