"""Change history commands."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from typing import TextIO

import typer

from catalogview.core.exceptions import CatalogViewError, MissingSnapshotError
from catalogview.core.models.changes import ChangeRecord

from . import runtime
from .constants import SNAPSHOT_EXIT_CODE, SYSTEM_EXIT_CODE
from .formatters import OutputFormatter
from .utils import emit_error, get_config, prepare_output

changes_app = typer.Typer(help="Change history operations.")

CHANGE_COLUMNS = [
    "entity_type",
    "change_kind",
    "model_slug",
    "provider_tag_slug",
    "endpoint_uuid",
    "path",
    "operation",
    "before",
    "after",
    "is_display",
]


def register(app: typer.Typer) -> None:
    """Register change history commands on the provided application."""

    app.add_typer(changes_app, name="changes", help="Diff snapshots and inspect change records")


@changes_app.command("diff")
def diff_command(
    ctx: typer.Context,
    previous_snapshot_id: str = typer.Argument(..., metavar="PREV", help="Earlier snapshot id."),
    snapshot_id: str = typer.Argument(..., metavar="CUR", help="Later snapshot id."),
    show_all: bool = typer.Option(False, "--all", help="Include records hidden by display rules."),
) -> None:
    """Diff PREV against CUR and store the resulting change records."""

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        with runtime.open_runtime(get_config(ctx)) as active:
            records = active.service.diff_pair(previous_snapshot_id, snapshot_id)
    except MissingSnapshotError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SNAPSHOT_EXIT_CODE) from error
    except CatalogViewError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SYSTEM_EXIT_CODE) from error

    _render_changes(formatter, stream, stack, records, show_all)


@changes_app.command("list")
def list_command(
    ctx: typer.Context,
    crawl_id: str | None = typer.Option(None, "--crawl-id", help="Only records of this snapshot."),
    previous_crawl_id: str | None = typer.Option(None, "--previous-crawl-id", help="Only records diffed against this snapshot."),
    show_all: bool = typer.Option(False, "--all", help="Include records hidden by display rules."),
) -> None:
    """List stored change records."""

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        with runtime.open_runtime(get_config(ctx)) as active:
            records = active.stores.changes.list(
                crawl_id=crawl_id,
                previous_crawl_id=previous_crawl_id,
                displayable_only=not show_all,
            )
    except CatalogViewError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SYSTEM_EXIT_CODE) from error

    _render_changes(formatter, stream, stack, records, show_all)


@changes_app.command("reprocess-display")
def reprocess_display_command(
    ctx: typer.Context,
    crawl_id: str | None = typer.Option(None, "--crawl-id", help="Limit reprocessing to one snapshot."),
) -> None:
    """Re-evaluate display rules over stored change records."""

    formatter, stream, stack, _ = prepare_output(ctx)
    try:
        with runtime.open_runtime(get_config(ctx)) as active:
            changed = active.service.reprocess_display(crawl_id=crawl_id)
    except CatalogViewError as error:
        stack.close()
        emit_error(error.message, error.error_code, details=error.details)
        raise typer.Exit(code=SYSTEM_EXIT_CODE) from error

    try:
        formatter.render([{"crawl_id": crawl_id or "*", "changed": changed}], stream=stream, columns=["crawl_id", "changed"])
    finally:
        stack.close()


def _render_changes(
    formatter: OutputFormatter,
    stream: TextIO,
    stack: ExitStack,
    records: Sequence[ChangeRecord],
    show_all: bool,
) -> None:
    rows = _build_change_rows(records, show_all)
    try:
        if rows:
            formatter.render(rows, stream=stream, columns=CHANGE_COLUMNS)
        else:
            typer.echo("No changes detected.", file=stream)
    finally:
        stack.close()


def _build_change_rows(records: Sequence[ChangeRecord], show_all: bool) -> list[Mapping[str, object]]:
    rows: list[Mapping[str, object]] = []
    for record in records:
        if not show_all and not record.is_display:
            continue
        payload = record.to_dict()
        rows.append({column: payload.get(column) for column in CHANGE_COLUMNS})
    return rows
