"""Main entry point for the catalogview command line interface."""

from __future__ import annotations

from pathlib import Path

import typer

from catalogview.core.config import ConfigManager
from catalogview.core.exceptions import ConfigError
from catalogview.core.logging import configure_logging

from .changes import register as register_changes_commands
from .constants import VALIDATION_EXIT_CODE
from .formatters import create_formatter
from .materialize import register as register_materialize_command
from .snapshot import register as register_snapshot_commands
from .utils import emit_error


def create_app() -> typer.Typer:
    """Create a Typer application instance for catalogview."""

    app = typer.Typer(add_completion=False, help="catalogview command line interface")

    @app.callback()
    def main(
        ctx: typer.Context,
        format: str = typer.Option(
            "table",
            "--format",
            "-f",
            help="Output format (table or jsonl).",
            show_default=True,
        ),
        output: Path | None = typer.Option(
            None,
            "--output",
            "-o",
            help="Write output to a file instead of stdout.",
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            help="Logging level. Defaults to the configured level.",
        ),
        no_color: bool = typer.Option(
            False,
            "--no-color",
            help="Disable colorized output for table format.",
        ),
        config_path: Path | None = typer.Option(
            None,
            "--config",
            help="TOML configuration file. Defaults to ~/.catalogview/config.toml.",
        ),
        database: str | None = typer.Option(
            None,
            "--database",
            help="DuckDB database path, overriding the configured one.",
        ),
    ) -> None:
        ctx.ensure_object(dict)
        normalized_format = format.strip().lower()
        try:
            # Validate formatter eagerly for immediate feedback on invalid options
            create_formatter(normalized_format, no_color=no_color)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--format") from exc

        try:
            manager = ConfigManager(config_path)
            if database:
                manager.update_config(storage={"database": database})
        except ConfigError as error:
            emit_error(error.message, error.error_code, details=error.details)
            raise typer.Exit(code=VALIDATION_EXIT_CODE) from error
        config = manager.get_config()

        level = (log_level or config.logging.level).upper()
        ctx.obj.update(
            {
                "format": normalized_format,
                "output_path": output,
                "log_level": level,
                "no_color": no_color,
                "config": config,
            }
        )
        configure_logging(level, file_output=bool(config.logging.file), file_path=config.logging.file)

    register_materialize_command(app)
    register_changes_commands(app)
    register_snapshot_commands(app)
    return app


app = create_app()
