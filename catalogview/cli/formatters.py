"""Output formatters for catalog CLI commands."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TextIO

from rich.box import SIMPLE
from rich.console import Console
from rich.table import Table

Row = Mapping[str, object]


class OutputFormatter(ABC):
    """Renders command rows restricted to a fixed column list."""

    @abstractmethod
    def render(self, rows: Sequence[Row], *, stream: TextIO, columns: Sequence[str]) -> None:
        pass


@dataclass(slots=True)
class TableFormatter(OutputFormatter):
    """Rich table; nested documents and change values are shown as compact JSON."""

    no_color: bool = False

    def render(self, rows: Sequence[Row], *, stream: TextIO, columns: Sequence[str]) -> None:
        console = Console(file=stream, color_system=None if self.no_color else "auto", no_color=self.no_color, width=200)
        table = Table(box=SIMPLE, show_lines=False)
        header_style = "" if self.no_color else "bold"
        for column in columns:
            table.add_column(column, header_style=header_style, overflow="fold")
        for row in rows:
            table.add_row(*(_cell(row.get(column)) for column in columns))
        console.print(table)


def _cell(value: object) -> str:
    if value is None:
        return "-"
    if isinstance(value, Mapping | list):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


class JSONLFormatter(OutputFormatter):
    """One JSON object per row."""

    def render(self, rows: Sequence[Row], *, stream: TextIO, columns: Sequence[str]) -> None:
        for row in rows:
            json.dump({column: row.get(column) for column in columns}, stream, ensure_ascii=False, default=str)
            stream.write("\n")
        stream.flush()


def create_formatter(name: str, *, no_color: bool = False) -> OutputFormatter:
    """Instantiate a formatter by name."""

    normalized = name.strip().lower()
    if normalized == "table":
        return TableFormatter(no_color=no_color)
    if normalized == "jsonl":
        return JSONLFormatter()
    msg = f"Unsupported format '{name}'. Available formats: table, jsonl."
    raise ValueError(msg)


__all__ = ["JSONLFormatter", "OutputFormatter", "TableFormatter", "create_formatter"]
