"""Utility helpers for creating DuckDB connections in tests and local runs."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import duckdb

from catalogview.core.data.schema import ensure_catalog_tables

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import Path

    from duckdb import DuckDBPyConnection

    from catalogview.core.config.settings import StorageConfig


def _literal(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return str(value)
    escaped = str(value).replace("'", "''")
    return f"'{escaped}'"


@dataclass(frozen=True)
class DuckDBFactoryConfig:
    """Configuration applied to DuckDB connections produced by the factory."""

    database: str | Path = ":memory:"
    read_only: bool = False
    pragmas: Mapping[str, object] = field(default_factory=lambda: {"threads": 1})
    ensure_schema: bool = True

    @classmethod
    def from_storage(cls, storage: StorageConfig) -> DuckDBFactoryConfig:
        return cls(database=storage.database, pragmas={"threads": storage.threads})


class CatalogViewDuckDBFactory:
    """Factory that yields configured DuckDB connections with catalog tables created."""

    def __init__(self, config: DuckDBFactoryConfig | None = None) -> None:
        self._config = config or DuckDBFactoryConfig()

    def create_connection(self) -> DuckDBPyConnection:
        """Create and return a configured DuckDB connection."""

        conn = duckdb.connect(database=str(self._config.database), read_only=self._config.read_only)
        self._apply_pragmas(conn)
        if self._config.ensure_schema and not self._config.read_only:
            ensure_catalog_tables(conn)
        return conn

    @contextmanager
    def connection(self) -> Iterator[DuckDBPyConnection]:
        """Context manager that yields a configured DuckDB connection."""

        conn = self.create_connection()
        try:
            yield conn
        finally:
            conn.close()

    def _apply_pragmas(self, conn: DuckDBPyConnection) -> None:
        for setting, value in self._config.pragmas.items():
            conn.execute(f"SET {setting}={_literal(value)}")


__all__ = ["CatalogViewDuckDBFactory", "DuckDBFactoryConfig"]
