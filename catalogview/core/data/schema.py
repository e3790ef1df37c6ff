"""DuckDB table schemas for snapshots, materialized state and change history."""

from __future__ import annotations

from collections.abc import Iterable, Sequence  # noqa: TC003
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from duckdb import DuckDBPyConnection


@dataclass(frozen=True)
class ColumnDef:
    """Represents a DuckDB table column definition."""

    name: str
    data_type: str
    constraints: Sequence[str] = ()

    def render(self) -> str:
        parts = [self.name, self.data_type, *self.constraints]
        return " ".join(parts)


@dataclass(frozen=True)
class TableSchema:
    """Utility wrapper describing a DuckDB table schema."""

    name: str
    columns: Sequence[ColumnDef]
    primary_key: Sequence[str] = ()

    @property
    def column_names(self) -> tuple[str, ...]:
        return tuple(column.name for column in self.columns)

    def create_ddl(self) -> str:
        column_defs: list[str] = [column.render() for column in self.columns]
        if self.primary_key:
            pk_cols = ", ".join(self.primary_key)
            column_defs.append(f"PRIMARY KEY ({pk_cols})")
        columns_sql = ",\n                ".join(column_defs)
        return f"""
            CREATE TABLE IF NOT EXISTS {self.name} (
                {columns_sql}
            )
            """.strip()

    def insert_sql(self, *, replace: bool = False) -> str:
        verb = "INSERT OR REPLACE" if replace else "INSERT"
        placeholders = ", ".join("?" for _ in self.columns)
        return f"{verb} INTO {self.name} ({', '.join(self.column_names)}) VALUES ({placeholders})"

    def ensure(self, conn: DuckDBPyConnection) -> None:
        """Create the table on the provided connection if it does not exist."""

        conn.execute(self.create_ddl())


RAW_SNAPSHOTS_TABLE = TableSchema(
    name="raw_snapshots",
    columns=(
        ColumnDef("snapshot_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("kind", "VARCHAR", ("NOT NULL",)),
        ColumnDef("record_index", "INTEGER", ("NOT NULL",)),
        ColumnDef("payload", "JSON", ("NOT NULL",)),
        ColumnDef("loaded_at", "TIMESTAMP", ("NOT NULL",)),
    ),
    primary_key=("snapshot_id", "kind", "record_index"),
)

MATERIALIZED_ENTITIES_TABLE = TableSchema(
    name="materialized_entities",
    columns=(
        ColumnDef("kind", "VARCHAR", ("NOT NULL",)),
        ColumnDef("identity", "VARCHAR", ("NOT NULL",)),
        ColumnDef("document", "JSON", ("NOT NULL",)),
        ColumnDef("status", "VARCHAR", ("NOT NULL",)),
        ColumnDef("unavailable_at", "TIMESTAMP"),
        ColumnDef("snapshot_id", "VARCHAR"),
        ColumnDef("updated_at", "TIMESTAMP"),
    ),
    primary_key=("kind", "identity"),
)

# Identity columns hold "" for absent values so they can take part in the key.
CHANGE_RECORDS_TABLE = TableSchema(
    name="change_records",
    columns=(
        ColumnDef("crawl_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("previous_crawl_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("entity_type", "VARCHAR", ("NOT NULL",)),
        ColumnDef("change_kind", "VARCHAR", ("NOT NULL",)),
        ColumnDef("model_slug", "VARCHAR", ("NOT NULL",)),
        ColumnDef("provider_slug", "VARCHAR", ("NOT NULL",)),
        ColumnDef("provider_tag_slug", "VARCHAR", ("NOT NULL",)),
        ColumnDef("endpoint_uuid", "VARCHAR", ("NOT NULL",)),
        ColumnDef("path", "VARCHAR", ("NOT NULL",)),
        ColumnDef("path_level_1", "VARCHAR"),
        ColumnDef("path_level_2", "VARCHAR"),
        ColumnDef("operation", "VARCHAR"),
        ColumnDef("before_value", "JSON"),
        ColumnDef("after_value", "JSON"),
        ColumnDef("is_display", "BOOLEAN", ("NOT NULL",)),
    ),
    primary_key=(
        "crawl_id",
        "previous_crawl_id",
        "entity_type",
        "change_kind",
        "model_slug",
        "provider_slug",
        "provider_tag_slug",
        "endpoint_uuid",
        "path",
    ),
)

ROLLING_WINDOWS_TABLE = TableSchema(
    name="rolling_windows",
    columns=(
        ColumnDef("endpoint_uuid", "VARCHAR", ("NOT NULL",)),
        ColumnDef("series", "VARCHAR", ("NOT NULL",)),
        ColumnDef("hourly", "JSON", ("NOT NULL",)),
        ColumnDef("daily", "JSON", ("NOT NULL",)),
        ColumnDef("updated_at", "TIMESTAMP", ("NOT NULL",)),
    ),
    primary_key=("endpoint_uuid", "series"),
)

MATERIALIZATION_RUNS_TABLE = TableSchema(
    name="materialization_runs",
    columns=(
        ColumnDef("run_id", "VARCHAR", ("NOT NULL", "PRIMARY KEY")),
        ColumnDef("snapshot_id", "VARCHAR", ("NOT NULL",)),
        ColumnDef("created_at", "TIMESTAMP", ("NOT NULL",)),
        ColumnDef("counters", "JSON", ("NOT NULL",)),
        ColumnDef("issue_count", "INTEGER", ("NOT NULL",)),
        ColumnDef("rejected_count", "INTEGER", ("NOT NULL",)),
    ),
)


def catalog_tables() -> Sequence[TableSchema]:
    """Return every table the materialization engine reads or writes."""

    return (
        RAW_SNAPSHOTS_TABLE,
        MATERIALIZED_ENTITIES_TABLE,
        CHANGE_RECORDS_TABLE,
        ROLLING_WINDOWS_TABLE,
        MATERIALIZATION_RUNS_TABLE,
    )


def ensure_catalog_tables(conn: DuckDBPyConnection) -> None:
    """Create all catalog tables on the provided DuckDB connection."""

    for table in catalog_tables():
        table.ensure(conn)


def create_catalog_ddl() -> Iterable[str]:
    """Yield CREATE TABLE statements for the catalog schemas."""

    for table in catalog_tables():
        yield table.create_ddl()
