"""Storage backends for catalog state and history."""

from catalogview.core.data.storage.duckdb_factory import CatalogViewDuckDBFactory, DuckDBFactoryConfig
from catalogview.core.data.storage.stores import (
    CatalogStores,
    DuckDBChangeRecordStore,
    DuckDBMaterializedStateStore,
    DuckDBRawSnapshotSource,
    DuckDBRollingWindowStore,
    DuckDBRunWriter,
    InMemoryChangeRecordStore,
    InMemoryMaterializedStateStore,
    InMemoryRawSnapshotSource,
    InMemoryRollingWindowStore,
    open_stores,
)

__all__ = [
    "CatalogStores",
    "CatalogViewDuckDBFactory",
    "DuckDBChangeRecordStore",
    "DuckDBFactoryConfig",
    "DuckDBMaterializedStateStore",
    "DuckDBRawSnapshotSource",
    "DuckDBRollingWindowStore",
    "DuckDBRunWriter",
    "InMemoryChangeRecordStore",
    "InMemoryMaterializedStateStore",
    "InMemoryRawSnapshotSource",
    "InMemoryRollingWindowStore",
    "open_stores",
]
