"""Wiring of DuckDB stores and the materialization service for CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from catalogview.core.config import CatalogViewConfig
from catalogview.core.data.storage import (
    CatalogStores,
    CatalogViewDuckDBFactory,
    DuckDBFactoryConfig,
    open_stores,
)
from catalogview.core.services.materialize import MaterializationService


@dataclass(slots=True)
class CatalogRuntime:
    """Service and stores sharing one DuckDB connection."""

    config: CatalogViewConfig
    stores: CatalogStores
    service: MaterializationService


@contextmanager
def open_runtime(config: CatalogViewConfig) -> Iterator[CatalogRuntime]:
    """Factory hook yielding a configured runtime; the connection closes on exit."""

    factory = CatalogViewDuckDBFactory(DuckDBFactoryConfig.from_storage(config.storage))
    with factory.connection() as conn:
        stores = open_stores(conn, chunk_size=config.storage.write_chunk_size)
        service = MaterializationService(
            stores.source,
            stores.state,
            stores.changes,
            stores.windows,
            config=config.materialize,
            run_writer=stores.runs,
        )
        yield CatalogRuntime(config=config, stores=stores, service=service)


__all__ = ["CatalogRuntime", "open_runtime"]
