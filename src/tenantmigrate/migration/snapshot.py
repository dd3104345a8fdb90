"""
Snapshot stage: point-in-time JSON captures of whole tables.

A snapshot run writes one ``<table>.json`` file per table plus a
``_BACKUP_SUMMARY.json`` file into a directory. Snapshot files are written
once and never replaced. A table that cannot be read is reported as failed
without stopping the remaining tables.

SnapshotTableStore exposes a snapshot directory as a read-only table store,
so the migration driver can consume a snapshot instead of a live scan.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from tenantmigrate.exceptions import StoreError, TableNotFoundError
from tenantmigrate.migration.exceptions import SnapshotError
from tenantmigrate.migration.models import SnapshotResult, SnapshotSummary, TableSnapshot
from tenantmigrate.migration.reports import write_new_json
from tenantmigrate.observability import (
    ATTR_PAGE_SIZE,
    ATTR_RECORD_COUNT,
    ATTR_TABLE_NAME,
    Tracer,
    create_tracer,
)
from tenantmigrate.serialization import json_loads
from tenantmigrate.stores.interface import (
    DEFAULT_PAGE_SIZE,
    KeySchema,
    ScanPage,
    TableMetadata,
    TableStore,
    matches_filters,
)
from tenantmigrate.types import ItemKey, Record

logger = logging.getLogger(__name__)

SUMMARY_FILE_NAME = "_BACKUP_SUMMARY.json"


def snapshot_path(directory: str | Path, table_name: str) -> Path:
    """Path of the snapshot file of a table."""
    return Path(directory) / f"{table_name}.json"


def load_snapshot(path: str | Path) -> TableSnapshot:
    """
    Read and validate a snapshot file.

    Args:
        path: Snapshot file written by SnapshotStore

    Returns:
        The captured table

    Raises:
        SnapshotError: If the file is missing, not JSON, or not a snapshot
    """
    path = Path(path)
    try:
        data = json_loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise SnapshotError(f"Snapshot file not found: {path}", path=str(path)) from e
    except ValueError as e:
        raise SnapshotError(f"Snapshot file is not valid JSON: {path}", path=str(path)) from e

    if not isinstance(data, dict):
        raise SnapshotError(f"Snapshot file is not an object: {path}", path=str(path))

    table_name = data.get("tableName")
    items = data.get("items")
    if not isinstance(table_name, str) or not table_name:
        raise SnapshotError(f"Snapshot has no tableName: {path}", path=str(path))
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise SnapshotError(
            "Snapshot items must be a list of objects",
            table_name=table_name,
            path=str(path),
        )

    record_count = data.get("recordCount")
    if record_count is not None and record_count != len(items):
        raise SnapshotError(
            f"Snapshot recordCount {record_count} does not match {len(items)} items",
            table_name=table_name,
            path=str(path),
        )

    try:
        backup_timestamp = datetime.fromisoformat(data["backupTimestamp"])
        metadata = (
            TableMetadata.from_dict(table_name, data["metadata"])
            if data.get("metadata")
            else None
        )
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(
            f"Snapshot header is malformed: {e}",
            table_name=table_name,
            path=str(path),
        ) from e

    return TableSnapshot(
        table_name=table_name,
        backup_timestamp=backup_timestamp,
        metadata=metadata,
        items=items,
    )


class SnapshotStore:
    """
    Captures tables of a store into a snapshot directory.

    Example:
        >>> snapshots = SnapshotStore(store, "backups/pre-migration")
        >>> summary = await snapshots.snapshot_all(config.snapshot_tables)
        >>> summary.failed_backups
        0
    """

    def __init__(
        self,
        store: TableStore,
        directory: str | Path,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._store = store
        self._directory = Path(directory)
        self._page_size = page_size
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def directory(self) -> Path:
        return self._directory

    async def snapshot(self, table_name: str) -> TableSnapshot:
        """
        Read the full contents and metadata of one table.

        Pagination is followed internally; the source is not modified.

        Raises:
            TableNotFoundError: If the table does not exist
            StoreError: If the table cannot be read
        """
        with self._tracer.span(
            "tenantmigrate.snapshot.table",
            {ATTR_TABLE_NAME: table_name, ATTR_PAGE_SIZE: self._page_size},
        ):
            backup_timestamp = datetime.now(UTC)
            items = await self._store.scan_all(table_name, page_size=self._page_size)
            metadata = await self._store.describe_table(table_name)
            logger.debug("Read %d items from %s", len(items), table_name)
            return TableSnapshot(
                table_name=table_name,
                backup_timestamp=backup_timestamp,
                metadata=metadata,
                items=items,
            )

    async def snapshot_all(self, tables: list[str] | tuple[str, ...]) -> SnapshotSummary:
        """
        Capture every table into the directory and write the summary file.

        Args:
            tables: Table names, captured in order

        Returns:
            Summary with one result per table
        """
        backup_timestamp = datetime.now(UTC)
        self._directory.mkdir(parents=True, exist_ok=True)
        logger.info("Snapshotting %d tables into %s", len(tables), self._directory)

        results: list[SnapshotResult] = []
        for table_name in tables:
            results.append(await self._snapshot_to_file(table_name))

        summary = SnapshotSummary(
            backup_timestamp=backup_timestamp,
            directory=str(self._directory),
            results=tuple(results),
        )
        try:
            write_new_json(self._directory / SUMMARY_FILE_NAME, summary.to_dict())
        except FileExistsError as e:
            raise SnapshotError(
                f"Snapshot summary already exists in {self._directory}",
                path=str(self._directory / SUMMARY_FILE_NAME),
            ) from e

        logger.info(
            "Snapshot complete: %d succeeded, %d failed, %d records",
            summary.successful_backups,
            summary.failed_backups,
            summary.total_records,
        )
        return summary

    async def _snapshot_to_file(self, table_name: str) -> SnapshotResult:
        path = snapshot_path(self._directory, table_name)
        try:
            snapshot = await self.snapshot(table_name)
            write_new_json(path, snapshot.to_dict())
        except FileExistsError:
            logger.error("Snapshot file already exists, not replacing: %s", path)
            return SnapshotResult(
                table_name=table_name,
                success=False,
                error=f"Snapshot file already exists: {path}",
            )
        except Exception as e:
            logger.error("Failed to snapshot %s: %s", table_name, e)
            return SnapshotResult(table_name=table_name, success=False, error=str(e))

        logger.info("Backed up %s: %d items", table_name, snapshot.record_count)
        return SnapshotResult(
            table_name=table_name,
            success=True,
            record_count=snapshot.record_count,
            file=str(path),
        )


class SnapshotTableStore(TableStore):
    """
    Read-only table store over a snapshot directory.

    Each ``<table>.json`` file in the directory is one table. Files are
    loaded on first use. Scans page by key when the snapshot carries a
    key schema, otherwise the whole table is returned as a single page.

    Example:
        >>> source = SnapshotTableStore("backups/pre-migration")
        >>> items = await source.scan_all("construction-expenses-multi-table-expenses")
    """

    def __init__(
        self,
        directory: str | Path,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        self._directory = Path(directory)
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._snapshots: dict[str, TableSnapshot] = {}

    def _load(self, table_name: str) -> TableSnapshot:
        snapshot = self._snapshots.get(table_name)
        if snapshot is None:
            path = snapshot_path(self._directory, table_name)
            if not path.is_file():
                raise TableNotFoundError(table_name)
            snapshot = load_snapshot(path)
            self._snapshots[table_name] = snapshot
        return snapshot

    def _key_schema(self, table_name: str) -> KeySchema | None:
        metadata = self._load(table_name).metadata
        return metadata.key_schema if metadata is not None else None

    def _read_only(self, table_name: str) -> StoreError:
        return StoreError(f"Snapshot tables are read-only: {table_name}")

    async def scan_page(
        self,
        table_name: str,
        *,
        start_key: ItemKey | None = None,
        limit: int | None = None,
    ) -> ScanPage:
        snapshot = self._load(table_name)
        with self._tracer.span(
            "tenantmigrate.snapshot.scan_page",
            {ATTR_TABLE_NAME: table_name, ATTR_RECORD_COUNT: snapshot.record_count},
        ):
            schema = self._key_schema(table_name)
            if schema is None:
                return ScanPage(items=[dict(item) for item in snapshot.items])

            start = 0
            if start_key is not None:
                for index, item in enumerate(snapshot.items):
                    if matches_filters(item, start_key):
                        start = index + 1
                        break
            end = len(snapshot.items) if limit is None else start + limit
            items = [dict(item) for item in snapshot.items[start:end]]
            last_key = schema.key_for(items[-1]) if items and end < len(snapshot.items) else None
            return ScanPage(items=items, last_key=last_key)

    async def get_item(self, table_name: str, key: ItemKey) -> Record | None:
        for item in self._load(table_name).items:
            if matches_filters(item, key):
                return dict(item)
        return None

    async def query(
        self,
        table_name: str,
        partition_value: Any,
        *,
        filters: dict[str, Any] | None = None,
    ) -> list[Record]:
        schema = self._key_schema(table_name)
        if schema is None:
            raise StoreError(f"Snapshot of {table_name} has no key schema to query by")
        return [
            dict(item)
            for item in self._load(table_name).items
            if item.get(schema.partition_key) == partition_value
            and matches_filters(item, filters)
        ]

    async def put_item(
        self,
        table_name: str,
        item: Record,
        *,
        if_not_exists: bool = False,
    ) -> None:
        raise self._read_only(table_name)

    async def delete_item(self, table_name: str, key: ItemKey) -> bool:
        raise self._read_only(table_name)

    async def describe_table(self, table_name: str) -> TableMetadata:
        snapshot = self._load(table_name)
        if snapshot.metadata is None:
            raise StoreError(f"Snapshot of {table_name} has no metadata")
        return snapshot.metadata

    async def create_table(self, table_name: str, key_schema: KeySchema) -> None:
        raise self._read_only(table_name)

    async def delete_table(self, table_name: str) -> None:
        raise self._read_only(table_name)

    async def list_tables(self) -> list[str]:
        return sorted(
            path.stem
            for path in self._directory.glob("*.json")
            if path.name != SUMMARY_FILE_NAME
        )

    async def count(self, table_name: str) -> int:
        return self._load(table_name).record_count


__all__ = [
    "SUMMARY_FILE_NAME",
    "SnapshotStore",
    "SnapshotTableStore",
    "load_snapshot",
    "snapshot_path",
]
