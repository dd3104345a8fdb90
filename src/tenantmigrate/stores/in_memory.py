"""
In-memory table store implementation.

Useful for testing and local dry runs. Not suitable for production
as all items are lost when the process terminates.
"""

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from tenantmigrate.exceptions import (
    ItemAlreadyExistsError,
    StoreError,
    TableAlreadyExistsError,
    TableNotFoundError,
)
from tenantmigrate.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_TABLE_NAME,
    Tracer,
    create_tracer,
)
from tenantmigrate.stores.interface import (
    KeySchema,
    ScanPage,
    TableMetadata,
    TableStore,
    matches_filters,
)
from tenantmigrate.types import ItemKey, Record


@dataclass
class _Table:
    key_schema: KeySchema
    created_at: datetime
    # Items keyed by primary key values, in insertion order
    items: dict[tuple[Any, ...], Record] = field(default_factory=dict)


class InMemoryTableStore(TableStore):
    """
    In-memory implementation of the table store.

    Stores items in dictionaries keyed by their primary key values. Items
    are deep-copied on the way in and out, so callers can never alias
    stored state. Scans return items in insertion order.

    Thread-safety:
        Uses an asyncio lock around mutations. Safe for concurrent async
        operations within a single process.

    Example:
        >>> store = InMemoryTableStore()
        >>> await store.create_table("expenses", KeySchema("userId", "expenseId"))
        >>> await store.put_item("expenses", {"userId": "u1", "expenseId": "e1"})
        >>> await store.count("expenses")
        1
    """

    def __init__(
        self,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize an empty in-memory table store.

        Args:
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: If True and OpenTelemetry is available, emit traces (default: True).
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._tables: dict[str, _Table] = {}
        self._lock: asyncio.Lock = asyncio.Lock()

    def _get_table(self, table_name: str) -> _Table:
        table = self._tables.get(table_name)
        if table is None:
            raise TableNotFoundError(table_name)
        return table

    @staticmethod
    def _key_tuple(table_name: str, table: _Table, key: ItemKey) -> tuple[Any, ...]:
        names = table.key_schema.attribute_names
        if set(key) != set(names):
            raise StoreError(
                f"Key {sorted(key)} does not match key schema {list(names)} of {table_name}"
            )
        return tuple(key[name] for name in names)

    def _span_attributes(self, table_name: str, operation: str) -> dict[str, Any]:
        return {
            ATTR_TABLE_NAME: table_name,
            ATTR_DB_SYSTEM: "memory",
            ATTR_DB_OPERATION: operation,
        }

    async def scan_page(
        self,
        table_name: str,
        *,
        start_key: ItemKey | None = None,
        limit: int | None = None,
    ) -> ScanPage:
        with self._tracer.span(
            "tenantmigrate.store.scan_page",
            self._span_attributes(table_name, "Scan"),
        ):
            table = self._get_table(table_name)
            keys = list(table.items)
            start = 0
            if start_key is not None:
                start = keys.index(self._key_tuple(table_name, table, start_key)) + 1

            end = len(keys) if limit is None else min(start + limit, len(keys))
            items = [copy.deepcopy(table.items[k]) for k in keys[start:end]]

            last_key = None
            if end < len(keys):
                last_key = table.key_schema.key_for(table.items[keys[end - 1]])
            return ScanPage(items=items, last_key=last_key)

    async def get_item(self, table_name: str, key: ItemKey) -> Record | None:
        with self._tracer.span(
            "tenantmigrate.store.get_item",
            self._span_attributes(table_name, "GetItem"),
        ):
            table = self._get_table(table_name)
            item = table.items.get(self._key_tuple(table_name, table, key))
            return copy.deepcopy(item) if item is not None else None

    async def query(
        self,
        table_name: str,
        partition_value: Any,
        *,
        filters: dict[str, Any] | None = None,
    ) -> list[Record]:
        with self._tracer.span(
            "tenantmigrate.store.query",
            self._span_attributes(table_name, "Query"),
        ):
            table = self._get_table(table_name)
            partition_key = table.key_schema.partition_key
            return [
                copy.deepcopy(item)
                for item in table.items.values()
                if item.get(partition_key) == partition_value and matches_filters(item, filters)
            ]

    async def put_item(
        self,
        table_name: str,
        item: Record,
        *,
        if_not_exists: bool = False,
    ) -> None:
        with self._tracer.span(
            "tenantmigrate.store.put_item",
            self._span_attributes(table_name, "PutItem"),
        ):
            async with self._lock:
                table = self._get_table(table_name)
                try:
                    key = table.key_schema.key_for(item)
                except ValueError as e:
                    raise StoreError(f"Cannot write to {table_name}: {e}") from e
                key_tuple = self._key_tuple(table_name, table, key)
                if if_not_exists and key_tuple in table.items:
                    raise ItemAlreadyExistsError(table_name, key)
                table.items[key_tuple] = copy.deepcopy(item)

    async def delete_item(self, table_name: str, key: ItemKey) -> bool:
        with self._tracer.span(
            "tenantmigrate.store.delete_item",
            self._span_attributes(table_name, "DeleteItem"),
        ):
            async with self._lock:
                table = self._get_table(table_name)
                return table.items.pop(self._key_tuple(table_name, table, key), None) is not None

    async def describe_table(self, table_name: str) -> TableMetadata:
        table = self._get_table(table_name)
        return TableMetadata(
            table_name=table_name,
            key_schema=table.key_schema,
            attribute_definitions=[
                {"AttributeName": name, "AttributeType": "S"}
                for name in table.key_schema.attribute_names
            ],
            item_count=len(table.items),
            creation_time=table.created_at,
        )

    async def create_table(self, table_name: str, key_schema: KeySchema) -> None:
        async with self._lock:
            if table_name in self._tables:
                raise TableAlreadyExistsError(table_name)
            self._tables[table_name] = _Table(key_schema=key_schema, created_at=datetime.now(UTC))

    async def delete_table(self, table_name: str) -> None:
        async with self._lock:
            self._get_table(table_name)
            del self._tables[table_name]

    async def list_tables(self) -> list[str]:
        return list(self._tables)

    async def count(self, table_name: str) -> int:
        return len(self._get_table(table_name).items)

    async def clear(self) -> None:
        """
        Remove all tables and items.

        Useful for resetting state between tests.
        """
        async with self._lock:
            self._tables.clear()


__all__ = ["InMemoryTableStore"]
