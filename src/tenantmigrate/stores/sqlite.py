"""
SQLite table store implementation.

Lightweight embedded table store using SQLite with async support via
aiosqlite. Suitable for local copies of production data, rehearsal runs
and testing.

SQLite-specific adaptations:
- All tables share one ``tm_items`` table, keyed by (table_name, pk, sk)
- Key values are stored as TEXT; tables without a sort key store '' as sk
- Items are stored as JSON text; Decimals become JSON numbers with every digit kept
- Continuation keys compare (pk, sk) row values, so scans are ordered by key
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import aiosqlite

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
from tenantmigrate.serialization import json_dumps, json_loads
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

SQLITE_SCHEMA = """
CREATE TABLE IF NOT EXISTS tm_tables (
    table_name TEXT PRIMARY KEY,
    partition_key TEXT NOT NULL,
    sort_key TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tm_items (
    table_name TEXT NOT NULL REFERENCES tm_tables(table_name) ON DELETE CASCADE,
    pk TEXT NOT NULL,
    sk TEXT NOT NULL DEFAULT '',
    body TEXT NOT NULL,
    PRIMARY KEY (table_name, pk, sk)
);
"""


class SQLiteTableStore(TableStore):
    """
    SQLite implementation of the table store.

    Example:
        >>> async with SQLiteTableStore("rehearsal.db") as store:
        ...     await store.initialize()
        ...     await store.create_table("expenses", KeySchema("userId", "expenseId"))
        ...     await store.put_item("expenses", {"userId": "u1", "expenseId": "e1"})

    Note:
        Key attribute values are compared as text, so a numeric key and
        its string form address the same item.
    """

    def __init__(
        self,
        database: str,
        *,
        busy_timeout: int = 5000,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Args:
            database: Database file path, or ':memory:'
            busy_timeout: Milliseconds to wait on a locked database
            tracer: Tracer to use instead of building one
            enable_tracing: Passed to create_tracer when no tracer is given
        """
        self._database = database
        self._busy_timeout = busy_timeout
        self._connection: aiosqlite.Connection | None = None
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        # Key schemas are immutable once a table exists
        self._schemas: dict[str, KeySchema] = {}

    async def __aenter__(self) -> SQLiteTableStore:
        """Open the database connection and create the schema."""
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        await self.close()

    async def _connect(self) -> None:
        if self._connection is not None:
            return

        self._connection = await aiosqlite.connect(self._database)
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._connection.execute(f"PRAGMA busy_timeout = {self._busy_timeout}")
        self._connection.row_factory = aiosqlite.Row

        logger.debug("Connected to SQLite database: %s", self._database)

    async def close(self) -> None:
        """
        Close the database connection.

        Safe to call multiple times.
        """
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.debug("Closed SQLite database connection: %s", self._database)

    async def initialize(self) -> None:
        """
        Connect and create the store schema.

        This method is idempotent - safe to call multiple times.
        """
        await self._connect()
        conn = self._ensure_connected()
        await conn.executescript(SQLITE_SCHEMA)
        await conn.commit()

    def _ensure_connected(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError(
                "Not connected to database. Use 'async with store:' or call 'initialize()' first."
            )
        return self._connection

    @property
    def database(self) -> str:
        """Path of the SQLite database."""
        return self._database

    def _span_attributes(self, table_name: str, operation: str) -> dict[str, Any]:
        return {
            ATTR_TABLE_NAME: table_name,
            ATTR_DB_SYSTEM: "sqlite",
            ATTR_DB_OPERATION: operation,
        }

    async def _key_schema(self, table_name: str) -> KeySchema:
        schema = self._schemas.get(table_name)
        if schema is not None:
            return schema

        conn = self._ensure_connected()
        cursor = await conn.execute(
            "SELECT partition_key, sort_key FROM tm_tables WHERE table_name = ?",
            (table_name,),
        )
        row = await cursor.fetchone()
        if row is None:
            raise TableNotFoundError(table_name)
        schema = KeySchema(row["partition_key"], row["sort_key"])
        self._schemas[table_name] = schema
        return schema

    @staticmethod
    def _key_columns(table_name: str, schema: KeySchema, key: ItemKey) -> tuple[str, str]:
        if set(key) != set(schema.attribute_names):
            raise StoreError(
                f"Key {sorted(key)} does not match key schema "
                f"{list(schema.attribute_names)} of {table_name}"
            )
        pk = str(key[schema.partition_key])
        sk = str(key[schema.sort_key]) if schema.sort_key is not None else ""
        return pk, sk

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
            schema = await self._key_schema(table_name)
            conn = self._ensure_connected()
            page_size = limit or DEFAULT_PAGE_SIZE

            if start_key is None:
                cursor = await conn.execute(
                    "SELECT body FROM tm_items WHERE table_name = ? "
                    "ORDER BY pk, sk LIMIT ?",
                    (table_name, page_size + 1),
                )
            else:
                pk, sk = self._key_columns(table_name, schema, start_key)
                cursor = await conn.execute(
                    "SELECT body FROM tm_items WHERE table_name = ? AND (pk, sk) > (?, ?) "
                    "ORDER BY pk, sk LIMIT ?",
                    (table_name, pk, sk, page_size + 1),
                )
            rows = await cursor.fetchall()

            items = [json_loads(row["body"]) for row in rows[:page_size]]
            last_key = None
            if len(rows) > page_size:
                last_key = schema.key_for(items[-1])
            return ScanPage(items=items, last_key=last_key)

    async def get_item(self, table_name: str, key: ItemKey) -> Record | None:
        with self._tracer.span(
            "tenantmigrate.store.get_item",
            self._span_attributes(table_name, "GetItem"),
        ):
            schema = await self._key_schema(table_name)
            pk, sk = self._key_columns(table_name, schema, key)
            conn = self._ensure_connected()
            cursor = await conn.execute(
                "SELECT body FROM tm_items WHERE table_name = ? AND pk = ? AND sk = ?",
                (table_name, pk, sk),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            item: Record = json_loads(row["body"])
            return item

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
            await self._key_schema(table_name)
            conn = self._ensure_connected()
            cursor = await conn.execute(
                "SELECT body FROM tm_items WHERE table_name = ? AND pk = ? ORDER BY sk",
                (table_name, str(partition_value)),
            )
            rows = await cursor.fetchall()
            items = [json_loads(row["body"]) for row in rows]
            return [item for item in items if matches_filters(item, filters)]

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
            schema = await self._key_schema(table_name)
            try:
                key = schema.key_for(item)
            except ValueError as e:
                raise StoreError(f"Cannot write to {table_name}: {e}") from e
            pk, sk = self._key_columns(table_name, schema, key)
            conn = self._ensure_connected()

            if if_not_exists:
                try:
                    await conn.execute(
                        "INSERT INTO tm_items (table_name, pk, sk, body) VALUES (?, ?, ?, ?)",
                        (table_name, pk, sk, json_dumps(item)),
                    )
                except aiosqlite.IntegrityError as e:
                    raise ItemAlreadyExistsError(table_name, key) from e
            else:
                await conn.execute(
                    "INSERT INTO tm_items (table_name, pk, sk, body) VALUES (?, ?, ?, ?) "
                    "ON CONFLICT (table_name, pk, sk) DO UPDATE SET body = excluded.body",
                    (table_name, pk, sk, json_dumps(item)),
                )
            await conn.commit()

    async def delete_item(self, table_name: str, key: ItemKey) -> bool:
        with self._tracer.span(
            "tenantmigrate.store.delete_item",
            self._span_attributes(table_name, "DeleteItem"),
        ):
            schema = await self._key_schema(table_name)
            pk, sk = self._key_columns(table_name, schema, key)
            conn = self._ensure_connected()
            cursor = await conn.execute(
                "DELETE FROM tm_items WHERE table_name = ? AND pk = ? AND sk = ?",
                (table_name, pk, sk),
            )
            await conn.commit()
            return cursor.rowcount > 0

    async def describe_table(self, table_name: str) -> TableMetadata:
        schema = await self._key_schema(table_name)
        conn = self._ensure_connected()
        cursor = await conn.execute(
            "SELECT created_at, "
            "(SELECT COUNT(*) FROM tm_items WHERE table_name = ?) AS item_count "
            "FROM tm_tables WHERE table_name = ?",
            (table_name, table_name),
        )
        row = await cursor.fetchone()
        if row is None:
            raise TableNotFoundError(table_name)
        return TableMetadata(
            table_name=table_name,
            key_schema=schema,
            attribute_definitions=[
                {"AttributeName": name, "AttributeType": "S"} for name in schema.attribute_names
            ],
            item_count=row["item_count"],
            creation_time=datetime.fromisoformat(row["created_at"]),
        )

    async def create_table(self, table_name: str, key_schema: KeySchema) -> None:
        conn = self._ensure_connected()
        try:
            await conn.execute(
                "INSERT INTO tm_tables (table_name, partition_key, sort_key, created_at) "
                "VALUES (?, ?, ?, ?)",
                (
                    table_name,
                    key_schema.partition_key,
                    key_schema.sort_key,
                    datetime.now(UTC).isoformat(),
                ),
            )
        except aiosqlite.IntegrityError as e:
            raise TableAlreadyExistsError(table_name) from e
        await conn.commit()
        self._schemas[table_name] = key_schema
        logger.debug("Created table %s with key %s", table_name, key_schema.attribute_names)

    async def delete_table(self, table_name: str) -> None:
        await self._key_schema(table_name)
        conn = self._ensure_connected()
        await conn.execute("DELETE FROM tm_tables WHERE table_name = ?", (table_name,))
        await conn.commit()
        self._schemas.pop(table_name, None)

    async def list_tables(self) -> list[str]:
        conn = self._ensure_connected()
        cursor = await conn.execute("SELECT table_name FROM tm_tables ORDER BY table_name")
        rows = await cursor.fetchall()
        return [row["table_name"] for row in rows]

    async def count(self, table_name: str) -> int:
        await self._key_schema(table_name)
        conn = self._ensure_connected()
        cursor = await conn.execute(
            "SELECT COUNT(*) AS n FROM tm_items WHERE table_name = ?",
            (table_name,),
        )
        row = await cursor.fetchone()
        return int(row["n"]) if row is not None else 0


__all__ = ["SQLITE_SCHEMA", "SQLiteTableStore"]
