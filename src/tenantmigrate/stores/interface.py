"""
Table store interface and core data structures.

A table store is a key-value store of named tables, each holding flat
records identified by a partition key and an optional sort key. It is the
upstream collaborator of every migration stage.

This module provides:
- KeySchema: Primary key layout of a table
- ScanPage: One page of a paginated scan with its continuation key
- TableMetadata: Schema and statistics returned by describe_table
- TableStore: Abstract base class for table store implementations
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tenantmigrate.types import ItemKey, Record

DEFAULT_PAGE_SIZE = 100


@dataclass(frozen=True)
class KeySchema:
    """
    Primary key layout of a table.

    Attributes:
        partition_key: Name of the partition (hash) key attribute
        sort_key: Name of the sort (range) key attribute, if any

    Example:
        >>> schema = KeySchema("companyId", "expenseId")
        >>> schema.key_for({"companyId": "c1", "expenseId": "e1", "amount": 5})
        {'companyId': 'c1', 'expenseId': 'e1'}
    """

    partition_key: str
    sort_key: str | None = None

    @property
    def attribute_names(self) -> tuple[str, ...]:
        """Names of the key attributes in key order."""
        if self.sort_key is None:
            return (self.partition_key,)
        return (self.partition_key, self.sort_key)

    def key_for(self, item: Record) -> ItemKey:
        """
        Extract the primary key of an item.

        Raises:
            ValueError: If a key attribute is missing or empty
        """
        key: ItemKey = {}
        for name in self.attribute_names:
            value = item.get(name)
            if value is None or value == "":
                raise ValueError(f"Item is missing key attribute {name!r}")
            key[name] = value
        return key

    def to_dict(self) -> list[dict[str, str]]:
        """Convert to the key schema list used in table metadata."""
        elements = [{"AttributeName": self.partition_key, "KeyType": "HASH"}]
        if self.sort_key is not None:
            elements.append({"AttributeName": self.sort_key, "KeyType": "RANGE"})
        return elements

    @classmethod
    def from_dict(cls, elements: list[dict[str, str]]) -> KeySchema:
        """Create from a key schema list (HASH and optional RANGE element)."""
        partition_key = None
        sort_key = None
        for element in elements:
            if element["KeyType"] == "HASH":
                partition_key = element["AttributeName"]
            elif element["KeyType"] == "RANGE":
                sort_key = element["AttributeName"]
        if partition_key is None:
            raise ValueError("Key schema has no HASH element")
        return cls(partition_key, sort_key)


@dataclass(frozen=True)
class ScanPage:
    """
    One page of a paginated table scan.

    Attributes:
        items: Records on this page
        last_key: Key to pass as start_key for the next page, None on the last page
    """

    items: list[Record]
    last_key: ItemKey | None = None

    @property
    def is_last(self) -> bool:
        """True when there are no further pages."""
        return self.last_key is None


@dataclass(frozen=True)
class TableMetadata:
    """
    Schema and statistics of a table.

    Attributes:
        table_name: Name of the table
        key_schema: Primary key layout
        attribute_definitions: Key attribute names and types
        secondary_indexes: Secondary index descriptions (store specific)
        billing_mode: Capacity mode, if the store has one
        item_count: Approximate number of stored items
        status: Table status (e.g., 'ACTIVE')
        creation_time: When the table was created
    """

    table_name: str
    key_schema: KeySchema
    attribute_definitions: list[dict[str, str]] = field(default_factory=list)
    secondary_indexes: list[dict[str, Any]] = field(default_factory=list)
    billing_mode: str | None = None
    item_count: int = 0
    status: str = "ACTIVE"
    creation_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert to the metadata block written into snapshot files.

        Returns:
            Dictionary with camelCase keys suitable for JSON serialization.
        """
        return {
            "keySchema": self.key_schema.to_dict(),
            "attributeDefinitions": list(self.attribute_definitions),
            "secondaryIndexes": list(self.secondary_indexes),
            "billingMode": self.billing_mode,
            "itemCount": self.item_count,
            "status": self.status,
            "creationTime": self.creation_time.isoformat() if self.creation_time else None,
        }

    @classmethod
    def from_dict(cls, table_name: str, data: dict[str, Any]) -> TableMetadata:
        """Create from a snapshot metadata block."""
        creation_time = data.get("creationTime")
        return cls(
            table_name=table_name,
            key_schema=KeySchema.from_dict(data["keySchema"]),
            attribute_definitions=list(data.get("attributeDefinitions") or []),
            secondary_indexes=list(data.get("secondaryIndexes") or []),
            billing_mode=data.get("billingMode"),
            item_count=int(data.get("itemCount") or 0),
            status=data.get("status") or "ACTIVE",
            creation_time=datetime.fromisoformat(creation_time) if creation_time else None,
        )


class TableStore(ABC):
    """
    Abstract base class for table stores.

    Implementations must follow continuation keys faithfully: a full scan
    made of consecutive scan_page calls returns every item exactly once.

    Implementations:
    - InMemoryTableStore: dictionaries, for tests and local runs
    - SQLiteTableStore: embedded persistence via aiosqlite
    - DynamoDBTableStore: AWS DynamoDB via boto3
    - SnapshotTableStore: read-only view of a snapshot directory
    """

    @abstractmethod
    async def scan_page(
        self,
        table_name: str,
        *,
        start_key: ItemKey | None = None,
        limit: int | None = None,
    ) -> ScanPage:
        """
        Read one page of a table.

        Args:
            table_name: Table to read
            start_key: Continuation key returned by the previous page
            limit: Maximum number of items on the page

        Returns:
            ScanPage with the items and the continuation key

        Raises:
            TableNotFoundError: If the table does not exist
        """
        pass

    async def scan(
        self,
        table_name: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> AsyncIterator[Record]:
        """
        Iterate over every item of a table, following continuation keys.

        Args:
            table_name: Table to read
            page_size: Items requested per page

        Yields:
            Each stored record exactly once
        """
        start_key: ItemKey | None = None
        while True:
            page = await self.scan_page(table_name, start_key=start_key, limit=page_size)
            for item in page.items:
                yield item
            if page.is_last:
                break
            start_key = page.last_key

    async def scan_all(
        self,
        table_name: str,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> list[Record]:
        """Read the full contents of a table into a list."""
        return [item async for item in self.scan(table_name, page_size=page_size)]

    @abstractmethod
    async def get_item(self, table_name: str, key: ItemKey) -> Record | None:
        """
        Get an item by its full primary key.

        Returns:
            The stored record, or None if no item has this key

        Raises:
            TableNotFoundError: If the table does not exist
            StoreError: If the key does not match the table's key schema
        """
        pass

    @abstractmethod
    async def query(
        self,
        table_name: str,
        partition_value: Any,
        *,
        filters: dict[str, Any] | None = None,
    ) -> list[Record]:
        """
        Get all items under one partition key value.

        Args:
            table_name: Table to read
            partition_value: Value of the table's partition key
            filters: Optional attribute equality filters applied to the results

        Returns:
            Matching records
        """
        pass

    @abstractmethod
    async def put_item(
        self,
        table_name: str,
        item: Record,
        *,
        if_not_exists: bool = False,
    ) -> None:
        """
        Write an item.

        Args:
            table_name: Table to write
            item: Record to store (must contain the key attributes)
            if_not_exists: Refuse to replace an item with the same key

        Raises:
            ItemAlreadyExistsError: If if_not_exists is set and the key is taken
            TableNotFoundError: If the table does not exist
        """
        pass

    @abstractmethod
    async def delete_item(self, table_name: str, key: ItemKey) -> bool:
        """
        Delete an item by its primary key.

        Returns:
            True if an item was deleted, False if none existed
        """
        pass

    @abstractmethod
    async def describe_table(self, table_name: str) -> TableMetadata:
        """
        Get the schema and statistics of a table.

        Raises:
            TableNotFoundError: If the table does not exist
        """
        pass

    @abstractmethod
    async def create_table(self, table_name: str, key_schema: KeySchema) -> None:
        """
        Create an empty table.

        Raises:
            TableAlreadyExistsError: If a table with this name exists
        """
        pass

    @abstractmethod
    async def delete_table(self, table_name: str) -> None:
        """
        Delete a table and all of its items.

        Raises:
            TableNotFoundError: If the table does not exist
        """
        pass

    @abstractmethod
    async def list_tables(self) -> list[str]:
        """Get the names of all tables in the store."""
        pass

    async def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists."""
        return table_name in await self.list_tables()

    async def count(self, table_name: str) -> int:
        """Count the items of a table with a full scan."""
        total = 0
        async for _ in self.scan(table_name):
            total += 1
        return total

    async def close(self) -> None:  # noqa: B027
        """Release any resources held by the store."""


def matches_filters(item: Record, filters: dict[str, Any] | None) -> bool:
    """Check attribute equality filters against an item."""
    if not filters:
        return True
    return all(item.get(name) == value for name, value in filters.items())


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "KeySchema",
    "ScanPage",
    "TableMetadata",
    "TableStore",
    "matches_filters",
]
