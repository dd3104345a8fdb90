"""
Table store implementations.

Backends:
- InMemoryTableStore: for tests and local runs
- SQLiteTableStore: embedded persistence via aiosqlite
- DynamoDBTableStore: AWS DynamoDB via boto3

A read-only store over a snapshot directory lives in
``tenantmigrate.migration.snapshot``.
"""

from tenantmigrate.stores.dynamodb import DynamoDBTableStore
from tenantmigrate.stores.in_memory import InMemoryTableStore
from tenantmigrate.stores.interface import (
    DEFAULT_PAGE_SIZE,
    KeySchema,
    ScanPage,
    TableMetadata,
    TableStore,
    matches_filters,
)
from tenantmigrate.stores.sqlite import SQLiteTableStore

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "DynamoDBTableStore",
    "InMemoryTableStore",
    "KeySchema",
    "SQLiteTableStore",
    "ScanPage",
    "TableMetadata",
    "TableStore",
    "matches_filters",
]
