"""
Serialization utilities for tenantmigrate.

JSON serialization with support for the Decimal, datetime and UUID values
found in stored records, used for snapshot files, reports and the SQLite
store.
"""

from tenantmigrate.serialization.json import (
    RecordJSONEncoder,
    decimal_to_number,
    json_dumps,
    json_loads,
)

__all__ = [
    "RecordJSONEncoder",
    "decimal_to_number",
    "json_dumps",
    "json_loads",
]
