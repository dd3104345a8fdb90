"""Common type definitions for the tenantmigrate library."""

from typing import Any

# A stored item: flat key-value map kept verbatim between stores
Record = dict[str, Any]

# Primary key of a stored item (partition key and optional sort key)
ItemKey = dict[str, Any]

# Legacy per-user partition key value
OwnerId = str

# Per-company partition key value
TenantId = str
