"""Library exceptions for the tenantmigrate package."""

from __future__ import annotations

from typing import Any


class TenantMigrateError(Exception):
    """Base exception for tenantmigrate library."""

    pass


class StoreError(TenantMigrateError):
    """Raised when there's an error in a table store."""

    pass


class TableNotFoundError(StoreError):
    """Raised when a table does not exist in the store."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"Table not found: {table_name}")


class TableAlreadyExistsError(StoreError):
    """Raised when creating a table that already exists."""

    def __init__(self, table_name: str) -> None:
        self.table_name = table_name
        super().__init__(f"Table already exists: {table_name}")


class ItemAlreadyExistsError(StoreError):
    """Raised when an insert-if-absent write finds an item under the same key."""

    def __init__(self, table_name: str, key: dict[str, Any]) -> None:
        self.table_name = table_name
        self.key = key
        super().__init__(f"Item already exists in {table_name}: {key}")


class RecordValidationError(TenantMigrateError):
    """
    Raised when a record does not satisfy its entity schema.

    Attributes:
        entity_type: Entity type name the record was validated against
        errors: Human-readable validation messages
    """

    def __init__(self, entity_type: str, errors: list[str]) -> None:
        self.entity_type = entity_type
        self.errors = errors
        super().__init__(f"Invalid {entity_type} record: {'; '.join(errors)}")


class DuplicateRecordError(TenantMigrateError):
    """Raised when a create would violate a per-tenant uniqueness rule."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ForeignKeyError(TenantMigrateError):
    """Raised when a record references a parent that does not exist in its tenant."""

    def __init__(self, entity_type: str, record_id: str, tenant_id: str) -> None:
        self.entity_type = entity_type
        self.record_id = record_id
        self.tenant_id = tenant_id
        super().__init__(f"{entity_type.capitalize()} with ID {record_id} not found")


class RecordNotFoundError(TenantMigrateError):
    """Raised when a record cannot be found in its tenant."""

    def __init__(self, entity_type: str, record_id: str) -> None:
        self.entity_type = entity_type
        self.record_id = record_id
        super().__init__(f"{entity_type.capitalize()} not found: {record_id}")
