"""
Migration-specific exceptions for the tenantmigrate pipeline.

Exception Hierarchy:
    MigrationError (base, a TenantMigrateError)
    +-- MigrationConfigError
    +-- SnapshotError
    +-- UnmappedOwnerError
    +-- MissingOwnerError
    +-- DecommissionError

Only MigrationConfigError is meant to abort a run. The others are raised
inside a record or table boundary, where the driver, validator and
sequencer catch them and count them.
"""

from __future__ import annotations

from typing import Any

from tenantmigrate.exceptions import TenantMigrateError


class MigrationError(TenantMigrateError):
    """
    Base exception for all migration-related errors.

    Attributes:
        message: Human-readable error description.
        table_name: The table being processed, if applicable.
        tenant_id: The tenant involved, if applicable.
        suggested_action: Suggested action for the operator.
    """

    error_code = "MIGRATION_ERROR"

    def __init__(
        self,
        message: str,
        *,
        table_name: str | None = None,
        tenant_id: str | None = None,
        suggested_action: str | None = None,
    ) -> None:
        self.message = message
        self.table_name = table_name
        self.tenant_id = tenant_id
        self.suggested_action = suggested_action
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string with context."""
        parts = [self.message]
        if self.table_name:
            parts.append(f"table={self.table_name}")
        if self.tenant_id:
            parts.append(f"tenant_id={self.tenant_id}")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "message": self.message,
            "table_name": self.table_name,
            "tenant_id": self.tenant_id,
            "error_code": self.error_code,
            "suggested_action": self.suggested_action,
        }


class MigrationConfigError(MigrationError):
    """
    Raised when a run is misconfigured before any work starts.

    Examples: no mode selected, both modes selected, unknown entity type.
    """

    error_code = "MIGRATION_CONFIG_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(
            message,
            suggested_action="Fix the command line or configuration and run again",
        )


class SnapshotError(MigrationError):
    """
    Raised when a snapshot cannot be written or a snapshot file is malformed.

    Attributes:
        path: Snapshot file involved, if any.
    """

    error_code = "SNAPSHOT_ERROR"

    def __init__(
        self,
        message: str,
        *,
        table_name: str | None = None,
        path: str | None = None,
    ) -> None:
        self.path = path
        super().__init__(message, table_name=table_name)


class UnmappedOwnerError(MigrationError):
    """
    Raised by a strict scope mapping for an owner with no membership entry.

    Attributes:
        owner_id: The owner identity that has no tenant.
    """

    error_code = "UNMAPPED_OWNER"

    def __init__(self, owner_id: str) -> None:
        self.owner_id = owner_id
        super().__init__(
            f"No tenant mapping for owner {owner_id}",
            suggested_action="Add the owner to the membership table or disable strict identity",
        )


class MissingOwnerError(MigrationError):
    """
    Raised when a source record carries no owner identity.

    Attributes:
        owner_field: Name of the missing field.
    """

    error_code = "MISSING_OWNER"

    def __init__(self, owner_field: str, *, table_name: str | None = None) -> None:
        self.owner_field = owner_field
        super().__init__(f"Record has no {owner_field}", table_name=table_name)


class DecommissionError(MigrationError):
    """
    Raised when a legacy resource cannot be deleted.

    Attributes:
        resource_name: Function or table name.
        resource_kind: 'function' or 'table'.
    """

    error_code = "DECOMMISSION_ERROR"

    def __init__(self, resource_kind: str, resource_name: str, error: str) -> None:
        self.resource_kind = resource_kind
        self.resource_name = resource_name
        super().__init__(f"Failed to delete {resource_kind} {resource_name}: {error}")


__all__ = [
    "DecommissionError",
    "MigrationConfigError",
    "MigrationError",
    "MissingOwnerError",
    "SnapshotError",
    "UnmappedOwnerError",
]
