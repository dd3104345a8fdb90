"""
Standard span attributes for tenantmigrate.

Attribute constants used across the migration stages for consistent
span labeling. Database attributes follow OpenTelemetry semantic
conventions.
"""

# =============================================================================
# Table Attributes
# =============================================================================

ATTR_TABLE_NAME = "tenantmigrate.table.name"
"""Name of the table being read or written (string)."""

ATTR_SOURCE_TABLE = "tenantmigrate.table.source"
"""Legacy (per-user) table a migration reads from (string)."""

ATTR_TARGET_TABLE = "tenantmigrate.table.target"
"""Company-scoped table a migration writes to (string)."""

ATTR_ENTITY_TYPE = "tenantmigrate.entity.type"
"""Entity type of the records in a table (e.g., 'expense', 'work')."""

ATTR_RECORD_COUNT = "tenantmigrate.record.count"
"""Number of records involved in an operation (integer)."""

ATTR_PAGE_SIZE = "tenantmigrate.page.size"
"""Maximum number of items per scan page (integer)."""

# =============================================================================
# Migration Attributes
# =============================================================================

ATTR_MIGRATION_MODE = "tenantmigrate.migration.mode"
"""Migration mode: 'dry-run' or 'execute'."""

ATTR_MIGRATED_COUNT = "tenantmigrate.migration.migrated"
"""Records migrated (or that would be, in dry-run) (integer)."""

ATTR_SKIPPED_COUNT = "tenantmigrate.migration.skipped"
"""Records skipped (no owner, or already present in target) (integer)."""

ATTR_ERROR_COUNT = "tenantmigrate.migration.errors"
"""Records that failed to migrate (integer)."""

ATTR_MAPPING_COUNT = "tenantmigrate.identity.mappings"
"""Number of owner -> tenant mappings loaded (integer)."""

ATTR_TENANT_ID = "tenantmigrate.tenant.id"
"""Tenant (company) identifier (string)."""

# =============================================================================
# Validation Attributes
# =============================================================================

ATTR_MISSING_COUNT = "tenantmigrate.validation.missing"
"""Source records missing from the target (integer)."""

ATTR_MISMATCH_COUNT = "tenantmigrate.validation.mismatch"
"""Source records whose target copy differs (integer)."""

# =============================================================================
# Decommission Attributes
# =============================================================================

ATTR_RESOURCE_NAME = "tenantmigrate.resource.name"
"""Name of an infrastructure resource being deleted (string)."""

ATTR_RESOURCE_KIND = "tenantmigrate.resource.kind"
"""Kind of resource being deleted: 'function' or 'table'."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier (e.g., 'sqlite', 'dynamodb')."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation name (e.g., 'Scan', 'PutItem')."""

__all__ = [
    "ATTR_TABLE_NAME",
    "ATTR_SOURCE_TABLE",
    "ATTR_TARGET_TABLE",
    "ATTR_ENTITY_TYPE",
    "ATTR_RECORD_COUNT",
    "ATTR_PAGE_SIZE",
    "ATTR_MIGRATION_MODE",
    "ATTR_MIGRATED_COUNT",
    "ATTR_SKIPPED_COUNT",
    "ATTR_ERROR_COUNT",
    "ATTR_MAPPING_COUNT",
    "ATTR_TENANT_ID",
    "ATTR_MISSING_COUNT",
    "ATTR_MISMATCH_COUNT",
    "ATTR_RESOURCE_NAME",
    "ATTR_RESOURCE_KIND",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
]
