"""
Data models for the migration pipeline.

Every stage returns an immutable result object. ``to_dict`` produces the
camelCase JSON layout written into snapshot files and reports.

Types:
- MigrationMode: dry-run or execute
- TableSnapshot / SnapshotResult / SnapshotSummary: snapshot stage
- TableMigrationResult / MigrationRunReport: migration driver
- RecordRef / MismatchedRecord / TableValidationResult / ValidationReport:
  post-migration validator
- ResourceKind / DeletionResult / DecommissionReport: decommission sequencer
- OwnerPlan / MigrationPlan: migration planner
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from tenantmigrate.stores.interface import TableMetadata
from tenantmigrate.types import Record


class MigrationMode(Enum):
    """
    Execution mode of a migration run.

    Both modes read, resolve, transform and check every record; only
    EXECUTE writes.
    """

    DRY_RUN = "dry-run"
    """Report what would be written without writing."""

    EXECUTE = "execute"
    """Write every record that is not yet present in the target."""

    @property
    def is_dry_run(self) -> bool:
        return self is MigrationMode.DRY_RUN


# =============================================================================
# Snapshot
# =============================================================================


@dataclass(frozen=True)
class TableSnapshot:
    """
    Point-in-time capture of one table.

    Attributes:
        table_name: Name of the captured table
        backup_timestamp: When the capture was taken
        metadata: Table schema and statistics at capture time
        items: Full table contents
    """

    table_name: str
    backup_timestamp: datetime
    metadata: TableMetadata | None
    items: list[Record] = field(default_factory=list)

    @property
    def record_count(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tableName": self.table_name,
            "backupTimestamp": self.backup_timestamp.isoformat(),
            "metadata": self.metadata.to_dict() if self.metadata is not None else None,
            "recordCount": self.record_count,
            "items": self.items,
        }


@dataclass(frozen=True)
class SnapshotResult:
    """Outcome of capturing one table."""

    table_name: str
    success: bool
    record_count: int = 0
    file: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "table": self.table_name,
            "success": self.success,
            "recordCount": self.record_count,
        }
        if self.file is not None:
            data["file"] = self.file
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class SnapshotSummary:
    """
    Run-level summary of a snapshot run.

    Attributes:
        backup_timestamp: When the run started
        directory: Directory holding the snapshot files
        results: One result per requested table, in request order
    """

    backup_timestamp: datetime
    directory: str
    results: tuple[SnapshotResult, ...]

    @property
    def successful_backups(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def failed_backups(self) -> int:
        return sum(1 for r in self.results if not r.success)

    @property
    def total_records(self) -> int:
        return sum(r.record_count for r in self.results)

    @property
    def success(self) -> bool:
        return self.failed_backups == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "backupTimestamp": self.backup_timestamp.isoformat(),
            "directory": self.directory,
            "totalTables": len(self.results),
            "successfulBackups": self.successful_backups,
            "failedBackups": self.failed_backups,
            "totalRecords": self.total_records,
            "results": [r.to_dict() for r in self.results],
        }


# =============================================================================
# Migration
# =============================================================================


@dataclass(frozen=True)
class TableMigrationResult:
    """
    Counters for one migrated table.

    Attributes:
        table: Source table name
        total_records: Records read from the source
        migrated: Records written (or that would be written in dry-run)
        skipped: Records without an owner or already present in the target
        errors: Records that failed; 1 with ``error`` set for a table failure
        error: Table-level failure message
    """

    table: str
    total_records: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: int = 0
    error: str | None = None

    @classmethod
    def failed(cls, table: str, error: str) -> TableMigrationResult:
        """Result of a table that could not be processed at all."""
        return cls(table=table, errors=1, error=error)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "table": self.table,
            "totalRecords": self.total_records,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "errors": self.errors,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class MigrationRunReport:
    """Aggregated result of migrating every table in one run."""

    mode: MigrationMode
    timestamp: datetime
    results: tuple[TableMigrationResult, ...]

    @property
    def total_records(self) -> int:
        return sum(r.total_records for r in self.results)

    @property
    def total_migrated(self) -> int:
        return sum(r.migrated for r in self.results)

    @property
    def total_skipped(self) -> int:
        return sum(r.skipped for r in self.results)

    @property
    def total_errors(self) -> int:
        return sum(r.errors for r in self.results)

    @property
    def success(self) -> bool:
        return self.total_errors == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "timestamp": self.timestamp.isoformat(),
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "totalRecords": self.total_records,
                "totalMigrated": self.total_migrated,
                "totalSkipped": self.total_skipped,
                "totalErrors": self.total_errors,
            },
        }


# =============================================================================
# Validation
# =============================================================================


@dataclass(frozen=True)
class RecordRef:
    """
    Identifies one source record and the tenant it was expected under.

    owner_field and tenant_field name the keys used in reports, so they
    follow the configured record fields.
    """

    owner_id: str | None
    tenant_id: str | None
    record_id: str | None
    owner_field: str = "userId"
    tenant_field: str = "companyId"

    def to_dict(self) -> dict[str, Any]:
        return {
            self.owner_field: self.owner_id,
            self.tenant_field: self.tenant_id,
            "recordId": self.record_id,
        }


@dataclass(frozen=True)
class MismatchedRecord(RecordRef):
    """A source record whose target copy differs in at least one field."""

    mismatched_fields: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["mismatchedFields"] = list(self.mismatched_fields)
        return data


@dataclass(frozen=True)
class TableValidationResult:
    """
    Record-by-record comparison of one source table with its target.

    Attributes:
        table: Source table name
        total_source: Records read from the source
        found: Records present in the target with equal fields
        missing: Records absent from the target
        mismatch: Records present in the target with differing fields
        missing_records: Identifiers of the missing records
        mismatch_records: Identifiers and differing fields of mismatched records
        error: Table-level failure message
    """

    table: str
    total_source: int = 0
    found: int = 0
    missing: int = 0
    mismatch: int = 0
    missing_records: tuple[RecordRef, ...] = ()
    mismatch_records: tuple[MismatchedRecord, ...] = ()
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.missing == 0 and self.mismatch == 0

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "table": self.table,
            "totalSource": self.total_source,
            "found": self.found,
            "missing": self.missing,
            "mismatch": self.mismatch,
            "missingRecords": [r.to_dict() for r in self.missing_records],
            "mismatchRecords": [r.to_dict() for r in self.mismatch_records],
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class ValidationReport:
    """Aggregated validation result over every table."""

    timestamp: datetime
    results: tuple[TableValidationResult, ...]

    @property
    def total_source(self) -> int:
        return sum(r.total_source for r in self.results)

    @property
    def total_found(self) -> int:
        return sum(r.found for r in self.results)

    @property
    def total_missing(self) -> int:
        return sum(r.missing for r in self.results)

    @property
    def total_mismatch(self) -> int:
        return sum(r.mismatch for r in self.results)

    @property
    def all_success(self) -> bool:
        return all(r.success for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "totalSource": self.total_source,
                "totalFound": self.total_found,
                "totalMissing": self.total_missing,
                "totalMismatch": self.total_mismatch,
                "allSuccess": self.all_success,
            },
        }


# =============================================================================
# Decommission
# =============================================================================


class ResourceKind(Enum):
    """Kind of legacy resource removed by the decommission sequencer."""

    FUNCTION = "function"
    """A compute handler (Lambda function)."""

    TABLE = "table"
    """A storage table."""


@dataclass(frozen=True)
class DeletionResult:
    """Outcome of deleting one resource."""

    kind: ResourceKind
    name: str
    success: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "name": self.name,
            "success": self.success,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class DecommissionReport:
    """Per-resource outcome of a decommission run, functions first."""

    timestamp: datetime
    results: tuple[DeletionResult, ...]

    def _count(self, kind: ResourceKind, success: bool) -> int:
        return sum(1 for r in self.results if r.kind is kind and r.success is success)

    @property
    def deleted_functions(self) -> int:
        return self._count(ResourceKind.FUNCTION, True)

    @property
    def failed_functions(self) -> int:
        return self._count(ResourceKind.FUNCTION, False)

    @property
    def deleted_tables(self) -> int:
        return self._count(ResourceKind.TABLE, True)

    @property
    def failed_tables(self) -> int:
        return self._count(ResourceKind.TABLE, False)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "results": [r.to_dict() for r in self.results],
            "summary": {
                "deletedFunctions": self.deleted_functions,
                "failedFunctions": self.failed_functions,
                "deletedTables": self.deleted_tables,
                "failedTables": self.failed_tables,
                "success": self.success,
            },
        }


# =============================================================================
# Planning
# =============================================================================


@dataclass(frozen=True)
class OwnerPlan:
    """
    Where one legacy owner's records will go.

    Attributes:
        owner_id: Legacy owner identity
        tenant_id: Tenant the owner resolves to
        mapping_source: 'membership' when mapped, 'fallback' otherwise
        record_counts: Legacy records owned, per entity type value
        owner_field: Report key for owner_id
        tenant_field: Report key for tenant_id
    """

    owner_id: str
    tenant_id: str
    mapping_source: str
    record_counts: dict[str, int] = field(default_factory=dict)
    owner_field: str = "userId"
    tenant_field: str = "companyId"

    @property
    def total_records(self) -> int:
        return sum(self.record_counts.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            self.owner_field: self.owner_id,
            self.tenant_field: self.tenant_id,
            "mappingSource": self.mapping_source,
            "recordCounts": dict(self.record_counts),
            "totalRecords": self.total_records,
        }


@dataclass(frozen=True)
class MigrationPlan:
    """
    Projection of a migration computed from a snapshot directory.

    Attributes:
        timestamp: When the plan was computed
        snapshot_directory: Directory the plan was computed from
        legacy_counts: Records per legacy table
        company_counts: Records already present per company table
        owners: Plan per legacy owner, sorted by owner identity
        missing_tables: Expected tables with no snapshot file
    """

    timestamp: datetime
    snapshot_directory: str
    legacy_counts: dict[str, int]
    company_counts: dict[str, int]
    owners: tuple[OwnerPlan, ...]
    missing_tables: tuple[str, ...] = ()

    @property
    def total_legacy_records(self) -> int:
        return sum(self.legacy_counts.values())

    @property
    def projected_tenants(self) -> int:
        return len({owner.tenant_id for owner in self.owners})

    @property
    def fallback_owners(self) -> int:
        return sum(1 for owner in self.owners if owner.mapping_source == "fallback")

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "snapshotDirectory": self.snapshot_directory,
            "legacyCounts": dict(self.legacy_counts),
            "companyCounts": dict(self.company_counts),
            "missingTables": list(self.missing_tables),
            "owners": [owner.to_dict() for owner in self.owners],
            "summary": {
                "totalLegacyRecords": self.total_legacy_records,
                "uniqueOwners": len(self.owners),
                "projectedTenants": self.projected_tenants,
                "fallbackOwners": self.fallback_owners,
            },
        }


__all__ = [
    "DecommissionReport",
    "DeletionResult",
    "MigrationMode",
    "MigrationPlan",
    "MigrationRunReport",
    "MismatchedRecord",
    "OwnerPlan",
    "RecordRef",
    "ResourceKind",
    "SnapshotResult",
    "SnapshotSummary",
    "TableMigrationResult",
    "TableSnapshot",
    "TableValidationResult",
    "ValidationReport",
]
