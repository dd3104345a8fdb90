"""
Per-user -> per-company migration pipeline.

Stages, in data-flow order:
- SnapshotStore: point-in-time JSON captures of whole tables
- IdentityResolver / ScopeMapping: owner -> tenant lookup, built once per run
- RecordTransformer: re-keys a record under its tenant, stamps provenance
- MigrationDriver: scan, resolve, transform, check, write, per table
- MigrationValidator: independent record-by-record verification
- DecommissionSequencer: deletes legacy functions, then legacy tables

MigrationPipeline chains them behind one entry point and MigrationPlanner
previews a migration from a snapshot directory.

Example:
    >>> from tenantmigrate.migration import MigrationMode, MigrationPipeline
    >>>
    >>> pipeline = MigrationPipeline(source_store, target_store)
    >>> report = await pipeline.migrate(MigrationMode.DRY_RUN)
    >>> report.total_errors
    0
"""

from tenantmigrate.migration.decommission import (
    AwsResourceDeleter,
    DecommissionSequencer,
    ResourceDeleter,
    StoreResourceDeleter,
)
from tenantmigrate.migration.driver import MigrationDriver, PreparedRecord, prepare_record
from tenantmigrate.migration.exceptions import (
    DecommissionError,
    MigrationConfigError,
    MigrationError,
    MissingOwnerError,
    SnapshotError,
    UnmappedOwnerError,
)
from tenantmigrate.migration.identity import IdentityResolver, ScopeMapping
from tenantmigrate.migration.models import (
    DecommissionReport,
    DeletionResult,
    MigrationMode,
    MigrationPlan,
    MigrationRunReport,
    MismatchedRecord,
    OwnerPlan,
    RecordRef,
    ResourceKind,
    SnapshotResult,
    SnapshotSummary,
    TableMigrationResult,
    TableSnapshot,
    TableValidationResult,
    ValidationReport,
)
from tenantmigrate.migration.pipeline import MigrationPipeline, PipelineResult
from tenantmigrate.migration.planner import MigrationPlanner
from tenantmigrate.migration.reports import ReportWriter, file_timestamp
from tenantmigrate.migration.snapshot import (
    SUMMARY_FILE_NAME,
    SnapshotStore,
    SnapshotTableStore,
    load_snapshot,
)
from tenantmigrate.migration.transformer import (
    MIGRATED_AT_FIELD,
    MIGRATED_FROM_FIELD,
    PROVENANCE_FIELDS,
    RecordTransformer,
)
from tenantmigrate.migration.validator import MigrationValidator, compare_fields

__all__ = [
    # Stages
    "DecommissionSequencer",
    "IdentityResolver",
    "MigrationDriver",
    "MigrationPipeline",
    "MigrationPlanner",
    "MigrationValidator",
    "RecordTransformer",
    "SnapshotStore",
    "SnapshotTableStore",
    # Stage helpers
    "AwsResourceDeleter",
    "PreparedRecord",
    "ReportWriter",
    "ResourceDeleter",
    "ScopeMapping",
    "StoreResourceDeleter",
    "compare_fields",
    "file_timestamp",
    "load_snapshot",
    "prepare_record",
    # Models
    "DecommissionReport",
    "DeletionResult",
    "MigrationMode",
    "MigrationPlan",
    "MigrationRunReport",
    "MismatchedRecord",
    "OwnerPlan",
    "PipelineResult",
    "RecordRef",
    "ResourceKind",
    "SnapshotResult",
    "SnapshotSummary",
    "TableMigrationResult",
    "TableSnapshot",
    "TableValidationResult",
    "ValidationReport",
    # Constants
    "MIGRATED_AT_FIELD",
    "MIGRATED_FROM_FIELD",
    "PROVENANCE_FIELDS",
    "SUMMARY_FILE_NAME",
    # Exceptions
    "DecommissionError",
    "MigrationConfigError",
    "MigrationError",
    "MissingOwnerError",
    "SnapshotError",
    "UnmappedOwnerError",
]
