"""
tenantmigrate - per-user to per-company data migration for the
construction-expense service.

Moves expenses, projects, contractors and works from tables partitioned
by owner (``userId``) to tables partitioned by tenant (``companyId``),
validates the result record by record and retires the legacy resources.

Example:
    >>> from tenantmigrate import MigrationMode, MigrationPipeline, SQLiteTableStore
    >>>
    >>> async with SQLiteTableStore("migration.db") as store:
    ...     pipeline = MigrationPipeline(store, store)
    ...     result = await pipeline.run(MigrationMode.DRY_RUN)
"""

from importlib.metadata import PackageNotFoundError, version

from tenantmigrate.config import PipelineConfig, TableMapping
from tenantmigrate.entities import Contractor, EntityType, Expense, Project, Work, validate_record
from tenantmigrate.exceptions import (
    DuplicateRecordError,
    ForeignKeyError,
    ItemAlreadyExistsError,
    RecordNotFoundError,
    RecordValidationError,
    StoreError,
    TableAlreadyExistsError,
    TableNotFoundError,
    TenantMigrateError,
)
from tenantmigrate.migration import (
    DecommissionSequencer,
    IdentityResolver,
    MigrationDriver,
    MigrationMode,
    MigrationPipeline,
    MigrationPlanner,
    MigrationValidator,
    RecordTransformer,
    ReportWriter,
    ScopeMapping,
    SnapshotStore,
    SnapshotTableStore,
)
from tenantmigrate.repositories import TenantEntityRepository
from tenantmigrate.stores import (
    DynamoDBTableStore,
    InMemoryTableStore,
    KeySchema,
    SQLiteTableStore,
    TableStore,
)

try:
    __version__ = version("tenantmigrate")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    # Configuration
    "PipelineConfig",
    "TableMapping",
    # Entities
    "Contractor",
    "EntityType",
    "Expense",
    "Project",
    "Work",
    "validate_record",
    # Stores
    "DynamoDBTableStore",
    "InMemoryTableStore",
    "KeySchema",
    "SQLiteTableStore",
    "TableStore",
    # Migration
    "DecommissionSequencer",
    "IdentityResolver",
    "MigrationDriver",
    "MigrationMode",
    "MigrationPipeline",
    "MigrationPlanner",
    "MigrationValidator",
    "RecordTransformer",
    "ReportWriter",
    "ScopeMapping",
    "SnapshotStore",
    "SnapshotTableStore",
    # Repositories
    "TenantEntityRepository",
    # Exceptions
    "DuplicateRecordError",
    "ForeignKeyError",
    "ItemAlreadyExistsError",
    "RecordNotFoundError",
    "RecordValidationError",
    "StoreError",
    "TableAlreadyExistsError",
    "TableNotFoundError",
    "TenantMigrateError",
]
