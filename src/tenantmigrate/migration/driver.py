"""
MigrationDriver - Moves legacy per-owner records into tenant-scoped tables.

For each table the driver reads the full source, then handles every record
in turn: resolve its tenant, transform it, validate the result, check
whether the target already holds it and, in execute mode, write it with an
insert-if-absent put.

Responsibilities:
    - Count every source record as migrated, skipped or error
    - Keep one bad record from aborting its table
    - Keep one failed table from aborting the run
    - Never write in dry-run mode

Idempotency:
    A record already present in the target under the same (tenant, id) is
    skipped, so a second execute run migrates nothing and changes nothing.
    The existence check and the write are not atomic; the insert-if-absent
    put turns a lost race into a counted error rather than an overwrite.

Usage:
    >>> driver = MigrationDriver(source_store, target_store, config)
    >>> report = await driver.run(MigrationMode.DRY_RUN)
    >>> report.total_errors
    0
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from tenantmigrate.config import PipelineConfig, TableMapping
from tenantmigrate.entities import EntityType, validate_record
from tenantmigrate.migration.exceptions import MissingOwnerError
from tenantmigrate.migration.identity import IdentityResolver, ScopeMapping
from tenantmigrate.migration.models import MigrationMode, MigrationRunReport, TableMigrationResult
from tenantmigrate.migration.transformer import RecordTransformer, utc_now
from tenantmigrate.observability import (
    ATTR_ENTITY_TYPE,
    ATTR_ERROR_COUNT,
    ATTR_MIGRATED_COUNT,
    ATTR_MIGRATION_MODE,
    ATTR_RECORD_COUNT,
    ATTR_SKIPPED_COUNT,
    ATTR_SOURCE_TABLE,
    ATTR_TARGET_TABLE,
    Tracer,
    create_tracer,
)
from tenantmigrate.serialization import json_dumps
from tenantmigrate.stores.interface import TableStore
from tenantmigrate.types import ItemKey, Record, TenantId

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedRecord:
    """
    A source record ready to be written to its target table.

    Attributes:
        tenant_id: Tenant the record resolved to
        key: Primary key of the record in the target table
        record: Transformed record
    """

    tenant_id: TenantId
    key: ItemKey
    record: Record


def prepare_record(
    record: Record,
    *,
    entity_type: EntityType,
    scope: ScopeMapping,
    transformer: RecordTransformer,
    owner_field: str = "userId",
) -> PreparedRecord:
    """
    Resolve, transform and validate one source record.

    This stage does no I/O.

    Raises:
        MissingOwnerError: If the record has no owner identity
        UnmappedOwnerError: If the scope is strict and the owner is unmapped
        RecordValidationError: If the transformed record is invalid
    """
    owner_id = record.get(owner_field)
    if not owner_id:
        raise MissingOwnerError(owner_field)

    tenant_id = scope.resolve(owner_id)
    migrated = transformer.transform(record, tenant_id)
    validate_record(entity_type, migrated)

    key = {
        transformer.tenant_field: tenant_id,
        entity_type.id_field: migrated[entity_type.id_field],
    }
    return PreparedRecord(tenant_id=tenant_id, key=key, record=migrated)


class MigrationDriver:
    """
    Migrates every legacy table of a configuration.

    Example:
        >>> driver = MigrationDriver(source_store, target_store, config)
        >>> scope = await driver.build_scope()
        >>> result = await driver.migrate_table(
        ...     config.mapping_for(EntityType.EXPENSE), MigrationMode.EXECUTE, scope
        ... )
        >>> result.migrated
        3
    """

    def __init__(
        self,
        source_store: TableStore,
        target_store: TableStore,
        config: PipelineConfig | None = None,
        *,
        identity_store: TableStore | None = None,
        clock: Callable[[], datetime] | None = None,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the driver.

        Args:
            source_store: Store holding the legacy tables (live or snapshot)
            target_store: Store holding the company-scoped tables
            config: Pipeline configuration (defaults to production naming)
            identity_store: Store holding the membership table
                (defaults to target_store)
            clock: Source of migratedAt timestamps (defaults to UTC now)
            tracer: Optional custom Tracer instance
            enable_tracing: Whether to enable tracing (default True)
        """
        self._source = source_store
        self._target = target_store
        self._config = config or PipelineConfig()
        self._identity_store = identity_store or target_store
        self._clock = clock or utc_now
        self._tracer = tracer or create_tracer(__name__, enable_tracing)

    @property
    def config(self) -> PipelineConfig:
        return self._config

    async def build_scope(self) -> ScopeMapping:
        """Scan the membership table into a fresh ScopeMapping."""
        resolver = IdentityResolver(
            self._identity_store,
            self._config.membership_table,
            owner_field=self._config.owner_field,
            tenant_field=self._config.tenant_field,
            strict=self._config.strict_identity,
            page_size=self._config.page_size,
            tracer=self._tracer,
        )
        return await resolver.build_cache()

    def _transformer(self, entity_type: EntityType) -> RecordTransformer:
        return RecordTransformer.for_entity(
            entity_type,
            tenant_field=self._config.tenant_field,
            source_tag=self._config.source_tag,
            clock=self._clock,
        )

    async def migrate_table(
        self,
        mapping: TableMapping,
        mode: MigrationMode,
        scope: ScopeMapping,
    ) -> TableMigrationResult:
        """
        Migrate one legacy table into its company-scoped table.

        Args:
            mapping: Source/target table pair and entity type
            mode: DRY_RUN to report only, EXECUTE to write
            scope: Owner -> tenant mapping of this run

        Returns:
            Counters for the table; a table that cannot be read yields
            errors=1 with the failure message
        """
        with self._tracer.span(
            "tenantmigrate.driver.migrate_table",
            {
                ATTR_SOURCE_TABLE: mapping.source_table,
                ATTR_TARGET_TABLE: mapping.target_table,
                ATTR_ENTITY_TYPE: mapping.entity_type.value,
                ATTR_MIGRATION_MODE: mode.value,
            },
        ) as span:
            logger.info(
                "Migrating %s -> %s (%s)",
                mapping.source_table,
                mapping.target_table,
                mode.value,
            )

            try:
                records = await self._source.scan_all(
                    mapping.source_table, page_size=self._config.page_size
                )
            except Exception as e:
                logger.error("Failed to read %s: %s", mapping.source_table, e)
                return TableMigrationResult.failed(mapping.source_table, str(e))

            if not records:
                logger.info("No records in %s", mapping.source_table)
                return TableMigrationResult(table=mapping.source_table)

            transformer = self._transformer(mapping.entity_type)
            migrated = skipped = errors = 0

            for record in records:
                try:
                    prepared = prepare_record(
                        record,
                        entity_type=mapping.entity_type,
                        scope=scope,
                        transformer=transformer,
                        owner_field=self._config.owner_field,
                    )
                    existing = await self._target.get_item(mapping.target_table, prepared.key)
                    if existing is not None:
                        logger.debug("Already migrated, skipping %s", prepared.key)
                        skipped += 1
                        continue

                    if mode.is_dry_run:
                        logger.info(
                            "[DRY RUN] Would migrate %s %s to tenant %s",
                            mapping.entity_type.value,
                            prepared.key[mapping.id_field],
                            prepared.tenant_id,
                        )
                    else:
                        await self._target.put_item(
                            mapping.target_table, prepared.record, if_not_exists=True
                        )
                        logger.debug("Migrated %s", prepared.key)
                    migrated += 1

                except MissingOwnerError:
                    logger.warning(
                        "Skipping record without %s in %s: %s",
                        self._config.owner_field,
                        mapping.source_table,
                        json_dumps(record),
                    )
                    skipped += 1
                except Exception as e:
                    logger.error(
                        "Failed to migrate record from %s: %s; record=%s",
                        mapping.source_table,
                        e,
                        json_dumps(record),
                    )
                    errors += 1

            result = TableMigrationResult(
                table=mapping.source_table,
                total_records=len(records),
                migrated=migrated,
                skipped=skipped,
                errors=errors,
            )
            if span:
                span.set_attribute(ATTR_RECORD_COUNT, result.total_records)
                span.set_attribute(ATTR_MIGRATED_COUNT, result.migrated)
                span.set_attribute(ATTR_SKIPPED_COUNT, result.skipped)
                span.set_attribute(ATTR_ERROR_COUNT, result.errors)

            logger.info(
                "%s: %d records, %d migrated, %d skipped, %d errors",
                mapping.source_table,
                result.total_records,
                result.migrated,
                result.skipped,
                result.errors,
            )
            return result

    async def run(
        self,
        mode: MigrationMode,
        scope: ScopeMapping | None = None,
    ) -> MigrationRunReport:
        """
        Migrate expenses, projects, contractors and works, in that order.

        Args:
            mode: DRY_RUN or EXECUTE
            scope: Mapping to use; built from the membership table when None

        Returns:
            Report with one result per table
        """
        timestamp = datetime.now(UTC)
        if scope is None:
            scope = await self.build_scope()

        results = []
        for mapping in self._config.table_mappings:
            results.append(await self.migrate_table(mapping, mode, scope))

        report = MigrationRunReport(mode=mode, timestamp=timestamp, results=tuple(results))
        logger.info(
            "Migration %s complete: %d records, %d migrated, %d skipped, %d errors",
            mode.value,
            report.total_records,
            report.total_migrated,
            report.total_skipped,
            report.total_errors,
        )
        return report


__all__ = ["MigrationDriver", "PreparedRecord", "prepare_record"]
